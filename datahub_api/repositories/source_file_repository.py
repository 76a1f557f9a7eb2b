from typing import List, Optional

from sqlalchemy.orm import Session

from datahub_api.models.source_file import SourceFile


class SourceFileRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, source_file: SourceFile) -> SourceFile:
        self.db.add(source_file)
        self.db.flush()
        return source_file

    def get_by_id(self, source_file_id: int, dataset_id: Optional[int] = None) -> Optional[SourceFile]:
        q = self.db.query(SourceFile).filter(SourceFile.id == source_file_id)
        if dataset_id is not None:
            q = q.filter(SourceFile.dataset_id == dataset_id)
        return q.first()

    def list_by_dataset(self, dataset_id: int) -> List[SourceFile]:
        return (
            self.db.query(SourceFile)
            .filter(SourceFile.dataset_id == dataset_id)
            .order_by(SourceFile.id)
            .all()
        )

    def set_status(self, source_file: SourceFile, status: str, error: Optional[str] = None) -> None:
        source_file.status = status
        if error is not None:
            source_file.error_message = error
        self.db.flush()

    def delete(self, source_file: SourceFile) -> None:
        self.db.delete(source_file)
        self.db.flush()
