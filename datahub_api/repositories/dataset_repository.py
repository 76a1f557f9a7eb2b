from typing import List, Optional

from sqlalchemy.orm import Session

from datahub_api.models.dataset import Dataset


class DatasetRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, dataset: Dataset) -> Dataset:
        self.db.add(dataset)
        self.db.flush()
        return dataset

    def list_by_project(self, project_id: int) -> List[Dataset]:
        return (
            self.db.query(Dataset)
            .filter(Dataset.project_id == project_id)
            .order_by(Dataset.name)
            .all()
        )

    def get_by_id(self, dataset_id: int, project_id: int) -> Optional[Dataset]:
        """Always scoped by project so a dataset id from another project is never returned."""
        return (
            self.db.query(Dataset)
            .filter(Dataset.project_id == project_id, Dataset.id == dataset_id)
            .first()
        )

    def shortname_taken(self, project_id: int, shortname: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Dataset.id).filter(
            Dataset.project_id == project_id,
            Dataset.shortname == shortname,
        )
        if exclude_id is not None:
            query = query.filter(Dataset.id != exclude_id)
        return query.first() is not None

    def delete(self, dataset: Dataset) -> None:
        self.db.delete(dataset)
        self.db.flush()
