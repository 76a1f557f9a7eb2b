import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from fastapi import HTTPException, status

from datahub_api.core.cache import cache_delete_prefix, dataset_cache_prefix
from datahub_api.core.config import settings
from datahub_api.core.errors import DatasetTableError
from datahub_api.models.dataset import Dataset
from datahub_api.models.source_file import SourceFile
from datahub_api.repositories.source_file_repository import SourceFileRepository
from datahub_api.services.csv_service import CSVService, CSVValidationError
from datahub_api.services.dataset_service import DatasetService

logger = logging.getLogger(__name__)

SOURCE_TYPE_FILE = "file"


class SourceFileService:
    def __init__(self, source_file_repo: SourceFileRepository, dataset_service: DatasetService):
        self.source_file_repo = source_file_repo
        self.dataset_service = dataset_service

    @property
    def db(self):
        return self.source_file_repo.db

    @property
    def dwh(self):
        return self.dataset_service.dwh

    def create_source_file(
        self,
        dataset: Dataset,
        file_name: str,
        file_content: bytes,
        content_type: Optional[str] = None,
    ) -> SourceFile:
        """Store the upload under UPLOAD_DIR and register it as a new (not imported) file."""
        file_name = Path(file_name or "").name
        if not file_name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File name is required")

        path = Path(settings.UPLOAD_DIR) / f"dataset_{dataset.id}" / f"{uuid4().hex}_{file_name}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(file_content)

        source_file = SourceFile(
            dataset_id=dataset.id,
            file_name=file_name,
            file_path=str(path),
            content_type=content_type,
            file_size=len(file_content),
            status=SourceFile.STATUS_NEW,
            imported_rows=0,
        )
        self.source_file_repo.create(source_file)
        self.db.commit()
        self.db.refresh(source_file)
        logger.info(f"Stored source file {source_file.id} ({file_name}, {len(file_content)} bytes) for dataset {dataset.id}")
        return source_file

    def list_source_files(self, dataset: Dataset) -> List[SourceFile]:
        return self.source_file_repo.list_by_dataset(dataset.id)

    def get_source_file(self, dataset: Dataset, source_file_id: int) -> SourceFile:
        source_file = self.source_file_repo.get_by_id(source_file_id, dataset.id)
        if not source_file:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Source file not found")
        return source_file

    def delete_source_file(self, dataset: Dataset, source_file: SourceFile) -> None:
        """Remove the file, its record and the rows it contributed to the dataset table."""
        file_path = source_file.file_path
        if self.dataset_service.table_exists(dataset):
            self.delete_imported_rows(dataset, source_file)
        self.source_file_repo.delete(source_file)
        self.db.commit()
        Path(file_path).unlink(missing_ok=True)
        cache_delete_prefix(dataset_cache_prefix(dataset.id))

    def mark_queued(self, source_file: SourceFile) -> SourceFile:
        self.source_file_repo.set_status(source_file, SourceFile.STATUS_QUEUED)
        self.db.commit()
        return source_file

    @staticmethod
    def imported_rows_clause(table, source_file: SourceFile) -> list:
        """Rows a source file contributed to the dataset table."""
        return [
            table.c["_source_type"] == SOURCE_TYPE_FILE,
            table.c["_source_id"] == source_file.id,
        ]

    def delete_imported_rows(self, dataset: Dataset, source_file: SourceFile) -> int:
        table = self.dwh.build_table(dataset.table_name, dataset.columns_with_source_columns())
        return self.dwh.execute(table.delete().where(*self.imported_rows_clause(table, source_file)))

    def import_source_file(self, source_file: SourceFile) -> SourceFile:
        """
        Load the file's rows into the dataset table, replacing rows from a previous
        import of the same file. File problems end in status "error"; warehouse
        errors propagate.
        """
        dataset = source_file.dataset
        if not dataset.column_definitions:
            raise DatasetTableError("Cannot import into a dataset without columns")

        try:
            df = CSVService.read_csv(Path(source_file.file_path).read_bytes())
            records = CSVService.build_records(
                df,
                dataset.column_definitions,
                extra={
                    "_source_type": SOURCE_TYPE_FILE,
                    "_source_name": source_file.file_name[:100],
                    "_source_id": source_file.id,
                },
            )
        except (CSVValidationError, OSError) as e:
            logger.error(f"Import of source file {source_file.id} failed: {e}")
            source_file.status = SourceFile.STATUS_ERROR
            source_file.error_message = str(e)
            self.db.commit()
            return source_file

        table = self.dataset_service.create_or_alter_table(dataset)
        removed, inserted = self.dwh.replace_rows(
            table,
            self.imported_rows_clause(table, source_file),
            records,
            batch_size=settings.IMPORT_BATCH_SIZE,
        )

        now = datetime.now(timezone.utc)
        source_file.status = SourceFile.STATUS_IMPORTED
        source_file.imported_rows = inserted
        source_file.imported_at = now
        source_file.error_message = None
        dataset.last_import_at = now
        self.db.commit()
        cache_delete_prefix(dataset_cache_prefix(dataset.id))
        logger.info(
            f"Imported {inserted} rows from source file {source_file.id} into {dataset.table_name}"
            f" ({removed} rows from a previous import replaced)"
        )
        return source_file
