import logging

from datahub_api.tasks.celery_app import celery_app
from datahub_api.core.errors import DatasetTableError
from datahub_api.db.dwh import get_dwh
from datahub_api.db.session import SessionLocal
from datahub_api.models.source_file import SourceFile
from datahub_api.repositories.dataset_repository import DatasetRepository
from datahub_api.repositories.source_file_repository import SourceFileRepository
from datahub_api.services.dataset_service import DatasetService
from datahub_api.services.source_file_service import SourceFileService

logger = logging.getLogger(__name__)


def run_import(db, source_file_id: int) -> dict:
    """Import one source file with the given session; shared by the task and sync mode."""
    dataset_service = DatasetService(DatasetRepository(db), get_dwh())
    service = SourceFileService(SourceFileRepository(db), dataset_service)
    source_file = service.source_file_repo.get_by_id(source_file_id)
    if not source_file:
        logger.warning(f"run_import: source file {source_file_id} not found")
        return {"status": "missing", "source_file_id": source_file_id}

    source_file = service.import_source_file(source_file)
    return {
        "status": source_file.status,
        "source_file_id": source_file.id,
        "rows": source_file.imported_rows,
        "error": source_file.error_message,
    }


def mark_failed(db, source_file_id: int, exc: Exception) -> None:
    source_file = SourceFileRepository(db).get_by_id(source_file_id)
    if source_file:
        source_file.status = SourceFile.STATUS_ERROR
        source_file.error_message = str(exc)
        db.commit()


@celery_app.task(bind=True, max_retries=3)
def import_source_file_task(self, source_file_id: int):
    """
    Background import of a source file into its dataset table.
    Warehouse errors are retried; the file is marked as errored once retries run out.
    A dataset without columns cannot be imported into, so that fails at once.
    """
    db = SessionLocal()
    try:
        logger.info(f"Starting import of source file {source_file_id}")
        return run_import(db, source_file_id)
    except DatasetTableError as exc:
        db.rollback()
        logger.error(f"Import of source file {source_file_id} not possible: {exc}")
        mark_failed(db, source_file_id, exc)
        return {"status": SourceFile.STATUS_ERROR, "source_file_id": source_file_id, "error": str(exc)}
    except Exception as exc:
        db.rollback()
        logger.error(f"Error importing source file {source_file_id}: {exc}")
        if self.request.retries >= self.max_retries:
            mark_failed(db, source_file_id, exc)
            raise
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()
