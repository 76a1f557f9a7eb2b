from typing import List

from fastapi import APIRouter, Depends, File, UploadFile, status

from datahub_api.api.v1.dependencies import get_dataset, get_source_file_service
from datahub_api.core.config import settings
from datahub_api.core.errors import DatasetTableError
from datahub_api.models.dataset import Dataset
from datahub_api.schemas.source_file import ImportTaskResponse, SourceFileResponse
from datahub_api.services.source_file_service import SourceFileService
from datahub_api.tasks.import_tasks import import_source_file_task, run_import

router = APIRouter(tags=["source_files"])


@router.post("", response_model=SourceFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_source_file(
    file: UploadFile = File(...),
    dataset: Dataset = Depends(get_dataset),
    service: SourceFileService = Depends(get_source_file_service),
):
    file_content = await file.read()
    return service.create_source_file(dataset, file.filename, file_content, file.content_type)


@router.get("", response_model=List[SourceFileResponse])
def list_source_files(
    dataset: Dataset = Depends(get_dataset),
    service: SourceFileService = Depends(get_source_file_service),
):
    return service.list_source_files(dataset)


@router.get("/{source_file_id}", response_model=SourceFileResponse)
def get_source_file(
    source_file_id: int,
    dataset: Dataset = Depends(get_dataset),
    service: SourceFileService = Depends(get_source_file_service),
):
    return service.get_source_file(dataset, source_file_id)


@router.delete("/{source_file_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_source_file(
    source_file_id: int,
    dataset: Dataset = Depends(get_dataset),
    service: SourceFileService = Depends(get_source_file_service),
):
    source_file = service.get_source_file(dataset, source_file_id)
    service.delete_source_file(dataset, source_file)


@router.put("/{source_file_id}/start_import", response_model=ImportTaskResponse, status_code=status.HTTP_202_ACCEPTED)
def start_import(
    source_file_id: int,
    dataset: Dataset = Depends(get_dataset),
    service: SourceFileService = Depends(get_source_file_service),
):
    """Imports inline when PROCESS_IMPORT_SYNC=true, otherwise queues a Celery task."""
    source_file = service.get_source_file(dataset, source_file_id)
    if not dataset.column_definitions:
        raise DatasetTableError("Define dataset columns before importing")

    if settings.PROCESS_IMPORT_SYNC:
        result = run_import(service.db, source_file.id)
        return {
            "task_id": f"sync-{source_file.id}",
            "source_file_id": source_file.id,
            "status": result["status"],
        }

    service.mark_queued(source_file)
    task = import_source_file_task.delay(source_file.id)
    return {
        "task_id": task.id,
        "source_file_id": source_file.id,
        "status": source_file.status,
    }
