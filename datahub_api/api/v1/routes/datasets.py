from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from datahub_api.api.v1.dependencies import get_dataset, get_dataset_service, get_project
from datahub_api.models.dataset import Dataset
from datahub_api.models.project import Project
from datahub_api.schemas.column import ColumnSpec
from datahub_api.schemas.dataset import (
    DatasetCreate,
    DatasetResponse,
    DatasetTableResponse,
    DatasetUpdate,
    SearchResponse,
)
from datahub_api.services.dataset_service import DatasetService

router = APIRouter(tags=["datasets"])


@router.post("", response_model=DatasetResponse, status_code=status.HTTP_201_CREATED)
def create_dataset(
    payload: DatasetCreate,
    project: Project = Depends(get_project),
    service: DatasetService = Depends(get_dataset_service),
):
    return service.create_dataset(project.id, payload.model_dump(exclude_unset=True))


@router.get("", response_model=List[DatasetResponse])
def list_datasets(
    project: Project = Depends(get_project),
    service: DatasetService = Depends(get_dataset_service),
):
    return service.list_datasets(project.id)


@router.get("/{dataset_id}", response_model=DatasetResponse)
def get_dataset_detail(dataset: Dataset = Depends(get_dataset)):
    return dataset


@router.patch("/{dataset_id}", response_model=DatasetResponse)
def update_dataset(
    payload: DatasetUpdate,
    dataset: Dataset = Depends(get_dataset),
    service: DatasetService = Depends(get_dataset_service),
):
    return service.update_dataset(dataset, payload.model_dump(exclude_unset=True))


@router.delete("/{dataset_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_dataset(
    dataset: Dataset = Depends(get_dataset),
    service: DatasetService = Depends(get_dataset_service),
):
    """Deletes the dataset, its source files and its backing table."""
    service.destroy_dataset(dataset)


@router.put("/{dataset_id}/columns", response_model=DatasetResponse)
def update_columns(
    columns: List[ColumnSpec] = Body(..., description="Columns to add; existing names are ignored"),
    dataset: Dataset = Depends(get_dataset),
    service: DatasetService = Depends(get_dataset_service),
):
    service.update_columns(dataset, columns)
    return dataset


@router.delete("/{dataset_id}/columns", response_model=DatasetResponse)
def delete_columns(
    dataset: Dataset = Depends(get_dataset),
    service: DatasetService = Depends(get_dataset_service),
):
    """Clears the columns, drops the table and marks every source file for re-import."""
    service.delete_columns(dataset)
    return dataset


@router.get("/{dataset_id}/table", response_model=DatasetTableResponse)
def get_table(
    dataset: Dataset = Depends(get_dataset),
    service: DatasetService = Depends(get_dataset_service),
):
    exists = service.table_exists(dataset)
    return {
        "table_name": dataset.table_name,
        "exists": exists,
        "row_count": service.data_rows_count(dataset) if exists else None,
    }


@router.post("/{dataset_id}/table", response_model=DatasetTableResponse)
def create_or_alter_table(
    dataset: Dataset = Depends(get_dataset),
    service: DatasetService = Depends(get_dataset_service),
):
    service.create_or_alter_table(dataset)
    return {
        "table_name": dataset.table_name,
        "exists": True,
        "row_count": service.data_rows_count(dataset),
    }


@router.get("/{dataset_id}/datatable", response_model=SearchResponse)
def search_rows(
    q: Optional[str] = Query(None, description='Search string, e.g. City:Rome "New York"'),
    sort: Optional[str] = Query(None, description="Column display name to sort by"),
    sort_direction: Optional[str] = Query(None, description="asc or desc"),
    page: int = Query(1, ge=1),
    per_page: Optional[int] = Query(None, ge=1, le=1000),
    dataset: Dataset = Depends(get_dataset),
    service: DatasetService = Depends(get_dataset_service),
):
    params = {"sort": sort, "sort_direction": sort_direction, "page": page, "per_page": per_page}
    return service.data_search(dataset, q, params)
