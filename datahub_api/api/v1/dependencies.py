import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from datahub_api.db.dwh import Dwh, get_dwh
from datahub_api.db.session import get_db
from datahub_api.models.dataset import Dataset
from datahub_api.models.project import Project
from datahub_api.repositories.dataset_repository import DatasetRepository
from datahub_api.repositories.project_repository import ProjectRepository
from datahub_api.repositories.source_file_repository import SourceFileRepository
from datahub_api.services.dataset_service import DatasetService
from datahub_api.services.source_file_service import SourceFileService

logger = logging.getLogger(__name__)


def get_warehouse() -> Dwh:
    return get_dwh()


def get_project(project_id: int, db: Session = Depends(get_db)) -> Project:
    project = ProjectRepository(db).get_by_id(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


def get_dataset_service(
    db: Session = Depends(get_db),
    dwh: Dwh = Depends(get_warehouse),
) -> DatasetService:
    return DatasetService(DatasetRepository(db), dwh)


def get_source_file_service(
    db: Session = Depends(get_db),
    dataset_service: DatasetService = Depends(get_dataset_service),
) -> SourceFileService:
    return SourceFileService(SourceFileRepository(db), dataset_service)


def get_dataset(
    dataset_id: int,
    project: Project = Depends(get_project),
    service: DatasetService = Depends(get_dataset_service),
) -> Dataset:
    """Dataset looked up within the project from the path, 404 otherwise."""
    return service.get_dataset(dataset_id, project.id)
