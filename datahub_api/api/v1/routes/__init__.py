from fastapi import APIRouter

from datahub_api.api.v1.routes import projects, datasets, source_files

router = APIRouter()
router.include_router(projects.router, prefix="/projects")
router.include_router(datasets.router, prefix="/projects/{project_id}/datasets")
router.include_router(source_files.router, prefix="/projects/{project_id}/datasets/{dataset_id}/source_files")
