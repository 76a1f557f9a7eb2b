from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from datahub_api.api.v1.dependencies import get_project
from datahub_api.db.session import get_db
from datahub_api.models.project import Project
from datahub_api.repositories.project_repository import ProjectRepository
from datahub_api.schemas.project import ProjectCreate, ProjectResponse

router = APIRouter(tags=["projects"])


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreate, db: Session = Depends(get_db)):
    repo = ProjectRepository(db)
    if repo.get_by_shortname(payload.shortname):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project shortname already taken")
    project = repo.create(Project(name=payload.name, shortname=payload.shortname))
    db.commit()
    db.refresh(project)
    return project


@router.get("", response_model=List[ProjectResponse])
def list_projects(db: Session = Depends(get_db)):
    return ProjectRepository(db).list_all()


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project_detail(project: Project = Depends(get_project)):
    return project
