from typing import List, Optional

from sqlalchemy.orm import Session

from datahub_api.models.project import Project


class ProjectRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, project: Project) -> Project:
        self.db.add(project)
        self.db.flush()
        return project

    def get_by_id(self, project_id: int) -> Optional[Project]:
        return self.db.query(Project).filter(Project.id == project_id).first()

    def get_by_shortname(self, shortname: str) -> Optional[Project]:
        return self.db.query(Project).filter(Project.shortname == shortname).first()

    def list_all(self) -> List[Project]:
        return self.db.query(Project).order_by(Project.name).all()
