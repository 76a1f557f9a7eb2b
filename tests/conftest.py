"""
Shared fixtures: an in-memory SQLite metadata database and a separate in-memory
SQLite warehouse, wired the way the application wires Postgres in production.
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.pop("REDIS_URL", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import datahub_api.models  # noqa: F401  (registers tables on Base.metadata)
from datahub_api.core.config import settings
from datahub_api.db.base import Base
from datahub_api.db.dwh import Dwh, set_dwh
from datahub_api.models.project import Project
from datahub_api.repositories.dataset_repository import DatasetRepository
from datahub_api.services.dataset_service import DatasetService


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def db_engine():
    engine = _memory_engine()
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def dwh():
    engine = _memory_engine()
    warehouse = Dwh(engine)
    set_dwh(warehouse)
    yield warehouse
    set_dwh(None)
    engine.dispose()


@pytest.fixture
def project(db):
    project = Project(name="Project 1", shortname="project1")
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def other_project(db):
    project = Project(name="Project 2", shortname="project2")
    db.add(project)
    db.commit()
    db.refresh(project)
    return project


@pytest.fixture
def dataset_service(db, dwh):
    return DatasetService(DatasetRepository(db), dwh)


@pytest.fixture
def dataset(dataset_service, project):
    return dataset_service.create_dataset(project.id, {"name": "Test dataset", "shortname": "test-dataset"})


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path
