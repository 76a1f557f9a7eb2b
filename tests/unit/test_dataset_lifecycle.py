"""
Unit tests for dataset metadata validation and the backing table lifecycle.
Run: pytest tests/unit/test_dataset_lifecycle.py -v
"""
import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from datahub_api.core.errors import DatasetTableError, DatasetValidationError
from datahub_api.db.base import Base
from datahub_api.db.dwh import Dwh, set_dwh
from datahub_api.models.project import Project
from datahub_api.models.source_file import SourceFile
from datahub_api.repositories.dataset_repository import DatasetRepository
from datahub_api.services.dataset_service import DatasetService


@pytest.mark.parametrize(
    "attributes, field",
    [
        ({"shortname": "cities"}, "name"),
        ({"name": "  ", "shortname": "cities"}, "name"),
        ({"name": "Cities"}, "shortname"),
        ({"name": "Cities", "shortname": "abc"}, "shortname"),
        ({"name": "Cities", "shortname": "a" * 41}, "shortname"),
        ({"name": "Cities", "shortname": "my cities"}, "shortname"),
        ({"name": "Cities", "shortname": "cities/2024"}, "shortname"),
    ],
)
def test_invalid_metadata_is_rejected(dataset_service, project, attributes, field):
    with pytest.raises(DatasetValidationError) as exc_info:
        dataset_service.create_dataset(project.id, attributes)

    assert field in exc_info.value.errors
    assert dataset_service.list_datasets(project.id) == []


def test_valid_metadata(dataset_service, project):
    dataset = dataset_service.create_dataset(project.id, {
        "name": "Cities",
        "shortname": "cities_2024-v1",
        "description": "Largest cities",
        "source_url": "https://example.org/cities",
    })

    assert dataset.id is not None
    assert dataset.table_name == f"dataset_{dataset.id}"
    assert dataset.column_definitions == []


def test_shortname_is_unique_per_project(dataset_service, project, other_project, dataset):
    with pytest.raises(DatasetValidationError) as exc_info:
        dataset_service.create_dataset(project.id, {"name": "Again", "shortname": dataset.shortname})
    assert exc_info.value.errors["shortname"] == ["has already been taken"]

    other = dataset_service.create_dataset(other_project.id, {"name": "Again", "shortname": dataset.shortname})
    assert other.shortname == dataset.shortname


def test_update_keeps_own_shortname(dataset_service, dataset):
    updated = dataset_service.update_dataset(dataset, {"shortname": dataset.shortname, "name": "Renamed"})

    assert updated.name == "Renamed"


def test_failed_update_restores_previous_values(dataset_service, project, dataset):
    dataset_service.create_dataset(project.id, {"name": "Other", "shortname": "other-dataset"})

    with pytest.raises(DatasetValidationError):
        dataset_service.update_dataset(dataset, {"name": "Renamed", "shortname": "other-dataset"})

    assert dataset.name == "Test dataset"
    assert dataset.shortname == "test-dataset"


def test_get_dataset_is_scoped_to_project(dataset_service, other_project, dataset):
    assert dataset_service.get_dataset(dataset.id, dataset.project_id) is dataset

    with pytest.raises(HTTPException) as exc_info:
        dataset_service.get_dataset(dataset.id, other_project.id)
    assert exc_info.value.status_code == 404


def test_create_table_requires_columns(dataset_service, dataset):
    with pytest.raises(DatasetTableError):
        dataset_service.create_or_alter_table(dataset)

    assert dataset_service.table_exists(dataset) is False


def test_create_table(dataset_service, dataset):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])

    dataset_service.create_or_alter_table(dataset)

    assert dataset_service.table_exists(dataset) is True
    assert dataset_service.data_rows_count(dataset) == 0


def test_drop_table_is_idempotent(dataset_service, dataset):
    dataset_service.drop_table(dataset)
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])
    dataset_service.create_or_alter_table(dataset)

    dataset_service.drop_table(dataset)
    dataset_service.drop_table(dataset)

    assert dataset_service.table_exists(dataset) is False


@pytest.fixture
def dataset_with_table(dataset_service, dataset):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])
    dataset_service.create_or_alter_table(dataset)
    return dataset


def test_destroy_drops_table(dataset_service, dataset_with_table, dwh):
    table_name, project_id = dataset_with_table.table_name, dataset_with_table.project_id

    dataset_service.destroy_dataset(dataset_with_table)

    assert dwh.table_exists(table_name) is False
    assert dataset_service.list_datasets(project_id) == []


def test_session_delete_drops_table(db, dataset_with_table, dwh):
    table_name = dataset_with_table.table_name

    db.delete(dataset_with_table)
    db.commit()

    assert dwh.table_exists(table_name) is False


def test_project_delete_drops_dataset_tables(db, project, dataset_with_table, dwh):
    table_name = dataset_with_table.table_name

    db.delete(project)
    db.commit()

    assert dwh.table_exists(table_name) is False


def test_destroy_without_table(dataset_service, dataset, dwh):
    table_name = dataset.table_name

    dataset_service.destroy_dataset(dataset)

    assert dwh.table_exists(table_name) is False


@pytest.fixture
def shared_sqlite(tmp_path):
    """Metadata and dataset tables in one SQLite file, as when DWH_DATABASE_URL is unset."""
    engine = create_engine(f"sqlite:///{tmp_path / 'datahub.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    warehouse = Dwh(engine)
    set_dwh(warehouse)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session, warehouse
    session.close()
    set_dwh(None)
    engine.dispose()


def test_destroy_with_source_files_on_shared_database(shared_sqlite):
    """The table drop joins the flush transaction instead of waiting on its lock."""
    session, warehouse = shared_sqlite
    project = Project(name="Shared", shortname="shared")
    session.add(project)
    session.commit()
    service = DatasetService(DatasetRepository(session), warehouse)
    dataset = service.create_dataset(project.id, {"name": "Cities", "shortname": "cities"})
    service.update_columns(dataset, [{"name": "City", "data_type": "string"}])
    service.create_or_alter_table(dataset)
    session.add(SourceFile(dataset_id=dataset.id, file_name="cities.csv", file_path="/tmp/cities.csv"))
    session.commit()
    table_name = dataset.table_name

    service.destroy_dataset(dataset)

    assert warehouse.table_exists(table_name) is False
    assert session.query(SourceFile).count() == 0
