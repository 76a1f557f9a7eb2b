"""
Unit tests for the dataset column list: update_columns / delete_columns.
Run: pytest tests/unit/test_dataset_columns.py -v
"""
from unittest.mock import patch

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from datahub_api.core.errors import DatasetValidationError
from datahub_api.models.source_file import SourceFile
from datahub_api.schemas.column import ColumnSpec, DataType


def test_update_columns_appends_typed_columns(dataset_service, dataset):
    assert dataset_service.update_columns(dataset, [
        {"name": "City", "data_type": "String", "limit": 80},
        {"name": "Population", "data_type": "integer"},
        {"name": "Area", "data_type": "decimal", "precision": 10, "scale": 2},
    ]) is True

    assert dataset.column_names == ["City", "Population", "Area"]
    city, population, area = dataset.column_definitions
    assert city.data_type == DataType.STRING and city.limit == 80
    assert population.data_type == DataType.INTEGER
    assert (area.precision, area.scale) == (10, 2)
    assert len(set(dataset.table_column_names)) == 3


def test_update_columns_stores_only_known_keys(dataset_service, dataset):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string", "color": "red"}])

    assert set(dataset.columns[0]) == {"name", "column_name", "data_type", "limit", "precision", "scale"}
    assert dataset.columns[0]["data_type"] == "string"


def test_update_columns_accepts_column_specs(dataset_service, dataset):
    dataset_service.update_columns(dataset, [ColumnSpec(name="Founded", data_type="date")])

    assert dataset.find_column("Founded").data_type == DataType.DATE


def test_update_columns_skips_existing_names(dataset_service, dataset):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])
    before = list(dataset.column_definitions)

    dataset_service.update_columns(dataset, [
        {"name": "City", "data_type": "integer"},
        {"name": "Country", "data_type": "string"},
        {"name": "Country", "data_type": "string"},
    ])

    assert dataset.column_names == ["City", "Country"]
    assert dataset.column_definitions[0] == before[0]


def test_missing_data_type_rejects_whole_batch(dataset_service, dataset, db):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])

    with pytest.raises(DatasetValidationError) as exc_info:
        dataset_service.update_columns(dataset, [
            {"name": "Country", "data_type": "string"},
            {"name": "A"},
        ])

    assert exc_info.value.errors["base"] == ["Column A does not have data type"]
    assert dataset.column_names == ["City"]
    db.refresh(dataset)
    assert dataset.column_names == ["City"]


def test_missing_name_reports_position(dataset_service, dataset):
    with pytest.raises(DatasetValidationError) as exc_info:
        dataset_service.update_columns(dataset, [
            {"name": "B", "data_type": "string"},
            {"data_type": "string"},
        ])

    assert exc_info.value.errors["base"] == ["Column 2 does not have column name"]
    assert dataset.column_names == []


def test_unknown_data_type_is_rejected(dataset_service, dataset):
    with pytest.raises(DatasetValidationError) as exc_info:
        dataset_service.update_columns(dataset, [{"name": "Flag", "data_type": "boolean"}])

    assert exc_info.value.errors["base"] == ["Column Flag has unknown data type boolean"]
    assert dataset.column_names == []


def test_update_columns_alters_existing_table(dataset_service, dataset, dwh):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])
    dataset_service.create_or_alter_table(dataset)

    dataset_service.update_columns(dataset, [{"name": "Population", "data_type": "integer"}])

    table_columns = [c["name"] for c in inspect(dwh.engine).get_columns(dataset.table_name)]
    assert dataset.find_column("Population").column_name in table_columns
    assert {"_source_type", "_source_name", "_source_id"} <= set(table_columns)


def test_update_columns_without_table_creates_nothing(dataset_service, dataset):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])

    assert dataset_service.table_exists(dataset) is False


def test_delete_columns_clears_everything(dataset_service, dataset, db):
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])
    dataset_service.create_or_alter_table(dataset)
    source_file = SourceFile(
        dataset_id=dataset.id,
        file_name="cities.csv",
        file_path="/tmp/cities.csv",
        status=SourceFile.STATUS_IMPORTED,
        imported_rows=2,
    )
    db.add(source_file)
    db.commit()

    assert dataset_service.delete_columns(dataset) is True

    assert dataset.column_definitions == []
    assert dataset.last_import_at is None
    assert dataset_service.table_exists(dataset) is False
    db.refresh(source_file)
    assert source_file.status == SourceFile.STATUS_NEW
    assert source_file.imported_rows == 0


def test_warehouse_failure_rolls_back_columns(dataset_service, dataset):
    """A failed ALTER leaves the stored column list as it was."""
    dataset_service.update_columns(dataset, [{"name": "City", "data_type": "string"}])
    dataset_service.create_or_alter_table(dataset)

    with patch.object(
        dataset_service.dwh, "create_or_alter_table",
        side_effect=OperationalError("ALTER TABLE", {}, Exception("disk full")),
    ):
        with pytest.raises(OperationalError):
            dataset_service.update_columns(dataset, [{"name": "Population", "data_type": "integer"}])

    assert dataset.column_names == ["City"]
