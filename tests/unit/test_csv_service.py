from datetime import date, datetime
from decimal import Decimal

import pytest

from datahub_api.schemas.column import ColumnDefinition, DataType
from datahub_api.services.csv_service import CSVService, CSVValidationError


def column(name, data_type, **kwargs):
    return ColumnDefinition(name=name, column_name=f"c_{name.lower()}", data_type=data_type, **kwargs)


class TestReadCSV:
    def test_all_cells_are_text(self):
        df = CSVService.read_csv(b"Code,Amount\n007,1.50\n")

        assert df.iloc[0]["Code"] == "007"
        assert df.iloc[0]["Amount"] == "1.50"

    def test_blank_cells_stay_blank(self):
        df = CSVService.read_csv(b"A,B\nx,\n")

        assert df.iloc[0]["B"] == ""

    def test_latin1_fallback(self):
        df = CSVService.read_csv("Città\nMilano\n".encode("latin-1"))

        assert list(df.columns) == ["Città"]

    def test_empty_file(self):
        with pytest.raises(CSVValidationError):
            CSVService.read_csv(b"")


def test_map_columns_prefers_exact_header():
    columns = [column("Order Date", DataType.DATE), column("Total", DataType.DECIMAL)]

    mapping = CSVService.map_columns(["order_date", "Order Date", "TOTAL"], columns)

    assert mapping == {"Order Date": "Order Date", "Total": "TOTAL"}


@pytest.mark.parametrize(
    "data_type, raw, expected, kwargs",
    [
        (DataType.STRING, "  Paris ", "Paris", {}),
        (DataType.STRING, "abcdef", "abc", {"limit": 3}),
        (DataType.STRING, "", None, {}),
        (DataType.INTEGER, "42", 42, {}),
        (DataType.INTEGER, "42.0", 42, {}),
        (DataType.INTEGER, "42.5", None, {}),
        (DataType.INTEGER, "NaN", None, {}),
        (DataType.DECIMAL, "1,234.50", Decimal("1234.50"), {}),
        (DataType.DECIMAL, "n/a", None, {}),
        (DataType.DATE, "2024-03-01", date(2024, 3, 1), {}),
        (DataType.DATETIME, "2024-03-01 10:30", datetime(2024, 3, 1, 10, 30), {}),
        (DataType.DATE, "later", None, {}),
    ],
)
def test_coerce_value(data_type, raw, expected, kwargs):
    assert CSVService.coerce_value(raw, column("Value", data_type, **kwargs)) == expected


def test_build_records_adds_extra_values_and_nulls():
    df = CSVService.read_csv(b"Name\nAda\n")
    columns = [column("Name", DataType.STRING), column("Born", DataType.DATE)]

    records = CSVService.build_records(df, columns, extra={"_source_id": 7})

    assert records == [{"c_name": "Ada", "c_born": None, "_source_id": 7}]
