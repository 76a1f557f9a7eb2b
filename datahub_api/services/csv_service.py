import logging
from decimal import Decimal
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from datahub_api.schemas.column import ColumnDefinition, DataType
from datahub_api.utils.naming import normalize_name

logger = logging.getLogger(__name__)

ENCODINGS = ["utf-8", "latin-1"]


class CSVValidationError(Exception):
    """Exception raised for CSV validation errors."""
    pass


class CSVService:
    """Reads delimited source files and shapes their rows to a dataset's columns."""

    @staticmethod
    def read_csv(file_content: bytes) -> pd.DataFrame:
        """All cells as text; typing happens per dataset column in coerce_value."""
        for encoding in ENCODINGS:
            try:
                df = pd.read_csv(
                    BytesIO(file_content),
                    encoding=encoding,
                    dtype=str,
                    keep_default_na=False,
                )
                break
            except UnicodeDecodeError:
                continue
            except pd.errors.EmptyDataError:
                raise CSVValidationError("The file is empty.")
            except pd.errors.ParserError as e:
                raise CSVValidationError(f"Could not parse file: {e}")
        else:
            raise CSVValidationError("Could not decode the file. Check its encoding.")

        if df.empty:
            raise CSVValidationError("The file has no data rows.")
        return df

    @staticmethod
    def map_columns(file_columns: Sequence[str], columns: Sequence[ColumnDefinition]) -> Dict[str, str]:
        """
        Dataset display name -> file header. Exact header match wins, then a match
        on normalized names ("Order Date" ~ "order_date").
        """
        by_normalized = {}
        for header in file_columns:
            by_normalized.setdefault(normalize_name(str(header)), header)

        mapping = {}
        for column in columns:
            if column.name in file_columns:
                mapping[column.name] = column.name
                continue
            header = by_normalized.get(normalize_name(column.name))
            if header is not None:
                mapping[column.name] = header
        return mapping

    @staticmethod
    def coerce_value(raw: Any, column: ColumnDefinition) -> Any:
        """Cell text as a value of the column's type; None for blanks and values that do not parse."""
        if raw is None:
            return None
        text = str(raw).strip()
        if not text:
            return None
        try:
            if column.data_type == DataType.STRING:
                return text[:column.limit] if column.limit else text
            if column.data_type == DataType.INTEGER:
                number = Decimal(text)
                if not number.is_finite() or number != number.to_integral_value():
                    return None
                return int(number)
            if column.data_type == DataType.DECIMAL:
                number = Decimal(text.replace(",", ""))
                return number if number.is_finite() else None
            parsed = pd.to_datetime(text)
            if pd.isna(parsed):
                return None
            if column.data_type == DataType.DATE:
                return parsed.date()
            return parsed.to_pydatetime()
        except (ValueError, TypeError, ArithmeticError, OverflowError):
            return None

    @classmethod
    def build_records(
        cls,
        df: pd.DataFrame,
        columns: Sequence[ColumnDefinition],
        extra: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        One insertable dict per file row keyed by storage column name, each
        carrying the `extra` (provenance) values. Dataset columns absent from
        the file are imported as NULL.
        """
        mapping = cls.map_columns(list(df.columns), columns)
        if not mapping:
            raise CSVValidationError(
                "None of the file columns match the dataset columns: " + ", ".join(c.name for c in columns)
            )
        missing = [c.name for c in columns if c.name not in mapping]
        if missing:
            logger.warning(f"Columns missing from file, imported as empty: {missing}")

        sources = [(column, mapping.get(column.name)) for column in columns]
        records = []
        for raw in df.to_dict("records"):
            record = {
                column.column_name: cls.coerce_value(raw[header], column) if header is not None else None
                for column, header in sources
            }
            if extra:
                record.update(extra)
            records.append(record)
        return records
