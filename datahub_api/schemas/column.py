from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DataType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "datetime"

    @classmethod
    def parse(cls, value: Any) -> "DataType":
        """Canonical tag for user input such as "String" or " date "; raises ValueError."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class ColumnDefinition(BaseModel):
    """One typed column of a dataset, as stored in datasets.columns."""
    model_config = ConfigDict(frozen=True, use_enum_values=False)

    name: str
    column_name: str
    data_type: DataType
    limit: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    @property
    def is_string(self) -> bool:
        return self.data_type == DataType.STRING

    def to_record(self) -> dict:
        return self.model_dump(mode="json")


class ColumnSpec(BaseModel):
    """Candidate column submitted by a client; validated by DatasetService.update_columns."""
    name: Optional[str] = None
    data_type: Optional[str] = Field(None, description="string, integer, decimal, date or datetime")
    limit: Optional[int] = Field(None, ge=1)
    precision: Optional[int] = Field(None, ge=1)
    scale: Optional[int] = Field(None, ge=0)


# Provenance columns appended to every backing table
SOURCE_COLUMNS = [
    ColumnDefinition(name="_source_type", column_name="_source_type", data_type=DataType.STRING, limit=20),
    ColumnDefinition(name="_source_name", column_name="_source_name", data_type=DataType.STRING, limit=100),
    ColumnDefinition(name="_source_id", column_name="_source_id", data_type=DataType.INTEGER),
]
