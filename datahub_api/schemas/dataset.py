from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from datahub_api.core.config import settings
from datahub_api.schemas.column import ColumnDefinition


class DatasetBase(BaseModel):
    name: Optional[str] = None
    shortname: Optional[str] = None
    description: Optional[str] = None
    source_url: Optional[str] = Field(None, max_length=255)


class DatasetCreate(DatasetBase):
    """Presence, length and format of name/shortname are checked by DatasetService."""
    pass


class DatasetUpdate(DatasetBase):
    pass


class DatasetResponse(BaseModel):
    id: int
    project_id: int
    name: str
    shortname: str
    description: Optional[str] = None
    source_url: Optional[str] = None
    table_name: str
    columns: List[ColumnDefinition] = Field(default_factory=list, validation_alias="column_definitions")
    last_import_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class DatasetTableResponse(BaseModel):
    table_name: str
    exists: bool
    row_count: Optional[int] = Field(None, description="Rows in the backing table (None when it does not exist)")


class SearchParams(BaseModel):
    sort: Optional[str] = Field(None, description="Display name of the column to sort by")
    sort_direction: Optional[str] = Field(None, description="asc or desc")
    page: int = Field(1, ge=1)
    per_page: int = Field(default_factory=lambda: settings.DEFAULT_PER_PAGE, ge=1)

    @field_validator("sort_direction")
    @classmethod
    def normalize_direction(cls, value: Optional[str]) -> str:
        value = (value or "").strip().lower()
        return value if value in ("asc", "desc") else "asc"


class SearchResponse(BaseModel):
    rows: List[Dict[str, Any]]
    total_results: int
    page: int
    per_page: int
