from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SourceFileResponse(BaseModel):
    id: int
    dataset_id: int
    file_name: str
    content_type: Optional[str] = None
    file_size: Optional[int] = None
    status: str
    imported_rows: int = 0
    error_message: Optional[str] = None
    imported_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ImportTaskResponse(BaseModel):
    task_id: str
    source_file_id: int
    status: str = Field(..., description="queued when sent to Celery, imported/error when run inline")
