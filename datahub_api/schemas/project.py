from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    shortname: str = Field(..., min_length=4, max_length=40, pattern=r"^[A-Za-z0-9_\-]+$")


class ProjectResponse(BaseModel):
    id: int
    name: str
    shortname: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
