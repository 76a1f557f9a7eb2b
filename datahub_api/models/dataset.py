import logging
from typing import List

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint, event
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from datahub_api.db.base import Base
from datahub_api.schemas.column import ColumnDefinition, SOURCE_COLUMNS

logger = logging.getLogger(__name__)


class Dataset(Base):
    __tablename__ = "datasets"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    shortname = Column(String(40), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    source_url = Column(String(255), nullable=True)
    # Ordered list of ColumnDefinition records (JSON); always reassigned, never mutated in place
    columns = Column(JSON, nullable=True)
    last_import_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    project = relationship("Project", back_populates="datasets")
    source_files = relationship(
        "SourceFile",
        back_populates="dataset",
        cascade="all, delete-orphan",
        order_by="SourceFile.id",
    )

    __table_args__ = (
        UniqueConstraint("project_id", "shortname", name="uq_datasets_project_shortname"),
    )

    @property
    def table_name(self) -> str:
        return f"dataset_{self.id}"

    @property
    def column_definitions(self) -> List[ColumnDefinition]:
        raw = self.columns or []
        cached = getattr(self, "_definitions_cache", None)
        if cached is None or cached[0] is not raw:
            cached = (raw, [ColumnDefinition.model_validate(c) for c in raw])
            self._definitions_cache = cached
        return cached[1]

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.column_definitions]

    @property
    def table_column_names(self) -> List[str]:
        return [c.column_name for c in self.column_definitions]

    @property
    def string_columns(self) -> List[ColumnDefinition]:
        return [c for c in self.column_definitions if c.is_string]

    def find_column(self, name: str):
        for column in self.column_definitions:
            if column.name == name:
                return column
        return None

    def columns_with_source_columns(self) -> List[ColumnDefinition]:
        return self.column_definitions + SOURCE_COLUMNS


@event.listens_for(Dataset, "before_delete")
def drop_dataset_table(mapper, connection, target):
    """No backing table outlives its dataset, whichever path deletes the row."""
    from datahub_api.db.dwh import get_dwh

    logger.info(f"Dataset {target.id} deleted, dropping {target.table_name}")
    dwh = get_dwh()
    if connection.engine is dwh.engine:
        # Same database as the flush: a second connection would wait on its write lock
        dwh.drop_table(target.table_name, connection)
    else:
        dwh.drop_table(target.table_name)
