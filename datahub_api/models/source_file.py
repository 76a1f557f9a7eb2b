from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datahub_api.db.base import Base


class SourceFile(Base):
    __tablename__ = "source_files"

    STATUS_NEW = "new"
    STATUS_QUEUED = "queued"
    STATUS_IMPORTED = "imported"
    STATUS_ERROR = "error"

    id = Column(Integer, primary_key=True, index=True)
    dataset_id = Column(Integer, ForeignKey("datasets.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    file_path = Column(Text, nullable=False)
    content_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default=STATUS_NEW)  # new, queued, imported, error
    imported_rows = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    imported_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    dataset = relationship("Dataset", back_populates="source_files")

    def reset_new(self) -> None:
        """Mark the file as not yet imported (its rows must be imported again)."""
        self.status = self.STATUS_NEW
        self.imported_rows = 0
        self.imported_at = None
        self.error_message = None
