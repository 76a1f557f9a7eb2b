# Import all models so metadata.create_all() sees them
from datahub_api.models.project import Project
from datahub_api.models.dataset import Dataset
from datahub_api.models.source_file import SourceFile

__all__ = ["Project", "Dataset", "SourceFile"]
