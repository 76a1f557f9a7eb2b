import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from fastapi import HTTPException, status
from pydantic import BaseModel

from datahub_api.core.cache import cache_delete_prefix, cache_get, cache_set, dataset_cache_prefix
from datahub_api.core.errors import DatasetTableError, DatasetValidationError
from datahub_api.db.dwh import Dwh, generate_column_name
from datahub_api.models.dataset import Dataset
from datahub_api.repositories.dataset_repository import DatasetRepository
from datahub_api.schemas.column import ColumnDefinition, DataType
from datahub_api.schemas.dataset import SearchParams
from datahub_api.services.dataset_search import DatasetSearch
from datahub_api.utils.naming import is_url_component

logger = logging.getLogger(__name__)

SHORTNAME_MIN_LENGTH = 4
SHORTNAME_MAX_LENGTH = 40
EDITABLE_ATTRIBUTES = ("name", "shortname", "description", "source_url")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_dict(spec: Union[Mapping[str, Any], BaseModel]) -> Dict[str, Any]:
    if isinstance(spec, BaseModel):
        return spec.model_dump()
    return dict(spec)


class DatasetService:
    """
    Dataset lifecycle: metadata validation and persistence, the column list,
    and the backing table in the warehouse.

    Every mutating method either commits everything it changed or raises
    with the session rolled back.
    """

    def __init__(self, dataset_repo: DatasetRepository, dwh: Dwh):
        self.dataset_repo = dataset_repo
        self.dwh = dwh

    @property
    def db(self):
        return self.dataset_repo.db

    # -- metadata ---------------------------------------------------------

    def validate(self, dataset: Dataset) -> None:
        errors = DatasetValidationError()
        if _blank(dataset.name):
            errors.add("name", "can't be blank")
        if _blank(dataset.shortname):
            errors.add("shortname", "can't be blank")
        else:
            if not SHORTNAME_MIN_LENGTH <= len(dataset.shortname) <= SHORTNAME_MAX_LENGTH:
                errors.add(
                    "shortname",
                    f"must be between {SHORTNAME_MIN_LENGTH} and {SHORTNAME_MAX_LENGTH} characters",
                )
            if not is_url_component(dataset.shortname):
                errors.add("shortname", "may only contain letters, digits, dashes and underscores")
            elif self.dataset_repo.shortname_taken(dataset.project_id, dataset.shortname, exclude_id=dataset.id):
                errors.add("shortname", "has already been taken")
        if errors:
            raise errors

    def create_dataset(self, project_id: int, attributes: Mapping[str, Any]) -> Dataset:
        dataset = Dataset(project_id=project_id)
        for key in EDITABLE_ATTRIBUTES:
            if key in attributes:
                setattr(dataset, key, attributes[key])
        self.validate(dataset)
        self.dataset_repo.create(dataset)
        self.db.commit()
        self.db.refresh(dataset)
        logger.info(f"Created dataset {dataset.id} ({dataset.shortname}) in project {project_id}")
        return dataset

    def update_dataset(self, dataset: Dataset, attributes: Mapping[str, Any]) -> Dataset:
        changes = {key: attributes[key] for key in EDITABLE_ATTRIBUTES if key in attributes}
        previous = {key: getattr(dataset, key) for key in changes}
        for key, value in changes.items():
            setattr(dataset, key, value)
        try:
            self.validate(dataset)
        except DatasetValidationError:
            for key, value in previous.items():
                setattr(dataset, key, value)
            raise
        self.db.commit()
        self.db.refresh(dataset)
        return dataset

    def get_dataset(self, dataset_id: int, project_id: int) -> Dataset:
        dataset = self.dataset_repo.get_by_id(dataset_id, project_id)
        if not dataset:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Dataset not found")
        return dataset

    def list_datasets(self, project_id: int) -> List[Dataset]:
        return self.dataset_repo.list_by_project(project_id)

    def destroy_dataset(self, dataset: Dataset) -> None:
        """Delete the dataset and its source files; the before_delete hook drops the table."""
        dataset_id = dataset.id
        self.dataset_repo.delete(dataset)
        self.db.commit()
        cache_delete_prefix(dataset_cache_prefix(dataset_id))
        logger.info(f"Destroyed dataset {dataset_id}")

    # -- columns ----------------------------------------------------------

    def build_columns(
        self,
        dataset: Dataset,
        new_columns: Iterable[Union[Mapping[str, Any], BaseModel]],
    ) -> List[ColumnDefinition]:
        """Current definitions plus the valid new ones; raises on the first invalid entry."""
        columns = list(dataset.column_definitions)
        names = {c.name for c in columns}
        column_names = {c.column_name for c in columns}

        for i, spec in enumerate(new_columns or []):
            spec = _as_dict(spec)
            name = spec.get("name")
            data_type = spec.get("data_type")
            if _blank(name):
                raise DatasetValidationError({"base": [f"Column {i + 1} does not have column name"]})
            if _blank(data_type):
                raise DatasetValidationError({"base": [f"Column {name} does not have data type"]})
            try:
                data_type = DataType.parse(data_type)
            except ValueError:
                raise DatasetValidationError({"base": [f"Column {name} has unknown data type {data_type}"]})

            if name in names:
                continue

            column_name = generate_column_name(name, column_names)
            columns.append(
                ColumnDefinition(
                    name=name,
                    column_name=column_name,
                    data_type=data_type,
                    limit=spec.get("limit"),
                    precision=spec.get("precision"),
                    scale=spec.get("scale"),
                )
            )
            names.add(name)
            column_names.add(column_name)
        return columns

    def update_columns(
        self,
        dataset: Dataset,
        new_columns: Iterable[Union[Mapping[str, Any], BaseModel]],
    ) -> bool:
        columns = self.build_columns(dataset, new_columns)
        dataset.columns = [c.to_record() for c in columns]
        try:
            if self.table_exists(dataset):
                self.create_or_alter_table(dataset)
            self.db.commit()
        except Exception:
            # rollback expires the instance, so columns reload as they were
            self.db.rollback()
            raise
        cache_delete_prefix(dataset_cache_prefix(dataset.id))
        logger.info(f"Dataset {dataset.id} now has {len(columns)} columns")
        return True

    def delete_columns(self, dataset: Dataset) -> bool:
        dataset.columns = None
        self.drop_table(dataset)
        for source_file in dataset.source_files:
            source_file.reset_new()
        dataset.last_import_at = None
        self.db.commit()
        cache_delete_prefix(dataset_cache_prefix(dataset.id))
        logger.info(f"Deleted columns of dataset {dataset.id}")
        return True

    # -- backing table ----------------------------------------------------

    def table_exists(self, dataset: Dataset) -> bool:
        return self.dwh.table_exists(dataset.table_name)

    def create_or_alter_table(self, dataset: Dataset):
        if not dataset.column_definitions:
            raise DatasetTableError("Cannot create dataset table without columns")
        return self.dwh.create_or_alter_table(dataset.table_name, dataset.columns_with_source_columns())

    def drop_table(self, dataset: Dataset) -> None:
        self.dwh.drop_table(dataset.table_name)

    def data_rows_count(self, dataset: Dataset) -> int:
        return self.dwh.count_rows(dataset.table_name)

    # -- search -----------------------------------------------------------

    def data_search(
        self,
        dataset: Dataset,
        query_string: Optional[str] = None,
        params: Union[SearchParams, Mapping[str, Any], None] = None,
    ) -> Dict[str, Any]:
        if not dataset.column_definitions:
            raise DatasetTableError("Dataset has no columns to search")
        if not isinstance(params, SearchParams):
            params = SearchParams.model_validate(
                {k: v for k, v in dict(params or {}).items() if v is not None}
            )

        cache_key = self._search_cache_key(dataset, query_string, params)
        cached = cache_get(cache_key)
        if cached is not None:
            return cached

        result = DatasetSearch(dataset, self.dwh).run(query_string, params)
        cache_set(cache_key, result)
        return result

    @staticmethod
    def _search_cache_key(dataset: Dataset, query_string: Optional[str], params: SearchParams) -> str:
        payload = json.dumps(
            {"q": query_string or "", "columns": dataset.table_column_names, **params.model_dump()},
            sort_keys=True,
        )
        digest = hashlib.md5(payload.encode("utf-8")).hexdigest()
        return f"{dataset_cache_prefix(dataset.id)}search:{digest}"
