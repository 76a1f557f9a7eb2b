import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import pandas as pd
from sqlalchemy import String, cast, func, or_, select

from datahub_api.db.dwh import Dwh
from datahub_api.models.dataset import Dataset
from datahub_api.schemas.column import ColumnDefinition, DataType
from datahub_api.schemas.dataset import SearchParams
from datahub_api.services.dataset_query import ANY, Condition, DatasetQuery, Operator
from datahub_api.utils.serialization import like_text, serialize_value

logger = logging.getLogger(__name__)


class DatasetSearch:
    """Compiles a search string plus sort/page parameters into queries on a dataset table."""

    def __init__(self, dataset: Dataset, dwh: Dwh):
        self.dataset = dataset
        self.dwh = dwh
        self.table = dwh.build_table(dataset.table_name, dataset.column_definitions)

    @staticmethod
    def bind_value(column: ColumnDefinition, raw_value: Optional[str]) -> Any:
        """Raw search text as a value of the column's type; None when it does not parse."""
        if raw_value is None:
            return None
        try:
            if column.data_type == DataType.STRING:
                return raw_value
            if column.data_type == DataType.INTEGER:
                return int(raw_value)
            if column.data_type == DataType.DECIMAL:
                return Decimal(raw_value)
            if column.data_type in (DataType.DATE, DataType.DATETIME):
                parsed = pd.to_datetime(raw_value)
                if pd.isna(parsed):
                    return None
                if column.data_type == DataType.DATE:
                    return parsed.date()
                return parsed.to_pydatetime()
        except (ValueError, TypeError, ArithmeticError, OverflowError):
            logger.debug(f"Ignoring value {raw_value!r} for {column.data_type.value} column {column.name!r}")
            return None
        return None

    def column_condition(self, operator: Operator, column: ColumnDefinition, raw_value: str):
        value = self.bind_value(column, raw_value)
        if value is None:
            return None
        if operator == Operator.CONTAINS:
            target = self.table.c[column.column_name]
            if not column.is_string:
                target = cast(target, String)
            return target.contains(like_text(value), autoescape=True)
        return None

    def relation_condition(self, condition: Condition):
        operator, attribute, value = condition
        if attribute is ANY:
            conditions = [
                c for c in (self.column_condition(operator, column, value) for column in self.dataset.string_columns)
                if c is not None
            ]
            return or_(*conditions) if conditions else None

        column = self.dataset.find_column(attribute)
        if column is None:
            return None
        return self.column_condition(operator, column, value)

    def conditions(self, query_string: Optional[str]) -> List:
        if not query_string or not query_string.strip():
            return []
        query = DatasetQuery(query_string)
        compiled = (self.relation_condition(condition) for condition in query.parts)
        return [c for c in compiled if c is not None]

    def statements(self, query_string: Optional[str], params: SearchParams) -> Tuple[Any, Any]:
        """(rows statement, count statement); both share the same WHERE clause."""
        where = self.conditions(query_string)

        count_statement = select(func.count()).select_from(self.table).where(*where)
        rows_statement = select(*[self.table.c[name] for name in self.dataset.table_column_names]).where(*where)

        column = self.dataset.find_column(params.sort) if params.sort else None
        if column is not None:
            sort_column = self.table.c[column.column_name]
            rows_statement = rows_statement.order_by(
                sort_column.desc() if params.sort_direction == "desc" else sort_column.asc()
            )

        offset = params.per_page * (params.page - 1)
        rows_statement = rows_statement.limit(params.per_page).offset(offset)
        return rows_statement, count_statement

    def run(
        self,
        query_string: Optional[str],
        params: Union[SearchParams, Mapping[str, Any], None] = None,
    ) -> Dict[str, Any]:
        if not isinstance(params, SearchParams):
            params = SearchParams.model_validate(
                {k: v for k, v in dict(params or {}).items() if v is not None}
            )

        rows_statement, count_statement = self.statements(query_string, params)
        logger.debug(
            f"[data_search] SQL: {rows_statement.compile(dialect=self.dwh.engine.dialect)}"
        )

        column_names = self.dataset.column_names
        rows = [
            dict(zip(column_names, (serialize_value(v) for v in row)))
            for row in self.dwh.select_rows(rows_statement)
        ]
        return {
            "rows": rows,
            "total_results": self.dwh.select_value(count_statement) or 0,
            "page": params.page,
            "per_page": params.per_page,
        }
