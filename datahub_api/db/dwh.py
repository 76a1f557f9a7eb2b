"""
Data warehouse access: the store holding one physical table per dataset.
Table DDL (create, reconcile, drop), row reads and bulk inserts go through Dwh;
statements are built with SQLAlchemy Core so values always travel as bound parameters.
"""
import hashlib
import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    func,
    inspect,
    select,
    table as table_clause,
    text,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.schema import CreateColumn

from datahub_api.schemas.column import ColumnDefinition, DataType
from datahub_api.utils.naming import normalize_name

logger = logging.getLogger(__name__)

COLUMN_NAME_PREFIX = "c_"
COLUMN_SLUG_MAX_LENGTH = 40


def generate_column_name(name: str, existing: Iterable[str] = ()) -> str:
    """
    Storage identifier for a display name: c_<slug>_<md5[:8]>.
    Same name always yields the same base identifier; a numeric suffix is added
    only when the base collides with one of `existing`.
    """
    slug = normalize_name(name or "")[:COLUMN_SLUG_MAX_LENGTH].strip("_") or "column"
    digest = hashlib.md5((name or "").encode("utf-8")).hexdigest()[:8]
    base = f"{COLUMN_NAME_PREFIX}{slug}_{digest}"

    taken = set(existing)
    candidate = base
    suffix = 2
    while candidate in taken:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate


def column_type(column: ColumnDefinition):
    if column.data_type == DataType.STRING:
        return String(column.limit or 255)
    if column.data_type == DataType.INTEGER:
        # limit is the byte size of the integer
        return BigInteger() if (column.limit or 4) > 4 else Integer()
    if column.data_type == DataType.DECIMAL:
        return Numeric(column.precision, column.scale)
    if column.data_type == DataType.DATE:
        return Date()
    if column.data_type == DataType.DATETIME:
        return DateTime()
    raise ValueError(f"Unsupported data type: {column.data_type}")


class Dwh:
    def __init__(self, engine: Engine):
        self.engine = engine

    def quote(self, identifier: str) -> str:
        return self.engine.dialect.identifier_preparer.quote(identifier)

    def build_table(self, table_name: str, columns: Sequence[ColumnDefinition]) -> Table:
        """Table object for a dataset table; not bound and not created."""
        return Table(
            table_name,
            MetaData(),
            *[Column(c.column_name, column_type(c), nullable=True) for c in columns],
        )

    def table_exists(self, table_name: str) -> bool:
        return inspect(self.engine).has_table(table_name)

    def create_or_alter_table(self, table_name: str, columns: Sequence[ColumnDefinition]) -> Table:
        """
        Create the table, or bring an existing one in line with `columns`:
        missing columns are added and columns no longer defined are dropped.
        No primary key is added.
        """
        table = self.build_table(table_name, columns)
        with self.engine.begin() as conn:
            inspector = inspect(conn)
            if not inspector.has_table(table_name):
                table.create(conn)
                logger.info(f"Created table {table_name} with {len(columns)} columns")
                return table

            existing = [c["name"] for c in inspector.get_columns(table_name)]
            wanted = {c.name for c in table.columns}
            quoted_table = self.quote(table_name)

            for column in table.columns:
                if column.name in existing:
                    continue
                column_ddl = CreateColumn(column).compile(dialect=conn.dialect)
                conn.execute(text(f"ALTER TABLE {quoted_table} ADD COLUMN {column_ddl}"))
                logger.info(f"Added column {column.name} to {table_name}")

            for column_name in existing:
                if column_name in wanted:
                    continue
                conn.execute(text(f"ALTER TABLE {quoted_table} DROP COLUMN {self.quote(column_name)}"))
                logger.info(f"Dropped column {column_name} from {table_name}")
        return table

    def drop_table(self, table_name: str, connection: Optional[Connection] = None) -> None:
        """Drop if present; pass `connection` to run inside a transaction already holding the database."""
        Table(table_name, MetaData()).drop(connection if connection is not None else self.engine, checkfirst=True)
        logger.info(f"Dropped table {table_name} (if it existed)")

    def count_rows(self, table_name: str) -> int:
        return self.select_value(select(func.count()).select_from(table_clause(table_name))) or 0

    def select_value(self, statement) -> Any:
        with self.engine.connect() as conn:
            return conn.execute(statement).scalar()

    def select_rows(self, statement) -> List[tuple]:
        with self.engine.connect() as conn:
            return [tuple(row) for row in conn.execute(statement)]

    def execute(self, statement) -> int:
        with self.engine.begin() as conn:
            return conn.execute(statement).rowcount

    def insert_rows(self, table: Table, rows: Sequence[dict], batch_size: int = 1000) -> int:
        if not rows:
            return 0
        with self.engine.begin() as conn:
            return self._insert_batches(conn, table, rows, batch_size)

    def replace_rows(self, table: Table, where, rows: Sequence[dict], batch_size: int = 1000) -> Tuple[int, int]:
        """
        Delete the rows matching `where` and insert `rows` in one transaction,
        so a failed insert leaves the previous rows in place.
        Returns (deleted, inserted).
        """
        with self.engine.begin() as conn:
            deleted = conn.execute(table.delete().where(*where)).rowcount
            inserted = self._insert_batches(conn, table, rows, batch_size) if rows else 0
        return deleted, inserted

    @staticmethod
    def _insert_batches(conn: Connection, table: Table, rows: Sequence[dict], batch_size: int) -> int:
        inserted = 0
        for start in range(0, len(rows), batch_size):
            batch = rows[start:start + batch_size]
            conn.execute(table.insert(), list(batch))
            inserted += len(batch)
        return inserted

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))


_dwh: Optional[Dwh] = None


def get_dwh() -> Dwh:
    """Process-wide warehouse; built from settings on first use."""
    global _dwh
    if _dwh is None:
        from datahub_api.core.config import settings
        from datahub_api.db.session import build_engine, engine

        if settings.dwh_database_url == settings.DATABASE_URL:
            _dwh = Dwh(engine)
        else:
            _dwh = Dwh(build_engine(settings.dwh_database_url))
    return _dwh


def set_dwh(dwh: Optional[Dwh]) -> None:
    global _dwh
    _dwh = dwh
