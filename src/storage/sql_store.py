"""
SQL Destination Store

Writes curated tables through SQLAlchemy Core. replace() runs the
DELETE and the chunked INSERTs inside one transaction, so a failed
write rolls back to the previous contents.
"""

from typing import Any, Dict, List

import polars as pl
import structlog
from sqlalchemy import Connection, Engine, Table, delete, insert
from sqlalchemy.exc import SQLAlchemyError

from src.database.models import Base
from src.errors import StorageError
from src.transformation.tables import CURATED_SCHEMAS, SilverTable

from .base import SilverStore

logger = structlog.get_logger(__name__)


class SqlSilverStore(SilverStore):
    """
    Silver tables in a relational database.

    Example:
        store = SqlSilverStore(engine)
        store.ensure_schema()
        store.replace(SilverTable.CUSTOMERS, curated_df)
    """

    def __init__(self, engine: Engine, chunk_size: int = 1000):
        self.engine = engine
        self.chunk_size = chunk_size

    def _table(self, table: SilverTable) -> Table:
        return Base.metadata.tables[table.value]

    def ensure_schema(self) -> None:
        """Create missing silver tables"""
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StorageError("silver", "create_schema", str(e), code=getattr(e, "code", None)) from e

    def _truncate(self, conn: Connection, table: SilverTable) -> None:
        conn.execute(delete(self._table(table)))

    def _insert(self, conn: Connection, table: SilverTable, df: pl.DataFrame) -> int:
        records: List[Dict[str, Any]] = df.to_dicts()
        stmt = insert(self._table(table))

        for i in range(0, len(records), self.chunk_size):
            chunk = records[i:i + self.chunk_size]
            conn.execute(stmt, chunk)

        return len(records)

    def truncate(self, table: SilverTable) -> None:
        logger.info("Truncating table", table=table.value)
        try:
            with self.engine.begin() as conn:
                self._truncate(conn, table)
        except SQLAlchemyError as e:
            raise StorageError(table.value, "truncate", str(e), code=getattr(e, "code", None)) from e

    def bulk_write(self, table: SilverTable, df: pl.DataFrame) -> int:
        logger.info("Inserting data", table=table.value, rows=len(df))
        self.check_columns(table, df, "bulk_write")
        try:
            with self.engine.begin() as conn:
                return self._insert(conn, table, df)
        except SQLAlchemyError as e:
            raise StorageError(table.value, "bulk_write", str(e), code=getattr(e, "code", None)) from e

    def replace(self, table: SilverTable, df: pl.DataFrame) -> int:
        logger.info("Replacing table contents", table=table.value, rows=len(df))
        self.check_columns(table, df, "replace")
        try:
            with self.engine.begin() as conn:
                self._truncate(conn, table)
                return self._insert(conn, table, df)
        except SQLAlchemyError as e:
            raise StorageError(table.value, "replace", str(e), code=getattr(e, "code", None)) from e

    def read(self, table: SilverTable) -> pl.DataFrame:
        """Read a curated table back, without the audit columns"""
        sql_table = self._table(table)
        columns = [c for c in sql_table.columns if c.name not in ("row_id", "dwh_create_date")]
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(sql_table.select().with_only_columns(*columns).order_by(sql_table.c.row_id))
                return pl.from_dicts(
                    [dict(r._mapping) for r in rows],
                    schema=CURATED_SCHEMAS[table],
                )
        except SQLAlchemyError as e:
            raise StorageError(table.value, "read", str(e), code=getattr(e, "code", None)) from e
