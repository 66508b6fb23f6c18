"""
Parquet Destination Store

Writes each curated table to <curated_path>/<table>.parquet. Writes go
to a staging file first and are swapped in with os.replace, so the
published file is always either the previous or the new snapshot.
"""

import os
from pathlib import Path
from typing import Optional, Union

import polars as pl
import structlog

from src.config import get_settings
from src.errors import StorageError
from src.transformation.tables import CURATED_SCHEMAS, SilverTable

from .base import SilverStore

logger = structlog.get_logger(__name__)
settings = get_settings()


class ParquetSilverStore(SilverStore):
    """Silver tables as parquet files in the curated zone"""

    def __init__(self, curated_path: Optional[Union[str, Path]] = None):
        self.curated_path = Path(curated_path or settings.data_lake.curated_path)

    def path_for(self, table: SilverTable) -> Path:
        return self.curated_path / f"{table.value}.parquet"

    def _staging_path(self, table: SilverTable) -> Path:
        return self.curated_path / f".{table.value}.parquet.staging"

    def _publish(self, table: SilverTable, df: pl.DataFrame, operation: str) -> int:
        staging = self._staging_path(table)
        try:
            self.curated_path.mkdir(parents=True, exist_ok=True)
            df.write_parquet(staging)
            os.replace(staging, self.path_for(table))
        except (OSError, pl.exceptions.PolarsError) as e:
            staging.unlink(missing_ok=True)
            raise StorageError(table.value, operation, str(e)) from e

        logger.info(f"Written {len(df)} rows to {self.path_for(table)}", table=table.value)
        return len(df)

    def truncate(self, table: SilverTable) -> None:
        try:
            self.path_for(table).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(table.value, "truncate", str(e)) from e

    def bulk_write(self, table: SilverTable, df: pl.DataFrame) -> int:
        self.check_columns(table, df, "bulk_write")
        existing = self.read(table)
        combined = pl.concat([existing, df], how="vertical_relaxed")
        self._publish(table, combined, "bulk_write")
        return len(df)

    def replace(self, table: SilverTable, df: pl.DataFrame) -> int:
        self.check_columns(table, df, "replace")
        return self._publish(table, df, "replace")

    def read(self, table: SilverTable) -> pl.DataFrame:
        """Read a curated table back; an absent file reads as an empty table"""
        path = self.path_for(table)
        if not path.exists():
            return pl.DataFrame(schema=CURATED_SCHEMAS[table])
        try:
            return pl.read_parquet(path)
        except (OSError, pl.exceptions.PolarsError) as e:
            raise StorageError(table.value, "read", str(e)) from e
