"""
Destination Store Interface

Curated tables are replaceable value sets: every run truncates a table
and writes its full curated snapshot.
"""

from abc import ABC, abstractmethod

import polars as pl

from src.errors import StorageError
from src.transformation.tables import CURATED_SCHEMAS, SilverTable


class SilverStore(ABC):
    """Write side of the pipeline"""

    def check_columns(self, table: SilverTable, df: pl.DataFrame, operation: str) -> None:
        """Raise StorageError unless df has exactly the curated columns of table, in order"""
        expected = list(CURATED_SCHEMAS[table])
        if df.columns != expected:
            raise StorageError(
                table.value, operation, f"schema mismatch: expected {expected}, got {df.columns}"
            )

    @abstractmethod
    def truncate(self, table: SilverTable) -> None:
        """Remove every row of table.

        Raises:
            StorageError: If the store rejects the operation
        """

    @abstractmethod
    def bulk_write(self, table: SilverTable, df: pl.DataFrame) -> int:
        """Append df to table and return the number of rows written.

        Raises:
            StorageError: If the store rejects the operation or df does
                not match the curated schema
        """

    def replace(self, table: SilverTable, df: pl.DataFrame) -> int:
        """
        Truncate table and write df as one unit.

        Backends override this so that readers never observe the empty
        table between the two steps and a failed write leaves the
        previous contents in place.
        """
        self.truncate(table)
        return self.bulk_write(table, df)

    @abstractmethod
    def read(self, table: SilverTable) -> pl.DataFrame:
        """Return the current contents of table in the curated schema."""
