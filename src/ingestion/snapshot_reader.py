"""
Raw Snapshot Reader

Provides the full current snapshot of each raw source table.
Supports:
- CSV extracts laid out per source system (source_crm/, source_erp/)
- In-memory frames for tests and embedding
- Conforming every snapshot to the declared raw schema
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

import polars as pl
import structlog

from src.config import get_settings
from src.errors import SourceReadError
from src.transformation.tables import RAW_SCHEMAS, SilverTable

logger = structlog.get_logger(__name__)
settings = get_settings()


RAW_FILES: Dict[SilverTable, str] = {
    SilverTable.CUSTOMERS: "source_crm/cust_info.csv",
    SilverTable.PRODUCTS: "source_crm/prd_info.csv",
    SilverTable.SALES: "source_crm/sales_details.csv",
    SilverTable.DEMOGRAPHICS: "source_erp/cust_az12.csv",
    SilverTable.LOCATIONS: "source_erp/loc_a101.csv",
    SilverTable.CATEGORIES: "source_erp/px_cat_g1v2.csv",
}

NULL_VALUES: List[str] = ["", "NULL", "null", "None"]


def conform_snapshot(df: pl.DataFrame, table: SilverTable) -> pl.DataFrame:
    """
    Conform a raw frame to the table's raw schema.

    Column names are matched case-insensitively, extra columns are
    dropped and values are cast non-strictly (unparseable values become
    null). Date text is parsed as ISO YYYY-MM-DD.

    Raises:
        SourceReadError: If a schema column is missing
    """
    schema = RAW_SCHEMAS[table]
    df = df.rename({col: col.strip().lower() for col in df.columns})

    missing = [col for col in schema if col not in df.columns]
    if missing:
        raise SourceReadError(table.value, f"missing columns {missing}")

    columns = []
    for col, dtype in schema.items():
        expr = pl.col(col)
        if df.schema[col] == pl.Utf8 and dtype != pl.Utf8:
            expr = expr.str.strip_chars()
            if dtype == pl.Date:
                expr = expr.str.to_date("%Y-%m-%d", strict=False)
        columns.append(expr.cast(dtype, strict=False).alias(col))

    return df.select(columns)


class SnapshotProvider(ABC):
    """Read side of the pipeline: one full snapshot per raw table"""

    @abstractmethod
    def read(self, table: SilverTable) -> pl.DataFrame:
        """Return the full current snapshot of table's raw source"""


class CsvSnapshotProvider(SnapshotProvider):
    """
    Reads raw extracts from CSV files.

    Example:
        provider = CsvSnapshotProvider("datasets")
        df = provider.read(SilverTable.CUSTOMERS)
    """

    def __init__(self, raw_path: Optional[Union[str, Path]] = None, delimiter: str = ","):
        self.raw_path = Path(raw_path or settings.data_lake.raw_path)
        self.delimiter = delimiter

    def path_for(self, table: SilverTable) -> Path:
        return self.raw_path / RAW_FILES[table]

    def read(self, table: SilverTable) -> pl.DataFrame:
        file_path = self.path_for(table)
        if not file_path.exists():
            raise SourceReadError(table.value, f"file not found: {file_path}")

        try:
            # Read everything as text and let conform_snapshot do the typing
            df = pl.read_csv(
                file_path,
                separator=self.delimiter,
                infer_schema=False,
                null_values=NULL_VALUES,
            )
        except (OSError, pl.exceptions.PolarsError) as e:
            raise SourceReadError(table.value, str(e)) from e

        logger.info("Read raw snapshot", table=table.value, file=str(file_path), rows=len(df))
        return conform_snapshot(df, table)


class InMemorySnapshotProvider(SnapshotProvider):
    """Serves snapshots from frames held in memory"""

    def __init__(self, frames: Mapping[SilverTable, pl.DataFrame]):
        self._frames = dict(frames)

    def read(self, table: SilverTable) -> pl.DataFrame:
        if table not in self._frames:
            raise SourceReadError(table.value, "no snapshot registered")
        return conform_snapshot(self._frames[table], table)
