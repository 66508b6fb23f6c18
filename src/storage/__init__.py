"""
Destination Store Module
"""
from .base import SilverStore
from .parquet_store import ParquetSilverStore
from .sql_store import SqlSilverStore

__all__ = [
    "SilverStore",
    "ParquetSilverStore",
    "SqlSilverStore",
]
