"""
Data Transformation Module
"""
from .cleaners import (
    DataCleaner,
    future_date_to_null,
    normalize_code,
    normalize_country,
    strip_chars,
    strip_prefix,
    trim,
)
from .enrichers import DataEnricher, MalformedFieldError, parse_yyyymmdd_int
from .tables import CURATED_SCHEMAS, LOAD_ORDER, RAW_SCHEMAS, SilverTable, SourceSystem
from .transformers import SilverTransformer

__all__ = [
    "DataCleaner",
    "future_date_to_null",
    "normalize_code",
    "normalize_country",
    "strip_chars",
    "strip_prefix",
    "trim",
    "DataEnricher",
    "MalformedFieldError",
    "parse_yyyymmdd_int",
    "CURATED_SCHEMAS",
    "LOAD_ORDER",
    "RAW_SCHEMAS",
    "SilverTable",
    "SourceSystem",
    "SilverTransformer",
]
