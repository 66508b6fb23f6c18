"""
Data Cleaning Module

Field normalizers for raw CRM and ERP extracts.
Handles:
- Whitespace trimming
- Code-to-label expansion for low cardinality columns
- Identifier prefix and separator removal
- Null-to-default and future-date-to-null substitution
- Deduplication by recency

Every normalizer is total: unknown or malformed input resolves to a
documented fallback instead of raising. The scalar functions define the
rule for one value; DataCleaner applies the same rule to whole columns.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

NOT_AVAILABLE = "n/a"

MARITAL_STATUS_LABELS: Dict[str, str] = {
    "S": "Single",
    "M": "Married",
}

GENDER_LABELS: Dict[str, str] = {
    "M": "Male",
    "F": "Female",
}

PRODUCT_LINE_LABELS: Dict[str, str] = {
    "M": "Mountain",
    "R": "Road",
    "S": "Sport",
    "T": "Touring",
}

COUNTRY_LABELS: Dict[str, str] = {
    "DE": "Germany",
    "US": "United States",
    "USA": "United States",
}

DateLike = Union[date, datetime]


def _lookup_table(mapping: Dict[str, str]) -> Dict[str, str]:
    """Upper-cased lookup accepting both the short codes and the labels"""
    table = {label.upper(): label for label in mapping.values()}
    table.update({code.upper(): label for code, label in mapping.items()})
    return table


# =============================================================================
# SCALAR NORMALIZERS
# =============================================================================

def trim(value: Optional[str]) -> Optional[str]:
    """Strip leading and trailing whitespace, keeping nulls"""
    if value is None:
        return None
    return str(value).strip()


def normalize_code(
    value: Optional[str],
    mapping: Dict[str, str],
    default: str = NOT_AVAILABLE,
) -> str:
    """
    Expand a short categorical code to its label.

    The value is trimmed and upper-cased before lookup. Labels are
    recognised as well, so normalizing an already-normalized value
    returns it unchanged.

    Args:
        value: Raw code
        mapping: Code to label mapping
        default: Returned for null, empty or unknown codes

    Returns:
        Label or default
    """
    if value is None:
        return default
    key = str(value).strip().upper()
    if not key:
        return default
    return _lookup_table(mapping).get(key, default)


def normalize_country(value: Optional[str]) -> str:
    """Expand the DE, US and USA codes; blank becomes n/a, anything else passes through trimmed"""
    trimmed = trim(value)
    if not trimmed:
        return NOT_AVAILABLE
    return COUNTRY_LABELS.get(trimmed.upper(), trimmed)


def strip_prefix(value: Optional[str], prefix: str) -> Optional[str]:
    """Remove a literal prefix from an identifier if present"""
    if value is None or not prefix:
        return value
    if value.startswith(prefix):
        return value[len(prefix):]
    return value


def strip_chars(value: Optional[str], chars: str) -> Optional[str]:
    """Remove every occurrence of the given characters from an identifier"""
    if value is None:
        return None
    return "".join(ch for ch in value if ch not in chars)


def future_date_to_null(value: Optional[DateLike], now: DateLike) -> Optional[DateLike]:
    """Return None when value lies strictly after now, else value"""
    if value is None:
        return None
    if isinstance(value, datetime) and isinstance(now, datetime):
        return None if value > now else value
    value_day = value.date() if isinstance(value, datetime) else value
    now_day = now.date() if isinstance(now, datetime) else now
    return None if value_day > now_day else value


# =============================================================================
# COLUMN CLEANER
# =============================================================================

class DataCleaner:
    """
    Applies the field normalizers to polars DataFrames.

    Each method returns a new DataFrame and gives the same per-value
    result as the scalar function of the same rule.

    Example:
        cleaner = DataCleaner()
        df = cleaner.trim_strings(df)
        df = cleaner.expand_codes(df, {"cst_gndr": GENDER_LABELS})
    """

    def trim_strings(self, df: pl.DataFrame, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """Trim whitespace from string columns"""
        string_cols = columns or [
            col for col, dtype in zip(df.columns, df.dtypes)
            if dtype == pl.Utf8
        ]

        for col in string_cols:
            if col in df.columns:
                df = df.with_columns(
                    pl.col(col).str.strip_chars().alias(col)
                )

        return df

    def expand_codes(
        self,
        df: pl.DataFrame,
        mappings: Dict[str, Dict[str, str]],
        default: str = NOT_AVAILABLE,
    ) -> pl.DataFrame:
        """Replace code columns with their labels (see normalize_code)"""
        for col, mapping in mappings.items():
            if col not in df.columns:
                continue
            key = pl.col(col).cast(pl.Utf8).str.strip_chars().str.to_uppercase()
            df = df.with_columns(
                key.replace_strict(_lookup_table(mapping), default=default, return_dtype=pl.Utf8)
                .fill_null(default)
                .alias(col)
            )

        return df

    def expand_countries(self, df: pl.DataFrame, column: str = "cntry") -> pl.DataFrame:
        """Column form of normalize_country"""
        if column not in df.columns:
            return df

        trimmed = pl.col(column).cast(pl.Utf8).str.strip_chars()
        df = df.with_columns(
            pl.when(trimmed.is_null() | (trimmed == ""))
            .then(pl.lit(NOT_AVAILABLE))
            .otherwise(
                trimmed.str.to_uppercase().replace_strict(
                    COUNTRY_LABELS, default=trimmed, return_dtype=pl.Utf8
                )
            )
            .alias(column)
        )

        return df

    def strip_prefix(self, df: pl.DataFrame, column: str, prefix: str) -> pl.DataFrame:
        """Column form of strip_prefix"""
        if column not in df.columns:
            return df
        return df.with_columns(pl.col(column).str.strip_prefix(prefix).alias(column))

    def remove_chars(self, df: pl.DataFrame, column: str, chars: str) -> pl.DataFrame:
        """Column form of strip_chars"""
        if column not in df.columns:
            return df
        expr = pl.col(column)
        for ch in chars:
            expr = expr.str.replace_all(ch, "", literal=True)
        return df.with_columns(expr.alias(column))

    def null_future_dates(self, df: pl.DataFrame, column: str, now: datetime) -> pl.DataFrame:
        """Column form of future_date_to_null"""
        if column not in df.columns:
            return df

        threshold: DateLike = now.date() if df.schema[column] == pl.Date else now
        return df.with_columns(
            pl.when(pl.col(column) > pl.lit(threshold))
            .then(None)
            .otherwise(pl.col(column))
            .alias(column)
        )

    def fill_nulls(
        self,
        df: pl.DataFrame,
        fill_values: Dict[str, Any]
    ) -> pl.DataFrame:
        """Fill null values with specified defaults"""
        for col, value in fill_values.items():
            if col in df.columns:
                df = df.with_columns(pl.col(col).fill_null(value).alias(col))

        return df

    def keep_most_recent(
        self,
        df: pl.DataFrame,
        key: str,
        order_by: str,
    ) -> pl.DataFrame:
        """
        Keep one row per key: the one with the greatest order_by value.

        Rows with a null key are dropped. A null order_by value ranks
        below any date, and ties go to the row that appears first in
        the input. Surviving rows keep their input order.

        Args:
            df: Input DataFrame
            key: Identity column
            order_by: Recency column

        Returns:
            Deduplicated DataFrame
        """
        before = len(df)
        df = (
            df.with_row_index("_row")
            .filter(pl.col(key).is_not_null())
            .sort([order_by, "_row"], descending=[True, False], nulls_last=True)
            .unique(subset=[key], keep="first", maintain_order=True)
            .sort("_row")
            .drop("_row")
        )

        logger.debug("Kept most recent rows", key=key, before=before, after=len(df))
        return df
