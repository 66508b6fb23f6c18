"""
Data Enrichment Module

Record-level validators and derived columns for the silver layer.
Includes:
- Integer-encoded (YYYYMMDD) date decoding
- Product validity periods (end date from the next start date)
- Category and product key extraction from composite product keys
- Sales, quantity and price reconciliation
"""

from datetime import date, datetime
from typing import Any, List, Optional

import polars as pl
import structlog

logger = structlog.get_logger(__name__)

YYYYMMDD_FORMAT = "%Y%m%d"


class MalformedFieldError(ValueError):
    """A raw field does not have the expected shape.

    Only raised and caught inside the derivers: the field resolves to
    null and the record is kept.
    """


def _coerce_yyyymmdd(value: Any) -> date:
    """Decode an 8-digit YYYYMMDD value or raise MalformedFieldError"""
    if isinstance(value, bool):
        raise MalformedFieldError(f"Not an integer date: {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise MalformedFieldError(f"Not an integer date: {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedFieldError(f"Not an integer date: {value!r}") from exc

    digits = str(number)
    if number == 0 or len(digits) != 8:
        raise MalformedFieldError(f"Expected 8 digits, got {digits!r}")

    try:
        return datetime.strptime(digits, YYYYMMDD_FORMAT).date()
    except ValueError as exc:
        raise MalformedFieldError(f"Not a calendar date: {digits!r}") from exc


def parse_yyyymmdd_int(value: Any) -> Optional[date]:
    """
    Decode an integer-encoded date.

    Args:
        value: Integer such as 20230815

    Returns:
        The calendar date, or None for 0, null, a digit length other
        than 8, or any value that is not a real date
    """
    if value is None:
        return None
    try:
        return _coerce_yyyymmdd(value)
    except MalformedFieldError:
        return None


class DataEnricher:
    """
    Derived columns and cross-field reconciliation for curated tables.

    All methods are vectorised polars transformations and keep the
    input row order.
    """

    def decode_int_dates(self, df: pl.DataFrame, columns: List[str]) -> pl.DataFrame:
        """Column form of parse_yyyymmdd_int"""
        for col in columns:
            if col not in df.columns:
                continue
            digits = pl.col(col).cast(pl.Utf8)
            df = df.with_columns(
                pl.when((pl.col(col) == 0) | (digits.str.len_chars() != 8))
                .then(None)
                .otherwise(digits.str.to_date(YYYYMMDD_FORMAT, strict=False))
                .cast(pl.Date)
                .alias(col)
            )

        return df

    def derive_product_period_end(
        self,
        df: pl.DataFrame,
        key: str = "prd_key",
        start: str = "prd_start_dt",
        end: str = "prd_end_dt",
    ) -> pl.DataFrame:
        """
        Derive the end of each row's validity period.

        Within each key, rows are ordered by start date (nulls first);
        a row ends one day before the next row's start. The last row of
        each key is open-ended (null).

        Args:
            df: Product rows
            key: Partition column
            start: Period start column
            end: Name of the derived column

        Returns:
            DataFrame with the end column added
        """
        return (
            df.with_row_index("_row")
            .sort([key, start], nulls_last=False, maintain_order=True)
            .with_columns(
                pl.col(start).shift(-1).over(key).dt.offset_by("-1d").alias(end)
            )
            .sort("_row")
            .drop("_row")
        )

    def split_product_key(self, df: pl.DataFrame, column: str = "prd_key") -> pl.DataFrame:
        """
        Split a composite product key such as AC-HE-HL-U509-B.

        The first five characters become cat_id (with '-' replaced by
        '_'); characters from position 7 onward replace the key.
        """
        if column not in df.columns:
            return df

        return df.with_columns([
            pl.col(column).str.slice(0, 5).str.replace_all("-", "_", literal=True).alias("cat_id"),
            pl.col(column).str.slice(6).alias(column),
        ])

    def reconcile_sales(
        self,
        df: pl.DataFrame,
        sales: str = "sls_sales",
        quantity: str = "sls_quantity",
        price: str = "sls_price",
    ) -> pl.DataFrame:
        """
        Make sales, quantity and price agree.

        Price is settled first: a null or negative price is derived as
        |sales| / quantity (null when quantity is 0), otherwise its
        absolute value is kept. Sales is then recomputed as
        quantity * price whenever it is null, not positive, or differs
        from that product. Where price cannot be derived, sales is null
        as well. Quantity is passed through.
        """
        raw_sales = pl.col(sales)
        raw_price = pl.col(price)
        qty = pl.col(quantity)

        df = df.with_columns(
            pl.when(raw_price.is_null() | (raw_price < 0))
            .then(raw_sales.abs() / pl.when(qty != 0).then(qty))
            .otherwise(raw_price.abs())
            .cast(pl.Float64)
            .alias(price)
        )

        expected = (qty * pl.col(price)).cast(pl.Float64)
        needs_recompute = (raw_sales.is_null() | (raw_sales <= 0) | (raw_sales != expected)).fill_null(True)

        df = df.with_columns(
            pl.when(needs_recompute)
            .then(expected)
            .otherwise(raw_sales)
            .cast(pl.Float64)
            .alias(sales)
        )

        return df
