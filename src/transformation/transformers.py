"""
Silver Transformer

Table-specific rule sets that turn a raw snapshot into its curated
form. Each transform is a pure function of the snapshot and the run's
processing time: no curated state is read, and tables do not depend on
each other.
"""

from datetime import datetime
from typing import Callable, Dict, Optional

import polars as pl
import structlog

from .cleaners import (
    DataCleaner,
    GENDER_LABELS,
    MARITAL_STATUS_LABELS,
    PRODUCT_LINE_LABELS,
)
from .enrichers import DataEnricher
from .tables import CURATED_SCHEMAS, SilverTable

logger = structlog.get_logger(__name__)

DEMOGRAPHIC_ID_PREFIX = "NAS"

# Known stale category codes in the ERP catalogue
CATEGORY_ID_CORRECTIONS: Dict[str, str] = {
    "CO_PD": "CO_PE",
}


class SilverTransformer:
    """
    Curates raw CRM and ERP snapshots.

    Every transform starts by trimming all text columns, so no curated
    string carries leading or trailing whitespace.

    Example:
        transformer = SilverTransformer(now=datetime.now())
        curated = transformer.transform(SilverTable.CUSTOMERS, raw_df)
    """

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or datetime.now()
        self.cleaner = DataCleaner()
        self.enricher = DataEnricher()
        self._transforms: Dict[SilverTable, Callable[[pl.DataFrame], pl.DataFrame]] = {
            SilverTable.CUSTOMERS: self.transform_customers,
            SilverTable.PRODUCTS: self.transform_products,
            SilverTable.SALES: self.transform_sales,
            SilverTable.DEMOGRAPHICS: self.transform_demographics,
            SilverTable.LOCATIONS: self.transform_locations,
            SilverTable.CATEGORIES: self.transform_categories,
        }

    def transform(self, table: SilverTable, df: pl.DataFrame) -> pl.DataFrame:
        """Run the rule set for table and return the curated columns in order"""
        curated = self._transforms[table](df)
        schema = CURATED_SCHEMAS[table]
        return curated.select([pl.col(col).cast(dtype) for col, dtype in schema.items()])

    def transform_customers(self, df: pl.DataFrame) -> pl.DataFrame:
        """
        Customer master data.

        Pipeline:
        1. Trim strings
        2. Keep the most recent record per cst_id
        3. Expand marital status and gender codes
        """
        df = self.cleaner.trim_strings(df)
        df = self.cleaner.keep_most_recent(df, key="cst_id", order_by="cst_create_date")
        df = self.cleaner.expand_codes(df, {
            "cst_marital_status": MARITAL_STATUS_LABELS,
            "cst_gndr": GENDER_LABELS,
        })
        return df

    def transform_products(self, df: pl.DataFrame) -> pl.DataFrame:
        """
        Product master data.

        Pipeline:
        1. Trim strings
        2. Split composite key into cat_id and prd_key
        3. Default missing cost to 0
        4. Expand product line codes
        5. Derive prd_end_dt per prd_key
        """
        df = self.cleaner.trim_strings(df)
        df = self.enricher.split_product_key(df, "prd_key")
        df = self.cleaner.fill_nulls(df, {"prd_cost": 0})
        df = self.cleaner.expand_codes(df, {"prd_line": PRODUCT_LINE_LABELS})
        df = self.enricher.derive_product_period_end(df, key="prd_key", start="prd_start_dt", end="prd_end_dt")
        return df

    def transform_sales(self, df: pl.DataFrame) -> pl.DataFrame:
        """
        Sales order lines.

        Pipeline:
        1. Trim strings
        2. Decode YYYYMMDD integer dates
        3. Reconcile price and sales amount
        """
        df = self.cleaner.trim_strings(df)
        df = self.enricher.decode_int_dates(df, ["sls_order_dt", "sls_ship_dt", "sls_due_dt"])
        df = self.enricher.reconcile_sales(df)
        return df

    def transform_demographics(self, df: pl.DataFrame) -> pl.DataFrame:
        """ERP customer demographics: id prefix, future birthdates, gender"""
        df = self.cleaner.trim_strings(df)
        df = self.cleaner.strip_prefix(df, "cid", DEMOGRAPHIC_ID_PREFIX)
        df = self.cleaner.null_future_dates(df, "bdate", self.now)
        df = self.cleaner.expand_codes(df, {"gen": GENDER_LABELS})
        return df

    def transform_locations(self, df: pl.DataFrame) -> pl.DataFrame:
        """ERP customer locations: hyphen-free ids, country names"""
        df = self.cleaner.trim_strings(df)
        df = self.cleaner.remove_chars(df, "cid", "-")
        df = self.cleaner.expand_countries(df, "cntry")
        return df

    def transform_categories(self, df: pl.DataFrame) -> pl.DataFrame:
        """ERP product categories: pass-through apart from stale id codes"""
        df = self.cleaner.trim_strings(df)
        return df.with_columns(
            pl.col("id").replace(CATEGORY_ID_CORRECTIONS).alias("id")
        )
