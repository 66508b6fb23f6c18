"""
Silver Table Catalogue

Declares the six curated tables in load order together with the raw
and curated column layouts of each.
"""

from enum import Enum
from typing import Dict, List

import polars as pl


class SourceSystem(str, Enum):
    """Source systems feeding the silver layer"""
    CRM = "crm"
    ERP = "erp"


class SilverTable(str, Enum):
    """Curated tables, declared in load order"""
    CUSTOMERS = "crm_cust_info"
    PRODUCTS = "crm_prd_info"
    SALES = "crm_sales_details"
    DEMOGRAPHICS = "erp_cust_az12"
    LOCATIONS = "erp_loc_a101"
    CATEGORIES = "erp_px_cat_g1v2"

    @property
    def source_system(self) -> SourceSystem:
        return SourceSystem(self.value.split("_", 1)[0])


LOAD_ORDER: List[SilverTable] = list(SilverTable)


RAW_SCHEMAS: Dict[SilverTable, Dict[str, pl.DataType]] = {
    SilverTable.CUSTOMERS: {
        "cst_id": pl.Int64,
        "cst_key": pl.Utf8,
        "cst_firstname": pl.Utf8,
        "cst_lastname": pl.Utf8,
        "cst_marital_status": pl.Utf8,
        "cst_gndr": pl.Utf8,
        "cst_create_date": pl.Date,
    },
    SilverTable.PRODUCTS: {
        "prd_id": pl.Int64,
        "prd_key": pl.Utf8,
        "prd_nm": pl.Utf8,
        "prd_cost": pl.Int64,
        "prd_line": pl.Utf8,
        "prd_start_dt": pl.Date,
    },
    SilverTable.SALES: {
        "sls_ord_num": pl.Utf8,
        "sls_prd_key": pl.Utf8,
        "sls_cust_id": pl.Int64,
        "sls_order_dt": pl.Int64,
        "sls_ship_dt": pl.Int64,
        "sls_due_dt": pl.Int64,
        "sls_sales": pl.Float64,
        "sls_quantity": pl.Int64,
        "sls_price": pl.Float64,
    },
    SilverTable.DEMOGRAPHICS: {
        "cid": pl.Utf8,
        "bdate": pl.Date,
        "gen": pl.Utf8,
    },
    SilverTable.LOCATIONS: {
        "cid": pl.Utf8,
        "cntry": pl.Utf8,
    },
    SilverTable.CATEGORIES: {
        "id": pl.Utf8,
        "cat": pl.Utf8,
        "subcat": pl.Utf8,
        "maintenance": pl.Utf8,
    },
}


CURATED_SCHEMAS: Dict[SilverTable, Dict[str, pl.DataType]] = {
    SilverTable.CUSTOMERS: RAW_SCHEMAS[SilverTable.CUSTOMERS],
    SilverTable.PRODUCTS: {
        "prd_id": pl.Int64,
        "cat_id": pl.Utf8,
        "prd_key": pl.Utf8,
        "prd_nm": pl.Utf8,
        "prd_cost": pl.Int64,
        "prd_line": pl.Utf8,
        "prd_start_dt": pl.Date,
        "prd_end_dt": pl.Date,
    },
    SilverTable.SALES: {
        "sls_ord_num": pl.Utf8,
        "sls_prd_key": pl.Utf8,
        "sls_cust_id": pl.Int64,
        "sls_order_dt": pl.Date,
        "sls_ship_dt": pl.Date,
        "sls_due_dt": pl.Date,
        "sls_sales": pl.Float64,
        "sls_quantity": pl.Int64,
        "sls_price": pl.Float64,
    },
    SilverTable.DEMOGRAPHICS: RAW_SCHEMAS[SilverTable.DEMOGRAPHICS],
    SilverTable.LOCATIONS: RAW_SCHEMAS[SilverTable.LOCATIONS],
    SilverTable.CATEGORIES: RAW_SCHEMAS[SilverTable.CATEGORIES],
}
