"""
Test Suite Configuration
"""
import pytest
from datetime import date, datetime
from typing import Any, Dict, List

import polars as pl
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from src.config import Settings
from src.database.models import Base
from src.transformation.tables import RAW_SCHEMAS, SilverTable


def raw_frame(table: SilverTable, rows: List[Dict[str, Any]]) -> pl.DataFrame:
    """Build a raw snapshot frame with the table's raw schema"""
    return pl.from_dicts(rows, schema=RAW_SCHEMAS[table])


@pytest.fixture
def make_raw_frame():
    """Factory for raw snapshot frames"""
    return raw_frame


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
    )


@pytest.fixture
def now() -> datetime:
    """Fixed processing time"""
    return datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def test_engine():
    """Create test database engine"""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture
def sample_customers_df() -> pl.DataFrame:
    """Raw customers with a duplicate id, a null id and padded names"""
    return raw_frame(SilverTable.CUSTOMERS, [
        {"cst_id": 1, "cst_key": "AW00011000", "cst_firstname": " Jon", "cst_lastname": "Yang ",
         "cst_marital_status": "M", "cst_gndr": "M", "cst_create_date": date(2025, 10, 6)},
        {"cst_id": 2, "cst_key": "AW00011001", "cst_firstname": "Eugene", "cst_lastname": "Huang",
         "cst_marital_status": "S", "cst_gndr": None, "cst_create_date": date(2025, 10, 6)},
        {"cst_id": 2, "cst_key": "AW00011001", "cst_firstname": "Eugene", "cst_lastname": "Huang",
         "cst_marital_status": "M", "cst_gndr": "M", "cst_create_date": date(2025, 10, 7)},
        {"cst_id": None, "cst_key": "AW00099999", "cst_firstname": "Orphan", "cst_lastname": "Row",
         "cst_marital_status": "S", "cst_gndr": "F", "cst_create_date": date(2025, 10, 8)},
    ])


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Raw products with two versions of one product key"""
    return raw_frame(SilverTable.PRODUCTS, [
        {"prd_id": 210, "prd_key": "CO-RF-FR-R92B-58", "prd_nm": "HL Road Frame - Black- 58",
         "prd_cost": None, "prd_line": "R ", "prd_start_dt": date(2003, 7, 1)},
        {"prd_id": 212, "prd_key": "AC-HE-HL-U509-R", "prd_nm": "Sport-100 Helmet- Red",
         "prd_cost": 12, "prd_line": "S", "prd_start_dt": date(2011, 7, 1)},
        {"prd_id": 213, "prd_key": "AC-HE-HL-U509-R", "prd_nm": "Sport-100 Helmet- Red",
         "prd_cost": 14, "prd_line": "S", "prd_start_dt": date(2012, 7, 1)},
        {"prd_id": 214, "prd_key": "AC-HE-HL-U509-R", "prd_nm": "Sport-100 Helmet- Red",
         "prd_cost": 13, "prd_line": None, "prd_start_dt": date(2013, 7, 1)},
    ])


@pytest.fixture
def sample_sales_df() -> pl.DataFrame:
    """Raw sales lines covering the reconciliation cases"""
    return raw_frame(SilverTable.SALES, [
        {"sls_ord_num": "SO43697", "sls_prd_key": "BK-R93R-62", "sls_cust_id": 21768,
         "sls_order_dt": 20101229, "sls_ship_dt": 20110105, "sls_due_dt": 20110110,
         "sls_sales": 3578.0, "sls_quantity": 1, "sls_price": 3578.0},
        {"sls_ord_num": "SO43698", "sls_prd_key": "BK-M82S-44", "sls_cust_id": 28389,
         "sls_order_dt": 0, "sls_ship_dt": 20110105, "sls_due_dt": 2011011,
         "sls_sales": None, "sls_quantity": 2, "sls_price": 50.0},
        {"sls_ord_num": "SO43699", "sls_prd_key": "BK-M82S-44", "sls_cust_id": 25863,
         "sls_order_dt": 20101229, "sls_ship_dt": 20110105, "sls_due_dt": 20110110,
         "sls_sales": 100.0, "sls_quantity": 2, "sls_price": -50.0},
        {"sls_ord_num": "SO43700", "sls_prd_key": "BK-R50B-62", "sls_cust_id": 14501,
         "sls_order_dt": 20101229, "sls_ship_dt": 20110105, "sls_due_dt": 20110110,
         "sls_sales": 699.0, "sls_quantity": 1, "sls_price": None},
    ])


@pytest.fixture
def sample_demographics_df() -> pl.DataFrame:
    """Raw ERP demographics"""
    return raw_frame(SilverTable.DEMOGRAPHICS, [
        {"cid": "NASAW00011000", "bdate": date(1971, 10, 6), "gen": "Male"},
        {"cid": "AW00011001", "bdate": date(2050, 1, 1), "gen": "F"},
        {"cid": "NASAW00011002", "bdate": None, "gen": " "},
    ])


@pytest.fixture
def sample_locations_df() -> pl.DataFrame:
    """Raw ERP locations"""
    return raw_frame(SilverTable.LOCATIONS, [
        {"cid": "AW-00011000", "cntry": "DE"},
        {"cid": "AW-00011001", "cntry": "USA"},
        {"cid": "AW-00011002", "cntry": " "},
        {"cid": "AW-00011003", "cntry": "Australia "},
    ])


@pytest.fixture
def sample_categories_df() -> pl.DataFrame:
    """Raw ERP product categories"""
    return raw_frame(SilverTable.CATEGORIES, [
        {"id": "AC_BR", "cat": "Accessories", "subcat": "Bike Racks", "maintenance": "Yes"},
        {"id": "CO_PD", "cat": "Components", "subcat": "Pedals", "maintenance": "No"},
    ])


@pytest.fixture
def raw_snapshots(
    sample_customers_df,
    sample_products_df,
    sample_sales_df,
    sample_demographics_df,
    sample_locations_df,
    sample_categories_df,
) -> Dict[SilverTable, pl.DataFrame]:
    """One raw snapshot per silver table"""
    return {
        SilverTable.CUSTOMERS: sample_customers_df,
        SilverTable.PRODUCTS: sample_products_df,
        SilverTable.SALES: sample_sales_df,
        SilverTable.DEMOGRAPHICS: sample_demographics_df,
        SilverTable.LOCATIONS: sample_locations_df,
        SilverTable.CATEGORIES: sample_categories_df,
    }
