"""
Database Models - Silver Layer

Curated tables produced from the CRM and ERP source extracts. Column
names follow the source systems. Every table carries a surrogate row id
and a dwh_create_date audit column filled by the database at load time.

CRM:
- CrmCustInfo: customer master, one row per cst_id
- CrmPrdInfo: product master with validity periods
- CrmSalesDetails: reconciled sales order lines

ERP:
- ErpCustAz12: customer demographics
- ErpLocA101: customer locations
- ErpPxCatG1v2: product categories
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class SilverAuditMixin:
    """Surrogate key and load timestamp shared by all silver tables"""
    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    dwh_create_date: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


# =============================================================================
# CRM TABLES
# =============================================================================

class CrmCustInfo(SilverAuditMixin, Base):
    """Customer master data, most recent record per customer"""
    __tablename__ = "crm_cust_info"

    cst_id: Mapped[Optional[int]] = mapped_column(Integer, index=True)
    cst_key: Mapped[Optional[str]] = mapped_column(String(50))
    cst_firstname: Mapped[Optional[str]] = mapped_column(String(50))
    cst_lastname: Mapped[Optional[str]] = mapped_column(String(50))
    cst_marital_status: Mapped[Optional[str]] = mapped_column(String(50))
    cst_gndr: Mapped[Optional[str]] = mapped_column(String(50))
    cst_create_date: Mapped[Optional[date]] = mapped_column(Date)


class CrmPrdInfo(SilverAuditMixin, Base):
    """Product master data with derived category and validity period"""
    __tablename__ = "crm_prd_info"

    prd_id: Mapped[Optional[int]] = mapped_column(Integer)
    cat_id: Mapped[Optional[str]] = mapped_column(String(50))
    prd_key: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    prd_nm: Mapped[Optional[str]] = mapped_column(String(50))
    prd_cost: Mapped[Optional[int]] = mapped_column(Integer)
    prd_line: Mapped[Optional[str]] = mapped_column(String(50))
    prd_start_dt: Mapped[Optional[date]] = mapped_column(Date)
    prd_end_dt: Mapped[Optional[date]] = mapped_column(Date)


class CrmSalesDetails(SilverAuditMixin, Base):
    """Sales order lines with decoded dates and reconciled amounts"""
    __tablename__ = "crm_sales_details"

    sls_ord_num: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    sls_prd_key: Mapped[Optional[str]] = mapped_column(String(50))
    sls_cust_id: Mapped[Optional[int]] = mapped_column(Integer)
    sls_order_dt: Mapped[Optional[date]] = mapped_column(Date)
    sls_ship_dt: Mapped[Optional[date]] = mapped_column(Date)
    sls_due_dt: Mapped[Optional[date]] = mapped_column(Date)
    sls_sales: Mapped[Optional[float]] = mapped_column(Float)
    sls_quantity: Mapped[Optional[int]] = mapped_column(Integer)
    sls_price: Mapped[Optional[float]] = mapped_column(Float)


# =============================================================================
# ERP TABLES
# =============================================================================

class ErpCustAz12(SilverAuditMixin, Base):
    """Customer demographics"""
    __tablename__ = "erp_cust_az12"

    cid: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    bdate: Mapped[Optional[date]] = mapped_column(Date)
    gen: Mapped[Optional[str]] = mapped_column(String(50))


class ErpLocA101(SilverAuditMixin, Base):
    """Customer locations"""
    __tablename__ = "erp_loc_a101"

    cid: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    cntry: Mapped[Optional[str]] = mapped_column(String(50))


class ErpPxCatG1v2(SilverAuditMixin, Base):
    """Product categories"""
    __tablename__ = "erp_px_cat_g1v2"

    id: Mapped[Optional[str]] = mapped_column(String(50))
    cat: Mapped[Optional[str]] = mapped_column(String(50))
    subcat: Mapped[Optional[str]] = mapped_column(String(50))
    maintenance: Mapped[Optional[str]] = mapped_column(String(50))
