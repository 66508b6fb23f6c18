"""
Data Validation Module

Rule-based quality checks run against curated silver tables before
they are written. Checks only report: a failing check is logged and
attached to the table result, it never stops the load.

Checks:
- Primary keys present and unique
- No unwanted leading/trailing spaces
- Low cardinality columns restricted to their label sets
- Value ranges and business rules (e.g. sales = quantity * price)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import polars as pl
import structlog

from src.transformation.cleaners import (
    GENDER_LABELS,
    MARITAL_STATUS_LABELS,
    NOT_AVAILABLE,
    PRODUCT_LINE_LABELS,
)
from src.transformation.tables import SilverTable

logger = structlog.get_logger(__name__)


class ValidationSeverity(str, Enum):
    """Severity levels for validation failures"""
    ERROR = "error"  # Curated output breaks an invariant
    WARNING = "warning"  # Suspicious source data carried through
    INFO = "info"  # Informational only


class ValidationStatus(str, Enum):
    """Overall validation status"""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


@dataclass
class ValidationCheck:
    """Single validation check result"""
    name: str
    passed: bool
    severity: ValidationSeverity
    message: str
    details: Optional[Dict[str, Any]] = None
    failed_rows: int = 0
    total_rows: int = 0


@dataclass
class ValidationResult:
    """Complete validation suite result"""
    status: ValidationStatus
    total_checks: int
    passed_checks: int
    failed_checks: int
    warning_count: int
    checks: List[ValidationCheck] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Percentage of passed checks"""
        if self.total_checks == 0:
            return 100.0
        return (self.passed_checks / self.total_checks) * 100


def _labels(mapping: Dict[str, str]) -> List[str]:
    return sorted(set(mapping.values())) + [NOT_AVAILABLE]


class DataValidator:
    """
    Chainable suite of column checks.

    Example:
        validator = DataValidator()
        validator.add_not_null_check("cst_id").add_unique_check("cst_id")
        result = validator.validate(df)
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode  # Fail on any warning
        self._checks: List[Callable[[pl.DataFrame], ValidationCheck]] = []

    def reset(self) -> None:
        """Reset validator state"""
        self._checks = []

    def _add_column_check(
        self,
        name: str,
        column: str,
        severity: ValidationSeverity,
        count_failures: Callable[[pl.DataFrame], int],
        describe: Callable[[int], str],
        details: Optional[Dict[str, Any]] = None,
    ) -> "DataValidator":
        """Register a check counting failing rows of one column"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            if column not in df.columns:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Column '{column}' not found",
                )

            failed = count_failures(df)
            return ValidationCheck(
                name=name,
                passed=failed == 0,
                severity=severity,
                message=describe(failed),
                details={**(details or {}), "failed_count": failed},
                failed_rows=failed,
                total_rows=len(df),
            )

        self._checks.append(check)
        return self

    def add_not_null_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for null values in column"""
        return self._add_column_check(
            f"not_null_{column}",
            column,
            severity,
            lambda df: df[column].null_count(),
            lambda n: f"Column '{column}' has {n} null values" if n else f"Column '{column}' has no null values",
        )

    def add_unique_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for uniqueness of column values"""
        return self._add_column_check(
            f"unique_{column}",
            column,
            severity,
            lambda df: len(df) - df[column].n_unique(),
            lambda n: f"Column '{column}' has {n} duplicate values" if n else f"Column '{column}' values are unique",
        )

    def add_trimmed_check(
        self,
        column: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for leading or trailing whitespace"""
        return self._add_column_check(
            f"trimmed_{column}",
            column,
            severity,
            lambda df: df.filter(pl.col(column) != pl.col(column).str.strip_chars()).height,
            lambda n: f"Column '{column}' has {n} untrimmed values" if n else f"Column '{column}' is trimmed",
        )

    def add_range_check(
        self,
        column: str,
        min_value: Optional[float] = None,
        max_value: Optional[float] = None,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values within specified range"""
        def out_of_range(df: pl.DataFrame) -> int:
            condition = pl.lit(False)
            if min_value is not None:
                condition = condition | (pl.col(column) < min_value)
            if max_value is not None:
                condition = condition | (pl.col(column) > max_value)
            return df.filter(condition).height

        return self._add_column_check(
            f"range_{column}",
            column,
            severity,
            out_of_range,
            lambda n: f"Column '{column}' has {n} values outside range [{min_value}, {max_value}]" if n else "All values in range",
            details={"min": min_value, "max": max_value},
        )

    def add_pattern_check(
        self,
        column: str,
        pattern: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add regex pattern check"""
        return self._add_column_check(
            f"pattern_{column}",
            column,
            severity,
            lambda df: df.filter(
                ~pl.col(column).str.contains(pattern) & pl.col(column).is_not_null()
            ).height,
            lambda n: f"Column '{column}' has {n} values not matching pattern" if n else "All values match pattern",
            details={"pattern": pattern},
        )

    def add_enum_check(
        self,
        column: str,
        allowed_values: List[Any],
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add check for values in allowed set (nulls count as invalid)"""
        return self._add_column_check(
            f"enum_{column}",
            column,
            severity,
            lambda df: df.filter(
                ~pl.col(column).is_in(allowed_values) | pl.col(column).is_null()
            ).height,
            lambda n: f"Column '{column}' has {n} invalid values" if n else "All values are valid",
            details={"allowed_values": allowed_values},
        )

    def add_custom_check(
        self,
        name: str,
        check_func: Callable[[pl.DataFrame], bool],
        message_on_fail: str,
        severity: ValidationSeverity = ValidationSeverity.ERROR,
    ) -> "DataValidator":
        """Add custom validation check"""
        def check(df: pl.DataFrame) -> ValidationCheck:
            try:
                passed = bool(check_func(df))
                return ValidationCheck(
                    name=name,
                    passed=passed,
                    severity=severity,
                    message="Check passed" if passed else message_on_fail,
                    total_rows=len(df),
                )
            except Exception as e:
                return ValidationCheck(
                    name=name,
                    passed=False,
                    severity=severity,
                    message=f"Check failed with error: {str(e)}",
                )

        self._checks.append(check)
        return self

    def validate(self, df: pl.DataFrame) -> ValidationResult:
        """
        Run all validation checks on DataFrame.

        Args:
            df: DataFrame to validate

        Returns:
            ValidationResult with all check results
        """
        started_at = datetime.now()
        results = [check_func(df) for check_func in self._checks]

        for result in results:
            if not result.passed:
                logger.warning(
                    f"Validation failed: {result.name}",
                    message=result.message,
                    severity=result.severity.value,
                )

        passed_checks = sum(1 for r in results if r.passed)
        failed_checks = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.ERROR)
        warning_count = sum(1 for r in results if not r.passed and r.severity == ValidationSeverity.WARNING)

        if failed_checks > 0:
            status = ValidationStatus.FAILED
        elif warning_count > 0 and self.strict_mode:
            status = ValidationStatus.FAILED
        elif warning_count > 0:
            status = ValidationStatus.PARTIAL
        else:
            status = ValidationStatus.PASSED

        logger.info(
            f"Validation complete: {status.value}",
            rows=len(df),
            passed=passed_checks,
            failed=failed_checks,
            warnings=warning_count,
        )

        return ValidationResult(
            status=status,
            total_checks=len(results),
            passed_checks=passed_checks,
            failed_checks=failed_checks,
            warning_count=warning_count,
            checks=results,
            started_at=started_at,
            completed_at=datetime.now(),
        )


# =============================================================================
# PRE-BUILT VALIDATORS
# =============================================================================

def _sales_consistent(df: pl.DataFrame) -> bool:
    priced = df.filter(pl.col("sls_price").is_not_null())
    mismatched = priced.filter(
        pl.col("sls_sales").is_null()
        | ((pl.col("sls_sales") - pl.col("sls_quantity") * pl.col("sls_price")).abs() > 1e-9)
    )
    return mismatched.height == 0


def create_customers_validator() -> DataValidator:
    """Create pre-configured validator for curated customers"""
    return (
        DataValidator()
        .add_not_null_check("cst_id")
        .add_unique_check("cst_id")
        .add_trimmed_check("cst_firstname")
        .add_trimmed_check("cst_lastname")
        .add_enum_check("cst_marital_status", _labels(MARITAL_STATUS_LABELS))
        .add_enum_check("cst_gndr", _labels(GENDER_LABELS))
    )


def create_products_validator() -> DataValidator:
    """Create pre-configured validator for curated products"""
    return (
        DataValidator()
        .add_not_null_check("prd_id", severity=ValidationSeverity.WARNING)
        .add_trimmed_check("prd_nm")
        .add_enum_check("prd_line", _labels(PRODUCT_LINE_LABELS))
        .add_range_check("prd_cost", min_value=0, severity=ValidationSeverity.WARNING)
        .add_custom_check(
            name="period_order_prd_end_dt",
            check_func=lambda df: df.filter(pl.col("prd_end_dt") < pl.col("prd_start_dt")).height == 0,
            message_on_fail="Product periods end before they start",
            severity=ValidationSeverity.WARNING,
        )
    )


def create_sales_validator() -> DataValidator:
    """Create pre-configured validator for curated sales"""
    return (
        DataValidator()
        .add_not_null_check("sls_ord_num", severity=ValidationSeverity.WARNING)
        .add_range_check("sls_price", min_value=0)
        .add_custom_check(
            name="sales_equals_quantity_times_price",
            check_func=_sales_consistent,
            message_on_fail="Sales amount differs from quantity * price",
        )
        .add_custom_check(
            name="order_before_ship",
            check_func=lambda df: df.filter(pl.col("sls_order_dt") > pl.col("sls_ship_dt")).height == 0,
            message_on_fail="Orders shipped before they were placed",
            severity=ValidationSeverity.WARNING,
        )
    )


def create_demographics_validator() -> DataValidator:
    """Create pre-configured validator for curated demographics"""
    return (
        DataValidator()
        .add_not_null_check("cid", severity=ValidationSeverity.WARNING)
        .add_enum_check("gen", _labels(GENDER_LABELS))
    )


def create_locations_validator() -> DataValidator:
    """Create pre-configured validator for curated locations"""
    return (
        DataValidator()
        .add_not_null_check("cid", severity=ValidationSeverity.WARNING)
        .add_pattern_check("cid", r"^[^-]*$")
        .add_not_null_check("cntry")
    )


def create_categories_validator() -> DataValidator:
    """Create pre-configured validator for curated categories"""
    return (
        DataValidator()
        .add_not_null_check("id")
        .add_trimmed_check("cat")
        .add_trimmed_check("subcat")
    )


VALIDATOR_FACTORIES: Dict[SilverTable, Callable[[], DataValidator]] = {
    SilverTable.CUSTOMERS: create_customers_validator,
    SilverTable.PRODUCTS: create_products_validator,
    SilverTable.SALES: create_sales_validator,
    SilverTable.DEMOGRAPHICS: create_demographics_validator,
    SilverTable.LOCATIONS: create_locations_validator,
    SilverTable.CATEGORIES: create_categories_validator,
}
