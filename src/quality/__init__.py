"""
Data Quality Module
"""
from .validators import VALIDATOR_FACTORIES, DataValidator, ValidationResult

__all__ = [
    "DataValidator",
    "ValidationResult",
    "VALIDATOR_FACTORIES",
]
