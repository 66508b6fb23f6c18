"""
Database Module
"""
from .connection import init_database, close_database
from .models import Base

__all__ = [
    "init_database",
    "close_database",
    "Base",
]
