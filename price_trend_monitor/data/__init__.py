"""
Data models and storage components.
"""

from .models import Product, PriceEntry
from .repository import PriceRepository
from .sqlite_database import SQLiteDatabaseManager

__all__ = [
    'Product',
    'PriceEntry',
    'PriceRepository',
    'SQLiteDatabaseManager'
]
