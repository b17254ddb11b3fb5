"""
Data repository for tracked products and their price history.
"""

from typing import List, Optional, Union
from datetime import datetime, date
from decimal import Decimal
import logging
import sqlite3

from price_trend_monitor.data.models import Product, PriceEntry
from price_trend_monitor.data.sqlite_database import SQLiteDatabaseManager
from price_trend_monitor.utils.errors import DatabaseError, ProductNotFoundError, ValidationError


logger = logging.getLogger(__name__)


class PriceRepository:
    """Repository for managing products and price history records."""

    def __init__(self, db_manager: SQLiteDatabaseManager, unique_daily_prices: bool = False):
        """
        Initialize repository with database manager.

        Args:
            db_manager: SQLite database manager instance
            unique_daily_prices: Reject a second price for the same product and date
        """
        self.db_manager = db_manager
        self.unique_daily_prices = unique_daily_prices

    @staticmethod
    def _error_text(error: DatabaseError) -> str:
        return str(error.details.get("error", error))

    def _convert_row_to_product(self, row: sqlite3.Row) -> Product:
        """Convert a database row to a Product object."""
        return Product(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            description=row["description"] or "",
            created_at=datetime.fromisoformat(row["created_at"])
        )

    def _convert_row_to_price_entry(self, row: sqlite3.Row) -> PriceEntry:
        """Convert a database row to a PriceEntry object."""
        return PriceEntry(
            id=row["id"],
            product_id=row["product_id"],
            price=Decimal(str(row["price"])),
            date=date.fromisoformat(row["date"]),
            notes=row["notes"] or "",
            created_at=datetime.fromisoformat(row["created_at"])
        )

    # Products

    def create_product(self, owner_id: str, name: str, description: str = "") -> Product:
        """
        Create a tracked product.

        Args:
            owner_id: Owner of the product
            name: Product name
            description: Optional description

        Returns:
            The stored product with its id

        Raises:
            ValidationError: If the product data is invalid
            DatabaseError: If the insert fails
        """
        product = Product(owner_id=owner_id, name=(name or "").strip(), description=description or "")

        try:
            product.id = self.db_manager.execute_insert(
                """
                INSERT INTO products (owner_id, name, description, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (product.owner_id, product.name, product.description,
                 product.created_at.isoformat())
            )
        except DatabaseError as e:
            logger.error(f"Failed to create product: {e}")
            raise DatabaseError(
                "Failed to create product",
                {"owner_id": owner_id, "name": name, "error": self._error_text(e)}
            )

        logger.debug(f"Created product {product.id} for owner {owner_id}")
        return product

    def get_product(self, product_id: int) -> Optional[Product]:
        """Get a product by id, or None if it does not exist."""
        try:
            rows = self.db_manager.execute_query(
                """
                SELECT id, owner_id, name, description, created_at
                FROM products WHERE id = ?
                """,
                (product_id,)
            )
        except DatabaseError as e:
            logger.error(f"Failed to get product: {e}")
            raise DatabaseError(
                "Failed to get product",
                {"product_id": product_id, "error": self._error_text(e)}
            )

        return self._convert_row_to_product(rows[0]) if rows else None

    def get_products_by_owner(self, owner_id: str) -> List[Product]:
        """
        Get all products of an owner, newest first.

        Args:
            owner_id: Owner identifier

        Returns:
            List of products
        """
        try:
            rows = self.db_manager.execute_query(
                """
                SELECT id, owner_id, name, description, created_at
                FROM products
                WHERE owner_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (owner_id,)
            )
        except DatabaseError as e:
            logger.error(f"Failed to get products: {e}")
            raise DatabaseError(
                "Failed to get products",
                {"owner_id": owner_id, "error": self._error_text(e)}
            )

        return [self._convert_row_to_product(row) for row in rows or []]

    def delete_product(self, product_id: int) -> bool:
        """
        Delete a product and, by cascade, its price history.

        Returns:
            True if a product was deleted
        """
        try:
            deleted = self.db_manager.execute_update(
                "DELETE FROM products WHERE id = ?", (product_id,)
            )
        except DatabaseError as e:
            logger.error(f"Failed to delete product: {e}")
            raise DatabaseError(
                "Failed to delete product",
                {"product_id": product_id, "error": self._error_text(e)}
            )

        logger.debug(f"Deleted product {product_id}: {bool(deleted)}")
        return deleted > 0

    # Price history

    def add_price_entry(
        self,
        product_id: int,
        price: Union[Decimal, float, str],
        entry_date: Union[date, str],
        notes: str = ""
    ) -> PriceEntry:
        """
        Record an observed price for a product.

        Args:
            product_id: Product id
            price: Observed price (finite, non-negative)
            entry_date: Observation date
            notes: Optional free-text note

        Returns:
            The stored price entry with its id

        Raises:
            ValidationError: If the entry is invalid or violates the one-per-day policy
            ProductNotFoundError: If the product does not exist
            DatabaseError: If the insert fails
        """
        entry = PriceEntry(product_id=product_id, price=price, date=entry_date, notes=notes)

        if self.get_product(product_id) is None:
            raise ProductNotFoundError(
                f"Product {product_id} does not exist",
                {"product_id": product_id}
            )

        if self.unique_daily_prices and self._has_entry_on(product_id, entry.date):
            raise ValidationError(
                "Price entry validation failed",
                {"errors": [f"A price for {entry.date.isoformat()} already exists"],
                 "product_id": product_id}
            )

        try:
            entry.id = self.db_manager.execute_insert(
                """
                INSERT INTO price_history (product_id, price, date, notes, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (product_id, float(entry.price), entry.date.isoformat(), entry.notes,
                 entry.created_at.isoformat())
            )
        except DatabaseError as e:
            logger.error(f"Failed to save price entry: {e}")
            raise DatabaseError(
                "Failed to save price entry",
                {"product_id": product_id, "error": self._error_text(e)}
            )

        logger.debug(f"Saved price entry {entry.id} for product {product_id}")
        return entry

    def _has_entry_on(self, product_id: int, entry_date: date) -> bool:
        rows = self.db_manager.execute_query(
            "SELECT 1 FROM price_history WHERE product_id = ? AND date = ? LIMIT 1",
            (product_id, entry_date.isoformat())
        )
        return bool(rows)

    def get_price_history(self, product_id: int, descending: bool = False) -> List[PriceEntry]:
        """
        Get the price history of a product ordered by date.

        Args:
            product_id: Product id
            descending: Newest first (for display) instead of oldest first

        Returns:
            List of price entries
        """
        order = "DESC" if descending else "ASC"
        try:
            rows = self.db_manager.execute_query(
                f"""
                SELECT id, product_id, price, date, notes, created_at
                FROM price_history
                WHERE product_id = ?
                ORDER BY date {order}, id {order}
                """,
                (product_id,)
            )
        except DatabaseError as e:
            logger.error(f"Failed to get price history: {e}")
            raise DatabaseError(
                "Failed to get price history",
                {"product_id": product_id, "error": self._error_text(e)}
            )

        return [self._convert_row_to_price_entry(row) for row in rows or []]

    def delete_price_entry(self, entry_id: int) -> bool:
        """
        Delete a single price entry.

        Returns:
            True if an entry was deleted
        """
        try:
            deleted = self.db_manager.execute_update(
                "DELETE FROM price_history WHERE id = ?", (entry_id,)
            )
        except DatabaseError as e:
            logger.error(f"Failed to delete price entry: {e}")
            raise DatabaseError(
                "Failed to delete price entry",
                {"entry_id": entry_id, "error": self._error_text(e)}
            )

        return deleted > 0
