"""
SQLite database connection and management utilities.
"""

import sqlite3
from typing import Optional, Any, Dict, List
from contextlib import contextmanager
import logging
from pathlib import Path

from price_trend_monitor.utils.errors import DatabaseError


logger = logging.getLogger(__name__)


class SQLiteDatabaseManager:
    """Manages SQLite database connections and operations."""

    def __init__(self, database_path: str = "data/price_trend_monitor.db"):
        """
        Initialize SQLite database manager.

        Args:
            database_path: Path to SQLite database file
        """
        self.database_path = Path(database_path)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)

    def initialize(self) -> None:
        """Initialize the database and create tables."""
        try:
            self.create_tables()
            logger.info(f"SQLite database initialized at {self.database_path}")
        except DatabaseError:
            raise
        except Exception as e:
            raise DatabaseError(
                "Failed to initialize SQLite database",
                {"error": str(e)}
            )

    @contextmanager
    def get_connection(self):
        """
        Get a database connection.

        Yields:
            SQLite database connection
        """
        conn = None
        try:
            conn = sqlite3.connect(
                str(self.database_path),
                timeout=30.0,
                check_same_thread=False
            )
            # Enable foreign key constraints
            conn.execute("PRAGMA foreign_keys = ON")
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            raise DatabaseError(
                "SQLite database operation failed",
                {"error": str(e)}
            )
        finally:
            if conn:
                conn.close()

    @contextmanager
    def get_cursor(self):
        """
        Get a database cursor with automatic connection management.

        Yields:
            SQLite database cursor
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def execute_query(
        self,
        query: str,
        params: Optional[tuple] = None,
        fetch: bool = True
    ) -> Optional[List[sqlite3.Row]]:
        """
        Execute a SQL query.

        Args:
            query: SQL query string
            params: Query parameters
            fetch: Whether to fetch results

        Returns:
            Query results if fetch=True, None otherwise
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params or ())
            if fetch:
                return cursor.fetchall()
            return None

    def execute_insert(self, query: str, params: Optional[tuple] = None) -> int:
        """
        Execute an INSERT and return the new row id.

        Args:
            query: INSERT statement
            params: Query parameters

        Returns:
            Row id of the inserted row
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params or ())
            return cursor.lastrowid

    def execute_update(self, query: str, params: Optional[tuple] = None) -> int:
        """
        Execute an UPDATE or DELETE and return the affected row count.
        """
        with self.get_cursor() as cursor:
            cursor.execute(query, params or ())
            return cursor.rowcount

    def create_tables(self) -> None:
        """Create database tables if they don't exist."""

        create_products_table = """
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id TEXT NOT NULL,
            name TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMP NOT NULL
        );
        """

        create_price_history_table = """
        CREATE TABLE IF NOT EXISTS price_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            product_id INTEGER NOT NULL,
            price REAL NOT NULL CHECK (price >= 0),
            date TEXT NOT NULL,
            notes TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMP NOT NULL,
            FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
        );
        """

        create_indexes = [
            "CREATE INDEX IF NOT EXISTS idx_products_owner ON products(owner_id);",
            "CREATE INDEX IF NOT EXISTS idx_products_created ON products(created_at);",
            "CREATE INDEX IF NOT EXISTS idx_price_history_product ON price_history(product_id);",
            "CREATE INDEX IF NOT EXISTS idx_price_history_product_date ON price_history(product_id, date);",
        ]

        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute(create_products_table)
            cursor.execute(create_price_history_table)

            for index_sql in create_indexes:
                cursor.execute(index_sql)

            conn.commit()

        logger.info("SQLite database tables created successfully")

    def get_connection_stats(self) -> Dict[str, Any]:
        """
        Get database statistics.

        Returns:
            Dictionary with database stats
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute("SELECT COUNT(*) FROM products")
                products_count = cursor.fetchone()[0]

                cursor.execute("SELECT COUNT(*) FROM price_history")
                price_history_count = cursor.fetchone()[0]

                cursor.execute("PRAGMA page_count")
                page_count = cursor.fetchone()[0]
                cursor.execute("PRAGMA page_size")
                page_size = cursor.fetchone()[0]

                return {
                    "status": "active",
                    "database_path": str(self.database_path),
                    "database_size_bytes": page_count * page_size,
                    "products_count": products_count,
                    "price_history_count": price_history_count
                }
        except DatabaseError as e:
            return {"status": "error", "error": str(e.details.get("error", e))}

    def health_check(self) -> bool:
        """
        Perform a health check on the database connection.

        Returns:
            True if database is healthy, False otherwise
        """
        try:
            result = self.execute_query("SELECT 1")
            return result is not None and len(result) > 0
        except DatabaseError as e:
            logger.error(f"SQLite database health check failed: {e}")
            return False

    def close(self) -> None:
        """Close database connections (no-op for SQLite as connections are per-operation)."""
        logger.debug("SQLite database manager closed (connections are per-operation)")
