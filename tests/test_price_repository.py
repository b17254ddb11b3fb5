"""
Tests for the SQLite-backed product and price history repository.
"""

import pytest
from datetime import date
from decimal import Decimal
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from price_trend_monitor.data.repository import PriceRepository
from price_trend_monitor.data.sqlite_database import SQLiteDatabaseManager
from price_trend_monitor.utils.errors import (
    DatabaseError, ProductNotFoundError, ValidationError
)


class TestDatabaseManager:

    def test_initialize_creates_tables(self, db_manager):
        rows = db_manager.execute_query(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        )
        names = {row["name"] for row in rows}
        assert {"products", "price_history"} <= names

    def test_initialize_is_idempotent(self, db_manager):
        db_manager.initialize()
        assert db_manager.health_check()

    def test_connection_stats(self, db_manager):
        stats = db_manager.get_connection_stats()

        assert stats["status"] == "active"
        assert stats["products_count"] == 0
        assert stats["price_history_count"] == 0
        assert stats["database_size_bytes"] > 0

    def test_sql_errors_are_wrapped(self, db_manager):
        with pytest.raises(DatabaseError):
            db_manager.execute_query("SELECT * FROM missing_table")

    def test_negative_price_rejected_by_schema(self, repository, db_manager):
        product = repository.create_product("alice", "Coffee")
        with pytest.raises(DatabaseError):
            db_manager.execute_insert(
                "INSERT INTO price_history (product_id, price, date, notes, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (product.id, -1.0, "2024-03-01", "", "2024-03-01T00:00:00")
            )


class TestProducts:

    def test_create_and_get(self, repository):
        product = repository.create_product("alice", "  Coffee beans  ", "1kg bag")

        stored = repository.get_product(product.id)
        assert stored.name == "Coffee beans"
        assert stored.owner_id == "alice"
        assert stored.description == "1kg bag"
        assert stored.created_at == product.created_at

    def test_get_missing_product(self, repository):
        assert repository.get_product(999) is None

    def test_blank_name_rejected(self, repository):
        with pytest.raises(ValidationError):
            repository.create_product("alice", "   ")

    def test_products_are_scoped_to_owner_newest_first(self, repository):
        first = repository.create_product("alice", "Coffee")
        second = repository.create_product("alice", "Tea")
        repository.create_product("bob", "Milk")

        products = repository.get_products_by_owner("alice")
        assert [p.id for p in products] == [second.id, first.id]
        assert repository.get_products_by_owner("carol") == []

    def test_delete_product_cascades_to_prices(self, repository, db_manager):
        product = repository.create_product("alice", "Coffee")
        repository.add_price_entry(product.id, "10.00", date(2024, 3, 1))
        repository.add_price_entry(product.id, "11.00", date(2024, 3, 2))

        assert repository.delete_product(product.id) is True
        assert repository.get_product(product.id) is None
        assert db_manager.get_connection_stats()["price_history_count"] == 0
        assert repository.delete_product(product.id) is False


class TestPriceHistory:

    def test_add_and_read_back(self, repository):
        product = repository.create_product("alice", "Coffee")
        entry = repository.add_price_entry(product.id, "18.50", "2024-03-01", "store A")

        history = repository.get_price_history(product.id)
        assert len(history) == 1
        assert history[0].id == entry.id
        assert history[0].price == Decimal("18.50")
        assert history[0].date == date(2024, 3, 1)
        assert history[0].notes == "store A"

    def test_history_is_ordered_by_date(self, repository):
        product = repository.create_product("alice", "Coffee")
        repository.add_price_entry(product.id, "12", date(2024, 3, 3))
        repository.add_price_entry(product.id, "10", date(2024, 3, 1))
        repository.add_price_entry(product.id, "11", date(2024, 3, 2))

        ascending = [e.date.day for e in repository.get_price_history(product.id)]
        descending = [e.date.day for e in repository.get_price_history(product.id, descending=True)]
        assert ascending == [1, 2, 3]
        assert descending == [3, 2, 1]

    def test_unknown_product_rejected(self, repository):
        with pytest.raises(ProductNotFoundError):
            repository.add_price_entry(42, "10.00", date(2024, 3, 1))

    @pytest.mark.parametrize("price", ["-1", "free", "inf", "1e400"])
    def test_invalid_price_rejected(self, repository, price):
        product = repository.create_product("alice", "Coffee")
        with pytest.raises(ValidationError):
            repository.add_price_entry(product.id, price, date(2024, 3, 1))
        assert repository.get_price_history(product.id) == []

    def test_same_day_prices_allowed_by_default(self, repository):
        product = repository.create_product("alice", "Coffee")
        repository.add_price_entry(product.id, "10", date(2024, 3, 1))
        repository.add_price_entry(product.id, "11", date(2024, 3, 1))

        assert len(repository.get_price_history(product.id)) == 2

    def test_one_price_per_day_policy(self, db_manager):
        repository = PriceRepository(db_manager, unique_daily_prices=True)
        product = repository.create_product("alice", "Coffee")
        repository.add_price_entry(product.id, "10", date(2024, 3, 1))

        with pytest.raises(ValidationError) as exc_info:
            repository.add_price_entry(product.id, "11", date(2024, 3, 1))
        assert "already exists" in exc_info.value.details["errors"][0]

        repository.add_price_entry(product.id, "11", date(2024, 3, 2))
        assert len(repository.get_price_history(product.id)) == 2

    def test_delete_price_entry(self, repository):
        product = repository.create_product("alice", "Coffee")
        entry = repository.add_price_entry(product.id, "10", date(2024, 3, 1))

        assert repository.delete_price_entry(entry.id) is True
        assert repository.delete_price_entry(entry.id) is False
        assert repository.get_price_history(product.id) == []

    def test_repository_on_separate_manager_sees_same_data(self, temp_db_path, repository):
        product = repository.create_product("alice", "Coffee")
        repository.add_price_entry(product.id, "10", date(2024, 3, 1))

        other = PriceRepository(SQLiteDatabaseManager(temp_db_path))
        assert len(other.get_price_history(product.id)) == 1

    def test_out_of_range_price_never_reaches_storage(self, repository):
        product = repository.create_product("alice", "Coffee")
        repository.add_price_entry(product.id, "10", date(2024, 3, 1))

        with pytest.raises(ValidationError) as exc_info:
            repository.add_price_entry(product.id, "1e400", date(2024, 3, 2))
        assert "Price is out of range" in exc_info.value.details["errors"]

        history = repository.get_price_history(product.id)
        assert [entry.price for entry in history] == [Decimal("10.0")]
