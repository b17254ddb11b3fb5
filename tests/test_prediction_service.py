"""
Tests for the prediction service and its text/JSON presentation.
"""

import json
import logging
import pytest
from datetime import date, timedelta
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from price_trend_monitor.analysis.models import Trend
from price_trend_monitor.services.prediction_service import PredictionService
from price_trend_monitor.services.prediction_report import (
    INSUFFICIENT_DATA_MESSAGE, confidence_tier, format_prediction,
    prediction_to_dict, trend_label
)
from price_trend_monitor.utils.errors import ProductNotFoundError


def add_prices(repository, product_id, prices, start=date(2024, 3, 1)):
    for i, price in enumerate(prices):
        repository.add_price_entry(product_id, str(price), start + timedelta(days=i))


@pytest.fixture
def service(repository):
    return PredictionService(repository)


class TestPredictionService:

    def test_unknown_product_raises(self, service):
        with pytest.raises(ProductNotFoundError):
            service.predict_for_product(404)

    def test_insufficient_history_returns_none(self, service, repository):
        product = repository.create_product("alice", "Coffee")
        assert service.predict_for_product(product.id) is None

        add_prices(repository, product.id, [10])
        assert service.predict_for_product(product.id) is None

    def test_prediction_from_stored_history(self, service, repository):
        product = repository.create_product("alice", "Coffee")
        add_prices(repository, product.id, [20, 15, 10])

        result = service.predict_for_product(product.id)
        assert result.trend == Trend.DOWN
        assert result.predicted_price == pytest.approx(5.0)
        assert result.confidence == 46

    def test_insertion_order_does_not_matter(self, service, repository):
        first = repository.create_product("alice", "In order")
        second = repository.create_product("alice", "Out of order")
        add_prices(repository, first.id, [10, 12, 14, 16])
        for offset, price in [(3, 16), (0, 10), (2, 14), (1, 12)]:
            repository.add_price_entry(second.id, str(price), date(2024, 3, 1) + timedelta(days=offset))

        assert service.predict_for_product(first.id) == service.predict_for_product(second.id)

    def test_predictions_for_owner(self, service, repository):
        rising = repository.create_product("alice", "Rising")
        empty = repository.create_product("alice", "Empty")
        other = repository.create_product("bob", "Other")
        add_prices(repository, rising.id, [10, 12, 14, 16])
        add_prices(repository, other.id, [5, 5])

        predictions = service.predict_for_owner("alice")

        assert set(predictions) == {rising.id, empty.id}
        assert predictions[rising.id].trend == Trend.UP
        assert predictions[empty.id] is None


class TestPredictionReport:

    @pytest.mark.parametrize("confidence, tier", [
        (100, "high"), (70, "high"), (69, "medium"), (40, "medium"), (39, "low"), (0, "low")
    ])
    def test_confidence_tier(self, confidence, tier):
        assert confidence_tier(confidence) == tier

    def test_trend_labels(self):
        assert trend_label(Trend.UP) == "Upward Trend"
        assert trend_label(Trend.DOWN) == "Downward Trend"
        assert trend_label(Trend.STABLE) == "Stable Market"

    def test_format_insufficient(self):
        text = format_prediction(None, "Coffee")
        assert text == f"Market prediction - Coffee\n{INSUFFICIENT_DATA_MESSAGE}"

    def test_format_prediction(self, service, repository):
        product = repository.create_product("alice", "Coffee")
        add_prices(repository, product.id, [10, 12, 14, 16])

        lines = format_prediction(service.predict_for_product(product.id), "Coffee").split("\n")

        assert lines[0] == "Market prediction - Coffee"
        assert lines[1] == "Market direction: Upward Trend"
        assert lines[2] == "Confidence: 66% (medium)"
        assert lines[3] == "Predicted next price: $18.00"
        assert lines[4] == ""
        assert lines[5].startswith("Based on recent trends")

    def test_prediction_to_dict_is_json_serializable(self, service, repository):
        product = repository.create_product("alice", "Coffee")
        add_prices(repository, product.id, [20, 15, 10])

        data = prediction_to_dict(service.predict_for_product(product.id), product.id, "Coffee")
        decoded = json.loads(json.dumps(data))

        assert decoded["product_id"] == product.id
        assert decoded["prediction"]["trend"] == "down"
        assert decoded["confidence_tier"] == "medium"

    def test_prediction_to_dict_insufficient(self):
        data = prediction_to_dict(None, 7, "Coffee")
        assert data["prediction"] is None
        assert data["message"] == INSUFFICIENT_DATA_MESSAGE


class TestPredictionLogging:

    LOGGER = "price_trend_monitor.services.prediction_service.PredictionService"

    def test_owner_predictions_log_insufficient_data_per_product(self, service, repository, caplog):
        empty = repository.create_product("alice", "Empty")
        single = repository.create_product("alice", "Single")
        full = repository.create_product("alice", "Full")
        add_prices(repository, single.id, [10])
        add_prices(repository, full.id, [10, 11])

        with caplog.at_level(logging.INFO, logger=self.LOGGER):
            service.predict_for_owner("alice")

        messages = [record.getMessage() for record in caplog.records]
        assert f"Insufficient data for product {empty.id}: 0 price entries" in messages
        assert f"Insufficient data for product {single.id}: 1 price entries" in messages
        assert not any(f"product {full.id}:" in message for message in messages)

    def test_single_product_logs_insufficient_data(self, service, repository, caplog):
        product = repository.create_product("alice", "Empty")

        with caplog.at_level(logging.INFO, logger=self.LOGGER):
            assert service.predict_for_product(product.id) is None

        assert any("Insufficient data" in record.getMessage() for record in caplog.records)
