"""
Prediction service - runs the trend analyzer over stored price history.
"""

from typing import Dict, Optional
import logging

from price_trend_monitor.analysis.analyzer import TrendAnalyzer
from price_trend_monitor.analysis.models import PredictionResult
from price_trend_monitor.data.repository import PriceRepository
from price_trend_monitor.utils.errors import ProductNotFoundError
from price_trend_monitor.utils.logging import get_structured_logger


class PredictionService:
    """Bridges the record store and the trend analyzer."""

    def __init__(self, repository: PriceRepository, analyzer: Optional[TrendAnalyzer] = None):
        """
        Args:
            repository: Price data repository
            analyzer: Trend analyzer (default: a new TrendAnalyzer)
        """
        self.repository = repository
        self.analyzer = analyzer or TrendAnalyzer()
        self.logger = logging.getLogger(f"{__name__}.PredictionService")
        self.events = get_structured_logger(f"{__name__}.PredictionService")

    def predict_for_product(self, product_id: int) -> Optional[PredictionResult]:
        """
        Compute the prediction for one product from its full price history.

        Args:
            product_id: Product id

        Returns:
            Prediction result, or None when the product has fewer than two prices

        Raises:
            ProductNotFoundError: If the product does not exist
        """
        if self.repository.get_product(product_id) is None:
            raise ProductNotFoundError(
                f"Product {product_id} does not exist",
                {"product_id": product_id}
            )

        return self._analyze_product(product_id)

    def predict_for_owner(self, owner_id: str) -> Dict[int, Optional[PredictionResult]]:
        """
        Compute predictions for every product of an owner.

        Returns:
            Mapping of product id to prediction (None for insufficient data)
        """
        predictions = {}
        for product in self.repository.get_products_by_owner(owner_id):
            predictions[product.id] = self._analyze_product(product.id)

        self.logger.info(f"Computed {len(predictions)} predictions for owner {owner_id}")
        return predictions

    def _analyze_product(self, product_id: int) -> Optional[PredictionResult]:
        history = self.repository.get_price_history(product_id)
        result = self.analyzer.analyze(history)

        if result is None:
            self.logger.info(
                f"Insufficient data for product {product_id}: {len(history)} price entries"
            )
        else:
            self.events.debug(
                "prediction_computed",
                product_id=product_id,
                trend=result.trend.value,
                confidence=result.confidence,
                predicted_price=round(result.predicted_price, 2),
                observations=result.metrics.observation_count
            )

        return result
