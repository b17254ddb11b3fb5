"""
Price trend analysis engine.

Given the price observations of one tracked product, the analyzer fits a
least-squares line over the observation index, compares the most recent
prices against an older baseline to classify the market direction, scores
confidence from the relative volatility of the series and projects the next
price. The computation is a pure function of its input: nothing is cached
and no state survives between calls.
"""

from typing import Any, Iterable, List, Optional, Sequence, Tuple
from decimal import Decimal, ROUND_HALF_UP
from statistics import mean, pstdev
import math

from price_trend_monitor.analysis.models import (
    PriceObservation, PredictionResult, Trend, TrendMetrics
)
from price_trend_monitor.analysis.narrative import NarrativeBuilder


MIN_OBSERVATIONS = 2
RECENT_WINDOW_SIZE = 3
STABLE_CHANGE_THRESHOLD = 2.0     # percent
CONFIDENCE_SCALE = 2.0
MAX_CONFIDENCE = 100
# Coefficient of variation at which confidence reaches zero
MAX_COEFFICIENT_OF_VARIATION = MAX_CONFIDENCE / CONFIDENCE_SCALE


class TrendAnalyzer:
    """Stateless price trend analyzer."""

    def __init__(self, narrative_builder: Optional[NarrativeBuilder] = None):
        self.narrative_builder = narrative_builder or NarrativeBuilder()

    def analyze(self, records: Iterable[Any]) -> Optional[PredictionResult]:
        """
        Analyze a price series.

        Args:
            records: Observations in any order; each needs ``date`` and ``price``

        Returns:
            Prediction result, or None when fewer than two observations exist
        """
        observations = self.sort_observations(records)
        n = len(observations)
        if n < MIN_OBSERVATIONS:
            return None

        prices = [observation.price for observation in observations]

        recent_average, older_average = self.calculate_window_averages(prices)
        change_percent, baseline_defined = self.calculate_price_change_percent(
            recent_average, older_average
        )
        trend = self.classify_trend(change_percent)

        slope, intercept = self.calculate_regression(prices)
        predicted_price = self.predict_next_price(slope, intercept, n, prices[-1])

        mean_price, std_deviation, cv = self.calculate_volatility(prices)
        confidence = self.calculate_confidence(cv)

        analysis = self.narrative_builder.build(trend, change_percent, slope, cv)

        return PredictionResult(
            trend=trend,
            confidence=confidence,
            predicted_price=predicted_price,
            analysis=analysis,
            metrics=TrendMetrics(
                observation_count=n,
                recent_average=recent_average,
                older_average=older_average,
                price_change_percent=change_percent,
                baseline_defined=baseline_defined,
                slope=slope,
                intercept=intercept,
                mean_price=mean_price,
                standard_deviation=std_deviation,
                coefficient_of_variation=cv,
            ),
        )

    def sort_observations(self, records: Iterable[Any]) -> List[PriceObservation]:
        """Convert records to observations sorted by date, ties broken by price."""
        observations = [PriceObservation.from_record(record) for record in records]
        return sorted(observations, key=lambda o: (o.date, o.price))

    def calculate_window_averages(self, prices: Sequence[float]) -> Tuple[float, float]:
        """
        Average the recent window and the older baseline window.

        The recent window is the last three prices and the older window all
        but the last three (at least the first price); on short series the
        two windows overlap.
        """
        n = len(prices)
        recent = prices[-min(RECENT_WINDOW_SIZE, n):]
        older = prices[:max(1, n - RECENT_WINDOW_SIZE)]
        return float(mean(recent)), float(mean(older))

    def calculate_price_change_percent(self, recent_average: float,
                                       older_average: float) -> Tuple[float, bool]:
        """
        Percent change of the recent average over the older average.

        Returns:
            (percent change, whether the baseline was usable). A zero baseline
            or a non-finite ratio yields (0.0, False).
        """
        if older_average == 0:
            return 0.0, False

        change = (recent_average - older_average) / abs(older_average) * 100
        if not math.isfinite(change):
            return 0.0, False
        return change, True

    def classify_trend(self, change_percent: float) -> Trend:
        """Classify direction; changes strictly below the threshold are stable."""
        if abs(change_percent) < STABLE_CHANGE_THRESHOLD:
            return Trend.STABLE
        if change_percent > 0:
            return Trend.UP
        return Trend.DOWN

    def calculate_regression(self, prices: Sequence[float]) -> Tuple[float, float]:
        """
        Ordinary least squares fit of price against observation index.

        Returns:
            (slope, intercept)
        """
        n = len(prices)
        x_sum = n * (n - 1) // 2
        x_square_sum = (n - 1) * n * (2 * n - 1) // 6

        # Sums run on prices scaled below 1 so they cannot overflow
        exponent = _scale_exponent(prices)
        scaled = [math.ldexp(price, -exponent) for price in prices]
        y_sum = math.fsum(scaled)
        xy_sum = math.fsum(i * price for i, price in enumerate(scaled))

        # Strictly positive for n >= 2
        denominator = n * x_square_sum - x_sum * x_sum

        slope = (n * xy_sum - x_sum * y_sum) / denominator
        intercept = (y_sum - slope * x_sum) / n
        try:
            return math.ldexp(slope, exponent), math.ldexp(intercept, exponent)
        except OverflowError:
            # Fitted line leaves the float range: flat line through the mean
            return 0.0, float(mean(prices))

    def predict_next_price(self, slope: float, intercept: float, n: int,
                           last_price: float) -> float:
        """Evaluate the regression line one step past the last index, floored at zero."""
        predicted = slope * n + intercept
        if not math.isfinite(predicted):
            predicted = last_price
        return max(0.0, predicted)

    def calculate_volatility(self, prices: Sequence[float]) -> Tuple[float, float, float]:
        """
        Population standard deviation and coefficient of variation.

        Returns:
            (mean, standard deviation, coefficient of variation in percent)
        """
        mean_price = float(mean(prices))
        exponent = _scale_exponent(prices)
        scaled = [math.ldexp(price, -exponent) for price in prices]
        std_deviation = math.ldexp(
            float(pstdev(scaled, mu=math.ldexp(mean_price, -exponent))), exponent
        )

        if std_deviation == 0:
            return mean_price, std_deviation, 0.0
        if mean_price == 0:
            return mean_price, std_deviation, MAX_COEFFICIENT_OF_VARIATION

        cv = std_deviation / abs(mean_price) * 100
        if not math.isfinite(cv):
            cv = MAX_COEFFICIENT_OF_VARIATION
        return mean_price, std_deviation, cv

    def calculate_confidence(self, coefficient_of_variation: float) -> int:
        """Map relative volatility to an integer score in [0, 100]."""
        raw = MAX_CONFIDENCE - coefficient_of_variation * CONFIDENCE_SCALE
        clamped = max(0.0, min(float(MAX_CONFIDENCE), raw))
        return int(Decimal(str(clamped)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def _scale_exponent(prices: Sequence[float]) -> int:
    """Binary exponent of the largest price magnitude."""
    return math.frexp(max(abs(price) for price in prices))[1]


_default_analyzer = TrendAnalyzer()


def analyze_prices(records: Iterable[Any]) -> Optional[PredictionResult]:
    """Analyze a price series with the default analyzer."""
    return _default_analyzer.analyze(records)
