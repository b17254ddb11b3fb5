"""
Value types exchanged with the trend analyzer.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict
from datetime import date, datetime
from enum import Enum


class Trend(str, Enum):
    """Classified market direction."""
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


def as_date(value: Any) -> date:
    """Reduce a date-like value (date, datetime or ISO string) to a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Unsupported date value: {value!r}")


@dataclass(frozen=True)
class PriceObservation:
    """A single observed price on a calendar date."""
    date: date
    price: float

    @classmethod
    def from_record(cls, record: Any) -> 'PriceObservation':
        """Build an observation from any record exposing ``date`` and ``price``."""
        return cls(date=as_date(record.date), price=float(record.price))


@dataclass(frozen=True)
class TrendMetrics:
    """Intermediate values of one analysis run."""
    observation_count: int
    recent_average: float
    older_average: float
    price_change_percent: float
    baseline_defined: bool     # False when the older window averaged zero
    slope: float
    intercept: float
    mean_price: float
    standard_deviation: float
    coefficient_of_variation: float


@dataclass(frozen=True)
class PredictionResult:
    """Forecast and narrative for a price series."""
    trend: Trend
    confidence: int
    predicted_price: float
    analysis: str
    metrics: TrendMetrics

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain types for JSON output."""
        return {
            'trend': self.trend.value,
            'confidence': self.confidence,
            'predicted_price': self.predicted_price,
            'analysis': self.analysis,
            'metrics': asdict(self.metrics),
        }
