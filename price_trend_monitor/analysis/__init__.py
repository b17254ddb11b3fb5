"""
Price trend analysis module.
"""

from .models import PriceObservation, PredictionResult, Trend, TrendMetrics
from .analyzer import TrendAnalyzer, analyze_prices
from .narrative import NarrativeBuilder

__all__ = [
    'PriceObservation',
    'PredictionResult',
    'Trend',
    'TrendMetrics',
    'TrendAnalyzer',
    'analyze_prices',
    'NarrativeBuilder',
]
