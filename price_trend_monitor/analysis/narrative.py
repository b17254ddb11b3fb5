"""
Narrative templates for trend predictions.
"""

from typing import Dict, Tuple
from decimal import Context, Decimal, ROUND_HALF_UP

from price_trend_monitor.analysis.models import Trend


# Coefficient of variation (percent) below which a series reads as steady
STABILITY_THRESHOLDS: Dict[Trend, float] = {
    Trend.UP: 15.0,
    Trend.DOWN: 15.0,
    Trend.STABLE: 10.0,
}

# Wide enough to hold any finite float to one decimal place
_FORMAT_CONTEXT = Context(prec=400)

OPENINGS: Dict[Trend, str] = {
    Trend.UP: (
        "Based on recent trends, prices are moving upward. "
        "The analysis shows a {change}% increase in recent weeks."
    ),
    Trend.DOWN: "Recent data indicates a downward trend with a {change}% decrease.",
    Trend.STABLE: "Prices are currently stable with minimal fluctuation ({change}% change).",
}

# Only emitted when the regression slope points the same way as the trend
CONTINUATIONS: Dict[Trend, str] = {
    Trend.UP: "The overall trend suggests continued growth.",
    Trend.DOWN: "The overall pattern suggests this decline may continue.",
}

# Keyed by (trend, below stability threshold)
VOLATILITY_NOTES: Dict[Tuple[Trend, bool], str] = {
    (Trend.UP, True): (
        "Price movements are relatively stable, indicating a consistent upward trajectory."
    ),
    (Trend.UP, False): (
        "However, price volatility is moderate, so expect some fluctuations."
    ),
    (Trend.DOWN, True): (
        "Price changes are consistent, indicating a steady decline."
    ),
    (Trend.DOWN, False): (
        "Price volatility is present, which could lead to potential recovery opportunities."
    ),
    (Trend.STABLE, True): (
        "This stability is consistent across the data, suggesting a mature market phase."
    ),
    (Trend.STABLE, False): (
        "While the overall trend is flat, there's some volatility that could "
        "signal an upcoming directional move."
    ),
}


def format_change(change_percent: float) -> str:
    """Absolute percent change with one decimal, rounded half up."""
    return str(Decimal(str(abs(change_percent))).quantize(
        Decimal('0.1'), rounding=ROUND_HALF_UP, context=_FORMAT_CONTEXT
    ))


def slope_agrees(trend: Trend, slope: float) -> bool:
    """Whether the regression slope points in the classified direction."""
    if trend == Trend.UP:
        return slope > 0
    if trend == Trend.DOWN:
        return slope < 0
    return False


def is_steady(trend: Trend, coefficient_of_variation: float) -> bool:
    """Whether relative volatility is below the tier threshold for the trend."""
    return coefficient_of_variation < STABILITY_THRESHOLDS[trend]


class NarrativeBuilder:
    """Composes the trend narrative from the template tables."""

    def build(self, trend: Trend, change_percent: float, slope: float,
              coefficient_of_variation: float) -> str:
        """
        Build the narrative for one prediction.

        Args:
            trend: Classified direction
            change_percent: Recent vs older average change in percent
            slope: Regression slope over the observation index
            coefficient_of_variation: Relative volatility in percent

        Returns:
            Narrative text stating direction, magnitude, persistence and volatility
        """
        parts = [OPENINGS[trend].format(change=format_change(change_percent))]

        if slope_agrees(trend, slope):
            parts.append(CONTINUATIONS[trend])

        parts.append(VOLATILITY_NOTES[(trend, is_steady(trend, coefficient_of_variation))])

        return " ".join(parts)
