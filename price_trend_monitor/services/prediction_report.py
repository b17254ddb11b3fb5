"""
Text rendering of predictions for the command line.
"""

from typing import Any, Dict, Optional

from price_trend_monitor.analysis.models import PredictionResult, Trend


INSUFFICIENT_DATA_MESSAGE = (
    "Add at least 2 price entries to generate predictions and market analysis."
)

TREND_LABELS = {
    Trend.UP: "Upward Trend",
    Trend.DOWN: "Downward Trend",
    Trend.STABLE: "Stable Market",
}


def trend_label(trend: Trend) -> str:
    return TREND_LABELS[trend]


def confidence_tier(confidence: int) -> str:
    """Bucket a confidence score into high / medium / low."""
    if confidence >= 70:
        return "high"
    if confidence >= 40:
        return "medium"
    return "low"


def format_prediction(prediction: Optional[PredictionResult], product_name: str = "") -> str:
    """
    Render a prediction as plain text.

    Args:
        prediction: Prediction result, or None for insufficient data
        product_name: Optional heading

    Returns:
        Multi-line text
    """
    lines = []
    if product_name:
        lines.append(f"Market prediction - {product_name}")

    if prediction is None:
        lines.append(INSUFFICIENT_DATA_MESSAGE)
        return "\n".join(lines)

    lines.extend([
        f"Market direction: {trend_label(prediction.trend)}",
        f"Confidence: {prediction.confidence}% ({confidence_tier(prediction.confidence)})",
        f"Predicted next price: ${prediction.predicted_price:.2f}",
        "",
        prediction.analysis,
    ])
    return "\n".join(lines)


def prediction_to_dict(prediction: Optional[PredictionResult], product_id: int,
                       product_name: str = "") -> Dict[str, Any]:
    """Plain-type view of a prediction for JSON output."""
    data: Dict[str, Any] = {"product_id": product_id, "product_name": product_name}
    if prediction is None:
        data["prediction"] = None
        data["message"] = INSUFFICIENT_DATA_MESSAGE
    else:
        data["prediction"] = prediction.to_dict()
        data["confidence_tier"] = confidence_tier(prediction.confidence)
    return data
