"""
Service layer components for predictions and their presentation.
"""

from .prediction_service import PredictionService
from .prediction_report import format_prediction, prediction_to_dict, confidence_tier, trend_label

__all__ = [
    'PredictionService',
    'format_prediction',
    'prediction_to_dict',
    'confidence_tier',
    'trend_label'
]
