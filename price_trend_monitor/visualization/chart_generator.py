"""
Chart generation service for price history visualization.
"""

import io
from typing import List, Optional, Sequence, Tuple
from datetime import timedelta
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.dates as mdates

from price_trend_monitor.analysis.models import PredictionResult, PriceObservation
from price_trend_monitor.utils.errors import ChartGenerationError


class ChartGenerator:
    """Chart generation service using Matplotlib."""

    def __init__(self, figure_size: Tuple[float, float] = (12, 8), dpi: int = 100):
        """Initialize chart generator with default settings."""
        plt.style.use('default')
        self.figure_size = figure_size
        self.dpi = dpi
        self.colors = {
            'primary': '#2E86AB',
            'secondary': '#A23B72',
            'accent': '#F18F01',
            'text': '#333333'
        }

    def generate_price_history_chart(
        self,
        product_name: str,
        records: Sequence,
        prediction: Optional[PredictionResult] = None
    ) -> bytes:
        """
        Generate a price history chart, optionally with the fitted trend line
        and the predicted next price.

        Args:
            product_name: Chart title
            records: Price records exposing ``date`` and ``price``
            prediction: Prediction computed from the same records

        Returns:
            Chart image as PNG bytes
        """
        if not records:
            raise ChartGenerationError(
                "No price data provided for chart generation",
                {"product_name": product_name}
            )

        observations = sorted(
            (PriceObservation.from_record(r) for r in records),
            key=lambda o: (o.date, o.price)
        )
        dates = [o.date for o in observations]
        prices = [o.price for o in observations]

        fig, ax = plt.subplots(figsize=self.figure_size, dpi=self.dpi)
        try:
            ax.plot(dates, prices,
                    color=self.colors['primary'],
                    linewidth=2,
                    marker='o',
                    markersize=4,
                    label='Price')

            if prediction is not None:
                self._plot_prediction(ax, dates, prediction)

            ax.set_title(f'Price History - {product_name}',
                         fontsize=16, fontweight='bold', pad=20)
            ax.set_xlabel('Date', fontsize=12)
            ax.set_ylabel('Price ($)', fontsize=12)

            ax.xaxis.set_major_formatter(mdates.DateFormatter('%m/%d'))
            plt.setp(ax.xaxis.get_majorticklabels(), rotation=45)

            ax.grid(True, alpha=0.3)
            ax.legend(loc='upper left')
            fig.tight_layout()

            img_buffer = io.BytesIO()
            fig.savefig(img_buffer, format='png', dpi=self.dpi, bbox_inches='tight')
            return img_buffer.getvalue()
        finally:
            plt.close(fig)

    def _plot_prediction(self, ax, dates: List, prediction: PredictionResult) -> None:
        """Overlay the regression line and the projected next price."""
        slope = prediction.metrics.slope
        intercept = prediction.metrics.intercept
        fitted = [slope * i + intercept for i in range(len(dates))]

        ax.plot(dates, fitted,
                color=self.colors['secondary'],
                linestyle='--',
                alpha=0.7,
                label=f'Trend ({prediction.trend.value})')

        next_date = dates[-1] + timedelta(days=1)
        ax.plot([dates[-1], next_date], [fitted[-1], prediction.predicted_price],
                color=self.colors['accent'],
                linestyle=':',
                alpha=0.8)
        ax.scatter([next_date], [prediction.predicted_price],
                   color=self.colors['accent'],
                   zorder=5,
                   label=f'Predicted: ${prediction.predicted_price:.2f}')

        ax.text(0.98, 0.02, f'Confidence: {prediction.confidence}%',
                transform=ax.transAxes,
                horizontalalignment='right',
                verticalalignment='bottom',
                bbox=dict(boxstyle='round', facecolor='white', alpha=0.8),
                fontsize=10)

    def save_chart(self, chart_bytes: bytes, output_path: str) -> Path:
        """
        Write chart bytes to a file.

        Returns:
            Path of the written file
        """
        path = Path(output_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(chart_bytes)
        except OSError as e:
            raise ChartGenerationError(
                "Failed to save chart",
                {"path": str(path), "error": str(e)}
            )
        return path
