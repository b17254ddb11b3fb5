"""
Tests for trend narrative composition.
"""

import pytest
from hypothesis import given, strategies as st
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from price_trend_monitor.analysis.models import Trend
from price_trend_monitor.analysis.narrative import (
    NarrativeBuilder, CONTINUATIONS, OPENINGS, VOLATILITY_NOTES,
    format_change, is_steady, slope_agrees
)


class TestFormatChange:

    @pytest.mark.parametrize("change, expected", [
        (40.0, "40.0"),
        (-25.0, "25.0"),
        (0.05, "0.1"),
        (1.249, "1.2"),
        (12.35, "12.4"),
        (0.0, "0.0"),
    ])
    def test_one_decimal_half_up(self, change, expected):
        assert format_change(change) == expected

    def test_huge_change_is_formatted_in_full(self):
        text = format_change(1e302)

        assert text.endswith(".0")
        assert len(text.split(".")[0]) == 303


class TestNarrativeParts:

    def test_slope_agreement(self):
        assert slope_agrees(Trend.UP, 0.5)
        assert not slope_agrees(Trend.UP, -0.5)
        assert slope_agrees(Trend.DOWN, -0.5)
        assert not slope_agrees(Trend.DOWN, 0.0)
        assert not slope_agrees(Trend.STABLE, 3.0)

    def test_stability_thresholds_per_trend(self):
        assert is_steady(Trend.UP, 14.9)
        assert not is_steady(Trend.UP, 15.0)
        assert is_steady(Trend.STABLE, 9.9)
        assert not is_steady(Trend.STABLE, 10.0)

    def test_upward_steady_without_continuation(self):
        text = NarrativeBuilder().build(Trend.UP, 5.0, -0.1, 3.0)

        assert text.startswith("Based on recent trends, prices are moving upward.")
        assert "5.0% increase" in text
        assert CONTINUATIONS[Trend.UP] not in text
        assert text.endswith(VOLATILITY_NOTES[(Trend.UP, True)])

    def test_downward_steady(self):
        text = NarrativeBuilder().build(Trend.DOWN, -8.25, -1.0, 4.0)

        assert text == " ".join([
            OPENINGS[Trend.DOWN].format(change="8.3"),
            CONTINUATIONS[Trend.DOWN],
            VOLATILITY_NOTES[(Trend.DOWN, True)],
        ])

    def test_stable_volatile(self):
        text = NarrativeBuilder().build(Trend.STABLE, -1.5, 2.0, 22.0)

        assert "(1.5% change)" in text
        assert text.endswith(VOLATILITY_NOTES[(Trend.STABLE, False)])


class TestNarrativeProperties:

    @given(trend=st.sampled_from(list(Trend)),
           change=st.floats(min_value=-1000, max_value=1000, allow_nan=False),
           slope=st.floats(min_value=-1000, max_value=1000, allow_nan=False),
           cv=st.floats(min_value=0, max_value=500, allow_nan=False))
    def test_narrative_always_states_magnitude_and_volatility(self, trend, change, slope, cv):
        text = NarrativeBuilder().build(trend, change, slope, cv)

        assert f"{format_change(change)}%" in text
        assert "-" not in format_change(change)
        assert any(text.endswith(note) for note in VOLATILITY_NOTES.values())
