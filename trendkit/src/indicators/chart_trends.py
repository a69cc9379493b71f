"""
Chart Trends - Peak/valley detection, trend lines and trend segmentation.

This module decomposes a price series into its trend structure:
- peaks / valleys: local extrema over sliding windows, merging close neighbours
- trend_line: OLS fit of value against series position
- goodness_of_fit: adjusted R², RMSE and Durbin-Watson of a fitted line
- break_down_trends: online segmentation of a series into piecewise linear
  trends, splitting when the running fit degrades

Segmentation Policy:
    Each new price is appended to the current segment and the segment is
    refitted. The fit is then judged on two tiers:

    | Tier | Trigger                                                       |
    |------|---------------------------------------------------------------|
    | Soft | adj R² low AND RMSE grew AND Durbin-Watson outside soft band   |
    | Hard | adj R² very low OR RMSE grew a lot OR DW outside hard band     |

    A triggering point is first treated as a transient outlier and skipped,
    up to `max_outliers` times. Once that budget is spent the current
    segment is closed and a new one starts at its last accepted index.
"""

import logging
import math
from dataclasses import dataclass, fields
from typing import NamedTuple

import numpy as np

from .basic import rightmost_argmax, rightmost_argmin
from ..utils.validation import (
    EmptyInputError,
    InvalidValueError,
    assert_non_empty,
    assert_period,
)

logger = logging.getLogger(__name__)

# Below this, sums of squares are treated as zero
NUMERICAL_TOLERANCE = 1e-10

# Durbin-Watson value meaning "no autocorrelation signal"
NEUTRAL_DURBIN_WATSON = 2.0


class Extremum(NamedTuple):
    """A peak or valley: its value and position in the series."""
    value: float
    index: int


class TrendLine(NamedTuple):
    """OLS line: value = slope * index + intercept."""
    slope: float
    intercept: float


class FitStatistics(NamedTuple):
    """Quality of a fitted trend line."""
    adjusted_r_squared: float
    rmse: float
    durbin_watson: float


class TrendSegment(NamedTuple):
    """A trend over [start_index, end_index] with its fitted line."""
    start_index: int
    end_index: int
    slope: float
    intercept: float


# =============================================================================
# Peaks and Valleys
# =============================================================================

def _find_extrema(prices, period: int, closest_neighbor: int, find_peaks: bool) -> list[Extremum]:
    prices = np.asarray(prices, dtype=float)
    length = len(prices)
    assert_period(period, length)
    if closest_neighbor < 0:
        raise InvalidValueError("closest_neighbor", closest_neighbor, "must not be negative")

    locate = rightmost_argmax if find_peaks else rightmost_argmin
    extrema: list[Extremum] = []
    last_value = 0.0
    last_index = 0

    for start in range(length - period + 1):
        idx = start + locate(prices[start:start + period])
        value = float(prices[idx])

        if not extrema:
            extrema.append(Extremum(value, idx))
            last_value, last_index = value, idx
            continue

        if idx <= last_index + closest_neighbor:
            better = value > last_value if find_peaks else value < last_value
            worse = value < last_value if find_peaks else value > last_value
            if worse:
                # Absorbed by the last extremum, which keeps its value
                last_index = idx
            elif better:
                extrema[-1] = Extremum(value, idx)
                last_value, last_index = value, idx
        elif (value, idx) not in extrema:
            extrema.append(Extremum(value, idx))
            last_value, last_index = value, idx

    return extrema


def peaks(prices, period: int, closest_neighbor: int = 1) -> list[Extremum]:
    """
    Find local maxima over sliding windows.

    Every full window of `period` prices contributes its maximum (the
    rightmost one on ties). A candidate within `closest_neighbor` positions
    of the last accepted peak either replaces it (if higher) or is absorbed
    (if lower); only the last accepted peak is ever compared against.

    Args:
        prices: Price series (usually highs)
        period: Window length
        closest_neighbor: Minimum distance between two reported peaks

    Returns:
        List of Extremum(value, index) with strictly increasing indices

    Raises:
        InvalidPeriodError: If period is 0 or longer than prices
    """
    return _find_extrema(prices, period, closest_neighbor, find_peaks=True)


def valleys(prices, period: int, closest_neighbor: int = 1) -> list[Extremum]:
    """
    Find local minima over sliding windows.

    Mirror image of peaks(): lower candidates nearby replace the last
    valley, higher ones are absorbed.

    Args:
        prices: Price series (usually lows)
        period: Window length
        closest_neighbor: Minimum distance between two reported valleys

    Returns:
        List of Extremum(value, index) with strictly increasing indices

    Raises:
        InvalidPeriodError: If period is 0 or longer than prices
    """
    return _find_extrema(prices, period, closest_neighbor, find_peaks=False)


# =============================================================================
# Trend Lines
# =============================================================================

def _fit(values: np.ndarray, indices: np.ndarray) -> TrendLine:
    mean_x = np.mean(indices)
    mean_y = np.mean(values)
    dx = indices - mean_x

    denominator = float(np.sum(dx * dx))
    if denominator == 0.0:
        raise InvalidValueError(
            "indices", indices.tolist(), "need at least two distinct index values"
        )

    slope = float(np.sum(dx * (values - mean_y))) / denominator
    return TrendLine(slope, float(mean_y - slope * mean_x))


def trend_line(points) -> TrendLine:
    """
    Fit an OLS line through (value, index) points.

    The index is the independent variable.

    Args:
        points: Sequence of (value, index) pairs

    Returns:
        TrendLine(slope, intercept)

    Raises:
        EmptyInputError: If points is empty
        InvalidValueError: If all points share one index
    """
    if len(points) == 0:
        raise EmptyInputError("points")
    values = np.array([p[0] for p in points], dtype=float)
    indices = np.array([p[1] for p in points], dtype=float)
    return _fit(values, indices)


def overall_trend(prices) -> TrendLine:
    """Trend line fitted to every price against its position."""
    assert_non_empty("prices", prices)
    values = np.asarray(prices, dtype=float)
    return _fit(values, np.arange(len(values), dtype=float))


def peak_trend(prices, period: int, closest_neighbor: int = 1) -> TrendLine:
    """Trend line fitted to the peaks of prices."""
    return trend_line(peaks(prices, period, closest_neighbor))


def valley_trend(prices, period: int, closest_neighbor: int = 1) -> TrendLine:
    """Trend line fitted to the valleys of prices."""
    return trend_line(valleys(prices, period, closest_neighbor))


# =============================================================================
# Goodness of Fit
# =============================================================================

def _goodness_of_fit(values: np.ndarray, indices: np.ndarray, line: TrendLine) -> FitStatistics:
    n = len(values)
    if n < 2:
        return FitStatistics(0.0, 0.0, NEUTRAL_DURBIN_WATSON)

    residuals = values - (line.intercept + line.slope * indices)
    sum_sq_residuals = float(np.sum(residuals ** 2))
    total_squares = float(np.sum((values - np.mean(values)) ** 2))

    if total_squares > NUMERICAL_TOLERANCE:
        r_squared = max(0.0, 1.0 - sum_sq_residuals / total_squares)
    else:
        r_squared = 0.0

    if n > 2:
        degrees_of_freedom = max(n - 2.0, 1.0)
        adjusted_r_squared = 1.0 - (1.0 - r_squared) * (n - 1) / degrees_of_freedom
    else:
        adjusted_r_squared = r_squared

    if sum_sq_residuals > NUMERICAL_TOLERANCE:
        durbin_watson = float(np.sum(np.diff(residuals) ** 2)) / sum_sq_residuals
    else:
        durbin_watson = NEUTRAL_DURBIN_WATSON

    rmse = math.sqrt(sum_sq_residuals / n)
    return FitStatistics(adjusted_r_squared, rmse, durbin_watson)


def goodness_of_fit(points, line) -> FitStatistics:
    """
    Judge how well a trend line fits its points.

    Notes:
        - Fewer than 2 points returns (0.0, 0.0, 2.0)
        - Raw R² is clamped at 0 and is 0 for (near) constant values
        - Durbin-Watson is 2.0 when residuals are (near) zero; values far
          from 2 indicate structured residuals
        - RMSE is in price units, not normalized

    Args:
        points: Sequence of (value, index) pairs
        line: (slope, intercept) fitted to the points

    Returns:
        FitStatistics(adjusted_r_squared, rmse, durbin_watson)
    """
    values = np.array([p[0] for p in points], dtype=float)
    indices = np.array([p[1] for p in points], dtype=float)
    return _goodness_of_fit(values, indices, TrendLine(*line))


# =============================================================================
# Trend Segmentation
# =============================================================================

@dataclass(frozen=True)
class TrendBreakConfig:
    """
    Thresholds for break_down_trends.

    Attributes:
        max_outliers: Breaking points skipped as outliers before a split
        soft_adj_r_squared_minimum: Adjusted R² below this counts toward a soft break
        hard_adj_r_squared_minimum: Adjusted R² below this alone is a hard break
        soft_rmse_multiplier: RMSE growth vs. the last accepted fit for a soft break
        hard_rmse_multiplier: RMSE growth that alone is a hard break
        soft_durbin_watson_min / soft_durbin_watson_max: Soft residual band
        hard_durbin_watson_min / hard_durbin_watson_max: Hard residual band
    """
    max_outliers: int = 1
    soft_adj_r_squared_minimum: float = 0.25
    hard_adj_r_squared_minimum: float = 0.05
    soft_rmse_multiplier: float = 1.3
    hard_rmse_multiplier: float = 2.0
    soft_durbin_watson_min: float = 1.0
    soft_durbin_watson_max: float = 3.0
    hard_durbin_watson_min: float = 0.7
    hard_durbin_watson_max: float = 3.3

    def __post_init__(self):
        """Validate thresholds after initialization."""
        if isinstance(self.max_outliers, bool) or not isinstance(self.max_outliers, int) \
                or self.max_outliers < 0:
            raise InvalidValueError(
                "max_outliers", self.max_outliers, "must be a non-negative integer"
            )
        for name in ('soft_rmse_multiplier', 'hard_rmse_multiplier'):
            value = getattr(self, name)
            if not value > 0:
                raise InvalidValueError(name, value, "must be greater than 0")
        for tier in ('soft', 'hard'):
            low = getattr(self, f'{tier}_durbin_watson_min')
            high = getattr(self, f'{tier}_durbin_watson_max')
            if not low <= high:
                raise InvalidValueError(
                    f'{tier}_durbin_watson_min', low,
                    f"must not exceed {tier}_durbin_watson_max ({high})"
                )

    @classmethod
    def from_dict(cls, config: dict) -> 'TrendBreakConfig':
        """
        Build a config from a mapping, using defaults for missing keys.

        Raises:
            InvalidValueError: For unknown keys or invalid thresholds
        """
        known = {f.name for f in fields(cls)}
        for key in config:
            if key not in known:
                raise InvalidValueError(key, config[key], "unknown trend break setting")
        return cls(**config)

    def is_soft_break(self, fit: FitStatistics, previous_rmse: float) -> bool:
        """All soft conditions must hold."""
        return (
            fit.adjusted_r_squared < self.soft_adj_r_squared_minimum
            and fit.rmse > self.soft_rmse_multiplier * previous_rmse
            and (fit.durbin_watson < self.soft_durbin_watson_min
                 or fit.durbin_watson > self.soft_durbin_watson_max)
        )

    def is_hard_break(self, fit: FitStatistics, previous_rmse: float) -> bool:
        """Any single hard condition suffices."""
        return (
            fit.adjusted_r_squared < self.hard_adj_r_squared_minimum
            or fit.rmse > self.hard_rmse_multiplier * previous_rmse
            or fit.durbin_watson < self.hard_durbin_watson_min
            or fit.durbin_watson > self.hard_durbin_watson_max
        )


class _SegmentWindow:
    """Points accepted into the segment being built."""

    def __init__(self, prices: np.ndarray, start: int, end: int):
        self.prices = prices
        self.values = [float(v) for v in prices[start:end + 1]]
        self.indices = list(range(start, end + 1))

    def push(self, index: int) -> None:
        self.values.append(float(self.prices[index]))
        self.indices.append(index)

    def pop(self) -> None:
        self.values.pop()
        self.indices.pop()

    def __len__(self) -> int:
        return len(self.values)

    def fit(self) -> tuple[TrendLine, FitStatistics]:
        values = np.array(self.values)
        indices = np.array(self.indices, dtype=float)
        line = _fit(values, indices)
        return line, _goodness_of_fit(values, indices, line)


def break_down_trends(prices, config: TrendBreakConfig | None = None) -> list[TrendSegment]:
    """
    Split a price series into consecutive linear trends.

    Segments share their boundary index: the end of one segment is the start
    of the next. The first segment starts at 0 and the last ends at
    len(prices) - 1.

    Args:
        prices: Price series
        config: Break thresholds (defaults to TrendBreakConfig())

    Returns:
        List of TrendSegment(start_index, end_index, slope, intercept)

    Raises:
        EmptyInputError: If prices is empty
    """
    assert_non_empty("prices", prices)
    config = config or TrendBreakConfig()
    prices = np.asarray(prices, dtype=float)
    length = len(prices)

    if length == 1:
        return [TrendSegment(0, 0, 0.0, float(prices[0]))]

    trends: list[TrendSegment] = []
    start_index = 0
    end_index = 1
    window = _SegmentWindow(prices, 0, 1)
    current, _ = window.fit()
    previous_rmse = math.inf
    outliers = 0

    for index in range(2, length):
        window.push(index)
        line, fit = window.fit()

        if not (config.is_soft_break(fit, previous_rmse) or config.is_hard_break(fit, previous_rmse)):
            previous_rmse = fit.rmse
            current = line
            end_index = index
            continue

        if outliers < config.max_outliers:
            window.pop()
            outliers += 1
            continue

        trends.append(TrendSegment(start_index, end_index, current.slope, current.intercept))
        logger.debug(
            f"Trend break at index {index}: closed [{start_index}, {end_index}] "
            f"(adj_r2={fit.adjusted_r_squared:.4f}, rmse={fit.rmse:.4f}, "
            f"dw={fit.durbin_watson:.4f})"
        )

        start_index = end_index
        end_index = index
        window = _SegmentWindow(prices, start_index, end_index)
        current, restart_fit = window.fit()
        previous_rmse = restart_fit.rmse if len(window) > 2 else math.inf
        outliers = 0

    # Pending trailing outliers stay out of the fit but inside the segment
    trends.append(TrendSegment(start_index, length - 1, current.slope, current.intercept))
    return trends
