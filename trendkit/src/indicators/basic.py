"""
Basic Indicators - Building blocks consumed by the trend engines.

Provides the simple reductions the trend modules are built from:
- Windowed extremum helpers (with rightmost tie-break)
- Mean / median / mode
- Simple, smoothed, exponential and personalised moving averages
- Rolling versions of the above (one value per full window)
- Pluggable smoothing strategy, selected once per call
- True range and average true range

All calculations use numpy arrays; scalar results are returned as floats.
"""

import math
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import numpy as np

from ..utils.validation import (
    InvalidValueError,
    UnsupportedVariantError,
    assert_non_empty,
    assert_period,
    assert_positive,
    assert_same_len,
)


class MovingAverageType(Enum):
    """Weighting scheme for a single moving average value."""
    SIMPLE = "simple"
    SMOOTHED = "smoothed"
    EXPONENTIAL = "exponential"
    PERSONALISED = "personalised"


class ConstantModelType(Enum):
    """Central-value model used to smooth a series over a period."""
    SIMPLE_MOVING_AVERAGE = "simple_moving_average"
    SMOOTHED_MOVING_AVERAGE = "smoothed_moving_average"
    EXPONENTIAL_MOVING_AVERAGE = "exponential_moving_average"
    PERSONALISED_MOVING_AVERAGE = "personalised_moving_average"
    SIMPLE_MOVING_MEDIAN = "simple_moving_median"
    SIMPLE_MOVING_MODE = "simple_moving_mode"


@dataclass(frozen=True)
class SmoothingStrategy:
    """
    Smoothing selection for a whole series.

    The personalised moving average is the only model that carries
    parameters: alpha = alpha_num / (period + alpha_den).
    """
    model: ConstantModelType
    alpha_num: Optional[float] = None
    alpha_den: Optional[float] = None

    @classmethod
    def personalised(cls, alpha_num: float, alpha_den: float) -> 'SmoothingStrategy':
        """Build a personalised moving average strategy."""
        return cls(ConstantModelType.PERSONALISED_MOVING_AVERAGE, alpha_num, alpha_den)

    @classmethod
    def of(cls, value: Union['SmoothingStrategy', ConstantModelType, str, dict]) -> 'SmoothingStrategy':
        """
        Normalize a strategy given as a strategy, an enum member, a name or a
        config mapping like {'type': 'personalised_moving_average',
        'alpha_num': 5, 'alpha_den': 4}.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, ConstantModelType):
            return cls(value)
        if isinstance(value, str):
            try:
                return cls(ConstantModelType(value.lower()))
            except ValueError:
                raise UnsupportedVariantError(value) from None
        if isinstance(value, dict):
            strategy = cls.of(str(value.get('type', '')))
            if strategy.model is ConstantModelType.PERSONALISED_MOVING_AVERAGE:
                return cls.personalised(value.get('alpha_num'), value.get('alpha_den'))
            return strategy
        raise UnsupportedVariantError(repr(value))


def rightmost_argmax(values) -> int:
    """Index of the largest value, preferring the last occurrence on ties."""
    values = np.asarray(values, dtype=float)
    assert_non_empty("values", values)
    return len(values) - 1 - int(np.argmax(values[::-1]))


def rightmost_argmin(values) -> int:
    """Index of the smallest value, preferring the last occurrence on ties."""
    values = np.asarray(values, dtype=float)
    assert_non_empty("values", values)
    return len(values) - 1 - int(np.argmin(values[::-1]))


def max_value(values) -> float:
    """Largest value of a non-empty slice."""
    assert_non_empty("values", values)
    return float(np.max(np.asarray(values, dtype=float)))


def min_value(values) -> float:
    """Smallest value of a non-empty slice."""
    assert_non_empty("values", values)
    return float(np.min(np.asarray(values, dtype=float)))


def mean(values) -> float:
    """Arithmetic mean of a non-empty slice."""
    assert_non_empty("values", values)
    return float(np.mean(np.asarray(values, dtype=float)))


def median(values) -> float:
    """Median of a non-empty slice, ignoring NaNs."""
    assert_non_empty("values", values)
    values = np.asarray(values, dtype=float)
    return float(np.median(values[~np.isnan(values)]))


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def mode(values) -> float:
    """
    Most frequent value after rounding to the nearest integer.

    Values are rounded half away from zero. When several rounded values
    share the highest count, their mean is returned.
    """
    assert_non_empty("values", values)
    counts = Counter(_round_half_away(v) for v in values)
    top = max(counts.values())
    modes = [value for value, count in counts.items() if count == top]
    return sum(modes) / len(modes)


def _assert_alpha_denominator(period: int, alpha_den: float) -> None:
    if period + alpha_den <= 0:
        raise InvalidValueError(
            "alpha_den", alpha_den, f"period + alpha_den must be greater than 0 (period: {period})"
        )


def _personalised_average(values: np.ndarray, alpha: float) -> float:
    # Weight (1 - alpha)^k for the value k steps before the most recent one
    weights = (1.0 - alpha) ** np.arange(len(values))
    return float(np.sum(values[::-1] * weights) / np.sum(weights))


def moving_average(
    values,
    ma_type: MovingAverageType,
    alpha_num: Optional[float] = None,
    alpha_den: Optional[float] = None
) -> float:
    """
    Calculate a single moving average over the whole slice.

    Args:
        values: Slice of values (oldest first)
        ma_type: Weighting scheme
        alpha_num: Alpha numerator (personalised only)
        alpha_den: Alpha denominator offset (personalised only)

    Returns:
        Moving average value
    """
    assert_non_empty("values", values)
    values = np.asarray(values, dtype=float)
    n = len(values)

    if ma_type is MovingAverageType.SIMPLE:
        return float(np.mean(values))
    if ma_type is MovingAverageType.SMOOTHED:
        return _personalised_average(values, 1.0 / n)
    if ma_type is MovingAverageType.EXPONENTIAL:
        return _personalised_average(values, 2.0 / (n + 1.0))
    if ma_type is MovingAverageType.PERSONALISED:
        if alpha_num is None or alpha_den is None:
            raise UnsupportedVariantError("personalised moving average without alpha")
        _assert_alpha_denominator(n, alpha_den)
        return _personalised_average(values, alpha_num / (n + alpha_den))

    raise UnsupportedVariantError(str(ma_type))


def _rolling(values, period: int, reducer) -> np.ndarray:
    assert_non_empty("values", values)
    values = np.asarray(values, dtype=float)
    assert_period(period, len(values))

    result = np.empty(len(values) - period + 1)
    for i in range(len(result)):
        result[i] = reducer(values[i:i + period])
    return result


def rolling_mean(values, period: int) -> np.ndarray:
    """Mean of every full window of `period` values."""
    return _rolling(values, period, mean)


def rolling_median(values, period: int) -> np.ndarray:
    """Median of every full window of `period` values."""
    return _rolling(values, period, median)


def rolling_mode(values, period: int) -> np.ndarray:
    """Mode of every full window of `period` values."""
    return _rolling(values, period, mode)


def rolling_moving_average(
    values,
    period: int,
    ma_type: MovingAverageType,
    alpha_num: Optional[float] = None,
    alpha_den: Optional[float] = None
) -> np.ndarray:
    """Moving average of every full window of `period` values."""
    return _rolling(
        values, period,
        lambda window: moving_average(window, ma_type, alpha_num, alpha_den)
    )


_MOVING_AVERAGE_MODELS = {
    ConstantModelType.SIMPLE_MOVING_AVERAGE: MovingAverageType.SIMPLE,
    ConstantModelType.SMOOTHED_MOVING_AVERAGE: MovingAverageType.SMOOTHED,
    ConstantModelType.EXPONENTIAL_MOVING_AVERAGE: MovingAverageType.EXPONENTIAL,
    ConstantModelType.PERSONALISED_MOVING_AVERAGE: MovingAverageType.PERSONALISED,
}


def smooth(values, strategy, period: int) -> np.ndarray:
    """
    Smooth a series with the selected strategy.

    The strategy is resolved once, then applied to every full window.

    Args:
        values: Series to smooth
        strategy: SmoothingStrategy, ConstantModelType or config name
        period: Window length

    Returns:
        numpy array of len(values) - period + 1 smoothed values
    """
    strategy = SmoothingStrategy.of(strategy)

    if strategy.model is ConstantModelType.SIMPLE_MOVING_MEDIAN:
        return rolling_median(values, period)
    if strategy.model is ConstantModelType.SIMPLE_MOVING_MODE:
        return rolling_mode(values, period)

    ma_type = _MOVING_AVERAGE_MODELS[strategy.model]
    if ma_type is MovingAverageType.PERSONALISED:
        if strategy.alpha_num is None or strategy.alpha_den is None:
            raise UnsupportedVariantError("personalised moving average without alpha")
        assert_positive("alpha_num", strategy.alpha_num)
        _assert_alpha_denominator(period, strategy.alpha_den)
    return rolling_moving_average(
        values, period, ma_type, strategy.alpha_num, strategy.alpha_den
    )


def true_range(closes, highs, lows) -> np.ndarray:
    """
    Calculate the true range of each bar.

    True range is max(high - low, |high - close|, |low - close|), where close
    is taken at the same position as high and low. Pass a shifted close
    series to measure against the previous close.

    Args:
        closes: Reference closes
        highs: Highs
        lows: Lows

    Returns:
        numpy array of true range values
    """
    assert_same_len([("closes", closes), ("highs", highs), ("lows", lows)])
    assert_non_empty("closes", closes)

    closes = np.asarray(closes, dtype=float)
    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)

    return np.maximum.reduce([
        highs - lows,
        np.abs(highs - closes),
        np.abs(lows - closes),
    ])


def average_true_range(closes, highs, lows, strategy, period: int) -> np.ndarray:
    """
    Calculate the Average True Range.

    Args:
        closes: Closing prices
        highs: High prices
        lows: Low prices
        strategy: Smoothing applied to the true range
        period: ATR period

    Returns:
        numpy array of len - period + 1 ATR values
    """
    return smooth(true_range(closes, highs, lows), strategy, period)
