"""
Trend Indicators - Parabolic SAR and the Directional Movement System.

Both are stateful scans over high/low(/close) series:

| Indicator                  | State carried bar to bar                       |
|----------------------------|------------------------------------------------|
| Parabolic Time/Price (SAR) | position, SAR, acceleration factor, flip start |
| Directional Movement       | rolling DM / TR sums, smoothed DX              |

The SAR scan flips position whenever price crosses the previous SAR and
resets the acceleration factor. The DM system's ADX smoothing is pluggable
(moving average, median or mode) and is selected once per call.
"""

import logging
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np

from .basic import ConstantModelType, SmoothingStrategy, smooth, true_range
from ..utils.validation import (
    InvalidPeriodError,
    InvalidValueError,
    UnsupportedVariantError,
    assert_non_empty,
    assert_positive,
    assert_same_len,
)

logger = logging.getLogger(__name__)

# Keeps float drift (0.19999999999999998 vs 0.2) from allowing an extra
# acceleration step past the maximum
ACCELERATION_EPSILON = 1e-7


class Position(Enum):
    """Trade position."""
    LONG = "long"
    SHORT = "short"


class DirectionalMovement(NamedTuple):
    """One bar of the Directional Movement System."""
    plus_di: float
    minus_di: float
    adx: float
    adxr: float


# =============================================================================
# Parabolic Time/Price System
# =============================================================================

def long_parabolic_time_price_system(
    previous_sar: float,
    extreme_point: float,
    acceleration_factor: float,
    low: float
) -> float:
    """
    Next SAR while long.

    Args:
        previous_sar: Previous SAR (period low if none)
        extreme_point: Highest high since the position opened
        acceleration_factor: Current acceleration factor
        low: Lowest low of the current and previous bar

    Returns:
        SAR, never above `low`
    """
    sar = previous_sar + acceleration_factor * (extreme_point - previous_sar)
    return min(sar, low)


def short_parabolic_time_price_system(
    previous_sar: float,
    extreme_point: float,
    acceleration_factor: float,
    high: float
) -> float:
    """
    Next SAR while short.

    Args:
        previous_sar: Previous SAR (period high if none)
        extreme_point: Lowest low since the position opened
        acceleration_factor: Current acceleration factor
        high: Highest high of the current and previous bar

    Returns:
        SAR, never below `high`
    """
    sar = previous_sar - acceleration_factor * (previous_sar - extreme_point)
    return max(sar, high)


def _as_position(value) -> Position:
    if isinstance(value, Position):
        return value
    if isinstance(value, str):
        try:
            return Position(value.lower())
        except ValueError:
            pass
    raise UnsupportedVariantError(f"position {value!r}")


def parabolic_time_price_system(
    highs,
    lows,
    acceleration_factor_start: float = 0.02,
    acceleration_factor_max: float = 0.2,
    acceleration_factor_step: float = 0.02,
    start_position: Position = Position.LONG,
    previous_sar: Optional[float] = None
) -> np.ndarray:
    """
    Calculate Wilder's Parabolic Time/Price System (SAR) for every bar.

    Args:
        highs: List of high prices
        lows: List of low prices
        acceleration_factor_start: Initial (and post-flip) acceleration factor
        acceleration_factor_max: Acceleration factor ceiling
        acceleration_factor_step: Increment applied on each new extreme
        start_position: Position held at the first bar
        previous_sar: SAR before the first bar; None uses the first bar's
            low (long) or high (short)

    Returns:
        numpy array of SAR values, one per bar

    Raises:
        EmptyInputError: If highs or lows is empty
        MismatchedLengthError: If highs and lows differ in length
        InvalidValueError: For non-positive acceleration settings
        UnsupportedVariantError: If start_position is not a Position
    """
    assert_non_empty("highs", highs)
    assert_non_empty("lows", lows)
    assert_same_len([("highs", highs), ("lows", lows)])
    assert_positive("acceleration_factor_start", acceleration_factor_start)
    assert_positive("acceleration_factor_max", acceleration_factor_max)
    assert_positive("acceleration_factor_step", acceleration_factor_step)
    if acceleration_factor_start > acceleration_factor_max:
        raise InvalidValueError(
            "acceleration_factor_start", acceleration_factor_start,
            f"must not exceed acceleration_factor_max ({acceleration_factor_max})"
        )
    position = _as_position(start_position)

    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    n = len(highs)

    ratchet_limit = acceleration_factor_max - ACCELERATION_EPSILON
    acceleration_factor = acceleration_factor_start
    position_start = 0
    result = np.empty(n)

    if position is Position.LONG:
        seed = lows[0] if previous_sar is None else previous_sar
        result[0] = long_parabolic_time_price_system(
            seed, highs[0], acceleration_factor, lows[0]
        )
    else:
        seed = highs[0] if previous_sar is None else previous_sar
        result[0] = short_parabolic_time_price_system(
            seed, lows[0], acceleration_factor, highs[0]
        )

    for i in range(1, n):
        prev_sar = result[i - 1]

        if position is Position.SHORT and highs[i] > prev_sar:
            # Flip to long, pivoting from the lowest low of the short run
            pivot = np.min(lows[position_start:i])
            extreme_point = np.max(highs[position_start:i + 1])
            logger.debug(f"SAR flip to long at bar {i} (pivot={pivot})")
            position = Position.LONG
            position_start = i
            acceleration_factor = acceleration_factor_start
            result[i] = long_parabolic_time_price_system(
                pivot, extreme_point, acceleration_factor, np.min(lows[i - 1:i + 1])
            )

        elif position is Position.SHORT:
            extreme_point = np.min(lows[position_start:i])
            if lows[i] < extreme_point:
                extreme_point = lows[i]
                if acceleration_factor <= ratchet_limit:
                    acceleration_factor = min(
                        acceleration_factor + acceleration_factor_step,
                        acceleration_factor_max
                    )
            result[i] = short_parabolic_time_price_system(
                prev_sar, extreme_point, acceleration_factor, np.max(highs[i - 1:i + 1])
            )

        elif lows[i] < prev_sar:
            # Flip to short, pivoting from the highest high of the long run
            pivot = np.max(highs[position_start:i])
            extreme_point = np.min(lows[position_start:i + 1])
            logger.debug(f"SAR flip to short at bar {i} (pivot={pivot})")
            position = Position.SHORT
            position_start = i
            acceleration_factor = acceleration_factor_start
            result[i] = short_parabolic_time_price_system(
                pivot, extreme_point, acceleration_factor, np.max(highs[i - 1:i + 1])
            )

        else:
            extreme_point = np.max(highs[position_start:i])
            if highs[i] > extreme_point:
                extreme_point = highs[i]
                if acceleration_factor <= ratchet_limit:
                    acceleration_factor = min(
                        acceleration_factor + acceleration_factor_step,
                        acceleration_factor_max
                    )
            result[i] = long_parabolic_time_price_system(
                prev_sar, extreme_point, acceleration_factor, np.min(lows[i - 1:i + 1])
            )

    return result


# =============================================================================
# Directional Movement System
# =============================================================================

def directional_movement(highs, lows) -> tuple[np.ndarray, np.ndarray]:
    """
    Calculate +DM and -DM for every move between consecutive bars.

    A move counts toward +DM when the high rose more than the low fell, and
    toward -DM in the opposite case; otherwise both are 0.

    Returns:
        Tuple of (+DM, -DM) arrays, each one shorter than the input
    """
    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)

    up_move = highs[1:] - highs[:-1]
    down_move = lows[:-1] - lows[1:]

    plus_dm = np.where((up_move > 0) & (up_move > down_move), up_move, 0.0)
    minus_dm = np.where((down_move > 0) & (down_move > up_move), down_move, 0.0)
    return plus_dm, minus_dm


def directional_movement_system(
    highs,
    lows,
    closes,
    period: int,
    smoothing=ConstantModelType.SIMPLE_MOVING_AVERAGE
) -> list[DirectionalMovement]:
    """
    Calculate Wilder's Directional Movement System (+DI, -DI, ADX, ADXR).

    Args:
        highs: List of high prices
        lows: List of low prices
        closes: List of closing prices
        period: Period used for DI sums, ADX smoothing and ADXR spacing
        smoothing: SmoothingStrategy / ConstantModelType used for ADX

    Returns:
        List of DirectionalMovement, one per bar where all four exist

    Raises:
        MismatchedLengthError: If the series lengths differ
        EmptyInputError: If the series are empty
        InvalidPeriodError: If period is 0 or len < 3 * period
    """
    assert_same_len([("highs", highs), ("lows", lows), ("closes", closes)])
    assert_non_empty("highs", highs)
    length = len(highs)
    if period <= 0:
        raise InvalidPeriodError(period, length, "must be greater than 0")
    if length < 3 * period:
        raise InvalidPeriodError(
            period, length, f"needs at least {3 * period} bars (3 x period)"
        )
    strategy = SmoothingStrategy.of(smoothing)

    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    closes = np.asarray(closes, dtype=float)

    plus_dm, minus_dm = directional_movement(highs, lows)
    tr = true_range(closes[1:], highs[1:], lows[1:])

    count = length - period
    plus_di = np.zeros(count)
    minus_di = np.zeros(count)

    for k in range(count):
        tr_sum = np.sum(tr[k:k + period])
        if tr_sum != 0:
            plus_di[k] = 100.0 * np.sum(plus_dm[k:k + period]) / tr_sum
            minus_di[k] = 100.0 * np.sum(minus_dm[k:k + period]) / tr_sum

    di_sum = plus_di + minus_di
    dx = np.zeros(count)
    nonzero = di_sum != 0
    dx[nonzero] = 100.0 * np.abs(plus_di[nonzero] - minus_di[nonzero]) / di_sum[nonzero]

    adx = smooth(dx, strategy, period)
    adxr = (adx[:len(adx) - period + 1] + adx[period - 1:]) / 2.0

    offset = 2 * period - 2
    return [
        DirectionalMovement(
            float(plus_di[k + offset]),
            float(minus_di[k + offset]),
            float(adx[k + period - 1]),
            float(adxr[k]),
        )
        for k in range(len(adxr))
    ]
