"""
Volatility System - Welles Wilder's volatility stop-and-reverse.

The stop trails the most significant close (highest close while long,
lowest while short) by an Average Range Constant:

    ARC = constant_multiplier * ATR(period)

A close through the previous stop reverses the position and re-anchors the
significant close to the extreme close reached since the last reversal.
"""

import logging

import numpy as np

from .basic import ConstantModelType, average_true_range
from .chart_trends import overall_trend
from .trend_indicators import Position
from ..utils.validation import (
    InvalidPeriodError,
    assert_min_period,
    assert_non_empty,
    assert_positive,
    assert_same_len,
)

logger = logging.getLogger(__name__)


def volatility_system(
    highs,
    lows,
    closes,
    period: int,
    constant_multiplier: float = 3.0,
    smoothing=ConstantModelType.SIMPLE_MOVING_AVERAGE
) -> np.ndarray:
    """
    Calculate Wilder's volatility system.

    The starting position comes from the slope of the typical price
    (high + low + close) / 3 over the first `period` bars: falling starts
    short, anything else starts long.

    Args:
        highs: List of high prices
        lows: List of low prices
        closes: List of closing prices
        period: ATR period, also the length of the initial trend window
        constant_multiplier: ATR multiplier giving the ARC
        smoothing: SmoothingStrategy / ConstantModelType used for the ATR

    Returns:
        numpy array of stop values, one per ATR value (len - period + 1)

    Raises:
        MismatchedLengthError: If the series lengths differ
        EmptyInputError: If the series are empty
        InvalidPeriodError: If period < 2 or there are fewer than period + 1 bars
        InvalidValueError: If constant_multiplier is not positive
    """
    assert_same_len([("closes", closes), ("highs", highs), ("lows", lows)])
    assert_non_empty("closes", closes)
    length = len(closes)
    assert_min_period(period, 2, length)
    if length < period + 1:
        raise InvalidPeriodError(
            period, length, f"needs at least {period + 1} bars (period + 1)"
        )
    assert_positive("constant_multiplier", constant_multiplier)

    highs = np.asarray(highs, dtype=float)
    lows = np.asarray(lows, dtype=float)
    closes = np.asarray(closes, dtype=float)

    typical_price = (highs + lows + closes) / 3.0
    trend = overall_trend(typical_price[:period])
    arc = average_true_range(closes, highs, lows, smoothing, period) * constant_multiplier

    sars = np.empty(len(arc))
    previous_flip = period

    if trend.slope < 0:
        position = Position.SHORT
        significant_close = np.min(closes[:period])
        sars[0] = significant_close + arc[0]
        sars[1] = significant_close + arc[1]
    else:
        position = Position.LONG
        significant_close = np.max(closes[:period])
        sars[0] = significant_close - arc[0]
        sars[1] = significant_close - arc[1]

    for i in range(2, len(arc)):
        last = i + period - 1

        if position is Position.SHORT and closes[last] > sars[i - 1]:
            position = Position.LONG
            significant_close = np.max(closes[previous_flip:last])
            previous_flip = last
            logger.debug(f"Volatility system flip to long at bar {last}")
        elif position is Position.LONG and closes[last] < sars[i - 1]:
            position = Position.SHORT
            significant_close = np.min(closes[previous_flip:last])
            previous_flip = last
            logger.debug(f"Volatility system flip to short at bar {last}")

        if position is Position.LONG:
            sars[i] = significant_close - arc[i]
        else:
            sars[i] = significant_close + arc[i]

    return sars
