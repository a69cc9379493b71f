"""Trend indicator modules - extrema, trend lines, segmentation, SAR and DMS."""

from .basic import ConstantModelType, MovingAverageType, SmoothingStrategy
from .chart_trends import (
    Extremum,
    FitStatistics,
    TrendBreakConfig,
    TrendLine,
    TrendSegment,
    break_down_trends,
    goodness_of_fit,
    overall_trend,
    peak_trend,
    peaks,
    trend_line,
    valley_trend,
    valleys,
)
from .trend_indicators import (
    DirectionalMovement,
    Position,
    directional_movement_system,
    parabolic_time_price_system,
)
from .volatility import volatility_system

__all__ = [
    'ConstantModelType',
    'MovingAverageType',
    'SmoothingStrategy',
    'Extremum',
    'FitStatistics',
    'TrendBreakConfig',
    'TrendLine',
    'TrendSegment',
    'break_down_trends',
    'goodness_of_fit',
    'overall_trend',
    'peak_trend',
    'peaks',
    'trend_line',
    'valley_trend',
    'valleys',
    'DirectionalMovement',
    'Position',
    'directional_movement_system',
    'parabolic_time_price_system',
    'volatility_system',
]
