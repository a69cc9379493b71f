"""trendkit source modules."""

# Re-export commonly used components for convenience
from .indicators import (
    break_down_trends,
    directional_movement_system,
    parabolic_time_price_system,
    peaks,
    valleys,
    volatility_system,
)
from .data import TrendLibrary

__all__ = [
    # Trend calculations
    'break_down_trends',
    'directional_movement_system',
    'parabolic_time_price_system',
    'peaks',
    'valleys',
    'volatility_system',
    # Facade
    'TrendLibrary',
]
