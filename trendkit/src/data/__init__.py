"""Data processing modules - candle-level trend analysis."""

from .trend_library import TrendLibrary

__all__ = [
    'TrendLibrary',
]
