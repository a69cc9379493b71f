"""
Shared test fixtures for trendkit tests.

This module provides common fixtures used across multiple test files
to reduce code duplication and ensure consistent test data.
"""

import pytest
import tempfile
from pathlib import Path

import numpy as np


TRENDS_YAML = """
trends:
  peaks:
    period: 5
    closest_neighbor: 1
  trend_break:
    max_outliers: 1
    soft_adj_r_squared_minimum: 0.25
    hard_adj_r_squared_minimum: 0.05
    soft_rmse_multiplier: 1.3
    hard_rmse_multiplier: 2.0
    soft_durbin_watson_min: 1.0
    soft_durbin_watson_max: 3.0
    hard_durbin_watson_min: 0.7
    hard_durbin_watson_max: 3.3
  parabolic_sar:
    acceleration_factor_start: 0.02
    acceleration_factor_max: 0.2
    acceleration_factor_step: 0.02
    start_position: long
  directional_movement:
    period: 5
    smoothing: simple_moving_average
  volatility_system:
    period: 5
    constant_multiplier: 3.0
    smoothing: simple_moving_average
"""


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def temp_config_dir():
    """Create a temporary config directory with a standard trends.yaml."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir)
        (config_path / "trends.yaml").write_text(TRENDS_YAML)
        yield config_path


@pytest.fixture
def trends_config() -> dict:
    """The `trends` section matching temp_config_dir's trends.yaml."""
    return {
        'peaks': {'period': 5, 'closest_neighbor': 1},
        'trend_break': {},
        'parabolic_sar': {
            'acceleration_factor_start': 0.02,
            'acceleration_factor_max': 0.2,
            'acceleration_factor_step': 0.02,
            'start_position': 'long',
        },
        'directional_movement': {'period': 5, 'smoothing': 'simple_moving_average'},
        'volatility_system': {
            'period': 5,
            'constant_multiplier': 3.0,
            'smoothing': 'simple_moving_average',
        },
    }


# =============================================================================
# Market Data Fixtures
# =============================================================================

@pytest.fixture
def sample_candles() -> list[dict]:
    """100 candles of a seeded random walk (oldest first)."""
    rng = np.random.default_rng(42)
    n = 100
    closes = 45000.0 + np.cumsum(rng.normal(0, 100, n))
    highs = closes + np.abs(rng.normal(50, 20, n))
    lows = closes - np.abs(rng.normal(50, 20, n))
    opens = closes + rng.normal(0, 30, n)
    volumes = np.abs(rng.normal(1000, 200, n))

    return [
        {
            'open': float(opens[i]),
            'high': float(highs[i]),
            'low': float(lows[i]),
            'close': float(closes[i]),
            'volume': float(volumes[i]),
        }
        for i in range(n)
    ]


@pytest.fixture
def dms_highs() -> list[float]:
    return [100.83, 100.91, 101.03, 101.27, 100.52, 101.27, 101.03, 100.91, 100.83]


@pytest.fixture
def dms_lows() -> list[float]:
    return [100.59, 100.72, 100.84, 100.91, 99.85, 100.91, 100.84, 100.72, 100.59]


@pytest.fixture
def dms_closes() -> list[float]:
    return [100.76, 100.88, 100.96, 101.14, 100.01, 101.14, 100.96, 100.88, 100.76]
