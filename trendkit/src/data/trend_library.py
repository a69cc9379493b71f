"""
Trend Library - Config-driven trend analysis over OHLCV candles.

Runs every trend calculation of trendkit against one candle series and
reports the most recent (or whole-series) result of each. Calculations whose
preconditions the candles cannot meet (series too short for the configured
period, degenerate fits) are reported as None rather than raised.
"""

import logging
import time
from typing import Any, Callable, Optional

from ..indicators.chart_trends import (
    TrendBreakConfig,
    break_down_trends,
    overall_trend,
    peak_trend,
    peaks,
    valley_trend,
    valleys,
)
from ..indicators.trend_indicators import (
    directional_movement_system,
    parabolic_time_price_system,
)
from ..indicators.volatility import volatility_system
from ..utils.validation import IndicatorError

logger = logging.getLogger(__name__)


class TrendLibrary:
    """
    Central library for trend calculations.

    Minimum candles per result (defaults in parentheses):

        | Result              | Minimum candles            |
        |---------------------|----------------------------|
        | overall_trend       | 2                          |
        | peaks / valleys     | peaks.period (5)           |
        | peak / valley trend | 2 extrema                  |
        | trend_segments      | 1                          |
        | parabolic_sar       | 1                          |
        | directional_movement| 3 * period (42)            |
        | volatility_system   | period + 1 (8)             |
    """

    def __init__(self, config: dict):
        """
        Initialize TrendLibrary.

        Args:
            config: Trends configuration dictionary (the `trends` section)
        """
        self.config = config
        self.trend_break = TrendBreakConfig.from_dict(config.get('trend_break') or {})

    def calculate_all(
        self,
        symbol: str,
        timeframe: str,
        candles: list[dict]
    ) -> dict[str, Any]:
        """
        Calculate all configured trend results for a symbol/timeframe.

        Args:
            symbol: Trading pair (e.g., "BTC/USDT")
            timeframe: Candle timeframe (e.g., "1h")
            candles: List of OHLCV candles (oldest first)

        Returns:
            Dictionary of result_name -> value (None if unavailable)
        """
        start_time = time.perf_counter()

        if not candles:
            logger.debug(f"No candles provided for {symbol}/{timeframe}")
            return {}

        highs = [float(c.get('high', 0)) for c in candles]
        lows = [float(c.get('low', 0)) for c in candles]
        closes = [float(c.get('close', 0)) for c in candles]

        results = {}

        results['overall_trend'] = self._line(
            self._safe('overall_trend', overall_trend, closes)
        )

        # Peaks on highs, valleys on lows
        peaks_config = self.config.get('peaks', {})
        period = min(peaks_config.get('period', 5), len(candles))
        closest_neighbor = peaks_config.get('closest_neighbor', 1)

        found = self._safe('peaks', peaks, highs, period, closest_neighbor)
        results['peaks'] = self._extrema(found)
        found = self._safe('valleys', valleys, lows, period, closest_neighbor)
        results['valleys'] = self._extrema(found)

        results['peak_trend'] = self._line(
            self._safe('peak_trend', peak_trend, highs, period, closest_neighbor)
        )
        results['valley_trend'] = self._line(
            self._safe('valley_trend', valley_trend, lows, period, closest_neighbor)
        )

        segments = self._safe('trend_segments', break_down_trends, closes, self.trend_break)
        results['trend_segments'] = (
            [segment._asdict() for segment in segments] if segments is not None else None
        )

        # Parabolic SAR
        sar_config = self.config.get('parabolic_sar', {})
        sar = self._safe(
            'parabolic_sar', parabolic_time_price_system,
            highs, lows,
            sar_config.get('acceleration_factor_start', 0.02),
            sar_config.get('acceleration_factor_max', 0.2),
            sar_config.get('acceleration_factor_step', 0.02),
            sar_config.get('start_position', 'long'),
        )
        if sar is not None:
            results['parabolic_sar'] = {
                'value': float(sar[-1]),
                'position': 'long' if sar[-1] <= closes[-1] else 'short',
            }
        else:
            results['parabolic_sar'] = None

        # Directional Movement System
        dm_config = self.config.get('directional_movement', {})
        dms = self._safe(
            'directional_movement', directional_movement_system,
            highs, lows, closes,
            dm_config.get('period', 14),
            dm_config.get('smoothing', 'smoothed_moving_average'),
        )
        results['directional_movement'] = dms[-1]._asdict() if dms else None

        # Volatility System
        vs_config = self.config.get('volatility_system', {})
        stops = self._safe(
            'volatility_system', volatility_system,
            highs, lows, closes,
            vs_config.get('period', 7),
            vs_config.get('constant_multiplier', 3.0),
            vs_config.get('smoothing', 'smoothed_moving_average'),
        )
        results['volatility_system'] = float(stops[-1]) if stops is not None else None

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Calculated {len(results)} trend results for {symbol}/{timeframe} "
            f"({len(candles)} candles) in {elapsed_ms:.2f}ms"
        )

        return results

    def _safe(self, name: str, calculation: Callable, *args) -> Optional[Any]:
        """Run a calculation, returning None if the candles cannot support it."""
        try:
            return calculation(*args)
        except IndicatorError as e:
            logger.debug(f"{name} unavailable: {e}")
            return None

    @staticmethod
    def _line(line) -> Optional[dict]:
        if line is None:
            return None
        return {'slope': float(line.slope), 'intercept': float(line.intercept)}

    @staticmethod
    def _extrema(extrema) -> Optional[list[dict]]:
        if extrema is None:
            return None
        return [{'value': float(e.value), 'index': int(e.index)} for e in extrema]
