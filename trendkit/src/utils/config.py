"""
Configuration Loading Utility - Centralized config management for trendkit.

This module provides:
- YAML configuration loading with validation
- Environment variable substitution
- Trend settings validation (periods, smoothing models, break thresholds)
- Cached config access
- Thread-safe global config instance
"""

import logging
import math
import os
import re
import threading
from pathlib import Path
from typing import Any, Optional

import yaml

from .validation import IndicatorError

logger = logging.getLogger(__name__)

# Thread lock for global config loader access
_config_lock = threading.Lock()


class ConfigError(Exception):
    """Configuration loading or validation error."""
    pass


class ConfigLoader:
    """
    Centralized configuration loader for trendkit.

    Loads YAML configs with environment variable substitution
    and validation.
    """

    # Environment variable pattern: ${VAR_NAME:-default_value}
    ENV_VAR_PATTERN = re.compile(r'\$\{([^}:]+)(?::-([^}]*))?\}')

    def __init__(self, config_dir: str | Path):
        """
        Initialize ConfigLoader.

        Args:
            config_dir: Path to configuration directory
        """
        self.config_dir = Path(config_dir)
        self._cache: dict[str, dict] = {}

        if not self.config_dir.exists():
            raise ConfigError(f"Config directory not found: {self.config_dir}")

    def load(self, config_name: str, validate: bool = True) -> dict:
        """
        Load a configuration file.

        Args:
            config_name: Config file name (without .yaml extension)
            validate: Whether to validate the config

        Returns:
            Configuration dictionary
        """
        if config_name in self._cache:
            return self._cache[config_name]

        config_path = self.config_dir / f"{config_name}.yaml"
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                raw_content = f.read()

            substituted_content = self._substitute_env_vars(raw_content)
            config = yaml.safe_load(substituted_content) or {}

            # Env vars come in as strings
            config = self._coerce_types(config)

            if validate:
                self._validate_config(config_name, config)

            self._cache[config_name] = config
            logger.info(f"Loaded config: {config_name}")
            return config

        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    def load_all(self) -> dict[str, dict]:
        """Load all configuration files in the config directory."""
        configs = {}

        for config_file in self.config_dir.glob("*.yaml"):
            config_name = config_file.stem
            try:
                configs[config_name] = self.load(config_name)
            except ConfigError as e:
                logger.warning(f"Failed to load {config_name}: {e}")

        return configs

    def get_trends_config(self) -> dict:
        """Get the trend indicators configuration."""
        config = self.load('trends')
        return config.get('trends', {})

    def clear_cache(self) -> None:
        """Clear the configuration cache."""
        self._cache.clear()

    def _substitute_env_vars(self, content: str) -> str:
        """
        Substitute environment variables in config content.

        Supports ${VAR_NAME} and ${VAR_NAME:-default_value} syntax.
        """
        def replace_match(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ''
            return os.environ.get(var_name, default_value)

        return self.ENV_VAR_PATTERN.sub(replace_match, content)

    def _coerce_types(self, value: Any) -> Any:
        """
        Recursively coerce string values to appropriate types.

        Handles:
        - Numeric strings to int/float
        - Boolean strings to bool
        - Nested dicts and lists
        """
        if isinstance(value, dict):
            return {k: self._coerce_types(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._coerce_types(item) for item in value]
        elif isinstance(value, str):
            # Booleans before numbers
            if value.lower() in ('true', 'yes', 'on'):
                return True
            if value.lower() in ('false', 'no', 'off'):
                return False

            if value.lower() in ('inf', '-inf', 'nan', 'infinity', '-infinity'):
                return value

            if value.lstrip('-').isdigit():
                try:
                    return int(value)
                except ValueError:
                    pass

            # Scientific notation too (1e-7)
            try:
                float_val = float(value)
                if math.isfinite(float_val):
                    return float_val
            except ValueError:
                pass

            return value
        return value

    def _validate_config(self, config_name: str, config: dict) -> None:
        """
        Validate configuration based on schema.

        Args:
            config_name: Name of the config file
            config: Loaded configuration dict
        """
        validators = {
            'trends': self._validate_trends_config,
        }

        validator = validators.get(config_name)
        if validator:
            validator(config)

    def _validate_trends_config(self, config: dict) -> None:
        """Validate trend indicators configuration."""
        # Deferred: the indicator modules import this package
        from ..indicators.basic import SmoothingStrategy
        from ..indicators.chart_trends import TrendBreakConfig

        trends = config.get('trends')
        if not isinstance(trends, dict):
            raise ConfigError("Missing 'trends' section")

        required = ['peaks', 'trend_break', 'parabolic_sar', 'directional_movement']
        for section in required:
            if section not in trends:
                raise ConfigError(f"Missing required trends config: {section}")

        # volatility_system fits its opening trend, so needs two bars
        minimum_periods = {'peaks': 1, 'directional_movement': 1, 'volatility_system': 2}
        for section, minimum in minimum_periods.items():
            period = trends.get(section, {}).get('period', minimum)
            if not isinstance(period, int) or isinstance(period, bool) or period < minimum:
                raise ConfigError(f"Invalid {section} period: {period}")

        for section in ('directional_movement', 'volatility_system'):
            smoothing = trends.get(section, {}).get('smoothing')
            if smoothing is None:
                continue
            try:
                SmoothingStrategy.of(smoothing)
            except IndicatorError as e:
                raise ConfigError(f"Invalid {section} smoothing: {e}")

        try:
            TrendBreakConfig.from_dict(trends.get('trend_break') or {})
        except IndicatorError as e:
            raise ConfigError(f"Invalid trend_break config: {e}")

        sar = trends.get('parabolic_sar', {})
        position = sar.get('start_position', 'long')
        if str(position).lower() not in ('long', 'short'):
            raise ConfigError(f"Invalid parabolic_sar start_position: {position}")
        for key in ('acceleration_factor_start', 'acceleration_factor_max',
                    'acceleration_factor_step'):
            value = sar.get(key, 0.02)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"Invalid parabolic_sar {key}: {value}")

        logger.debug("Trends config validated successfully")


# Global config instance (lazy-loaded, thread-safe)
_config_loader: Optional[ConfigLoader] = None


def get_config_loader(config_dir: str | Path | None = None) -> ConfigLoader:
    """
    Get or create the global ConfigLoader instance (thread-safe).

    Args:
        config_dir: Path to config directory (uses default if not provided)

    Returns:
        ConfigLoader instance
    """
    global _config_loader

    # Double-checked locking
    if _config_loader is None:
        with _config_lock:
            if _config_loader is None:
                if config_dir is None:
                    # config/ at the project root
                    project_root = Path(__file__).parent.parent.parent.parent
                    config_dir = project_root / 'config'

                _config_loader = ConfigLoader(config_dir)

    return _config_loader


def reset_config_loader() -> None:
    """
    Reset the global ConfigLoader instance (for testing).

    Thread-safe.
    """
    global _config_loader
    with _config_lock:
        _config_loader = None
        logger.debug("Global config loader reset")


def load_config(config_name: str) -> dict:
    """
    Convenience function to load a config file.

    Args:
        config_name: Config file name (without .yaml extension)

    Returns:
        Configuration dictionary
    """
    return get_config_loader().load(config_name)


def get_trends_config() -> dict:
    """Convenience function returning the `trends` section of trends.yaml."""
    return get_config_loader().get_trends_config()
