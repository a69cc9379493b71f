"""Utility modules - input validation and configuration loading."""

from .validation import (
    IndicatorError,
    EmptyInputError,
    InvalidPeriodError,
    MismatchedLengthError,
    InvalidValueError,
    UnsupportedVariantError,
)
from .config import ConfigLoader, ConfigError, get_config_loader, get_trends_config, load_config

__all__ = [
    'IndicatorError',
    'EmptyInputError',
    'InvalidPeriodError',
    'MismatchedLengthError',
    'InvalidValueError',
    'UnsupportedVariantError',
    'ConfigLoader',
    'ConfigError',
    'get_config_loader',
    'get_trends_config',
    'load_config',
]
