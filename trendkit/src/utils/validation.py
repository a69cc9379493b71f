"""
Input Validation - Error taxonomy and precondition checks for trendkit.

Every public calculation validates its inputs up front and raises one of the
errors below. They all derive from IndicatorError (itself a ValueError), so a
caller looping over many series can catch a single class per call.

Numerically degenerate situations found mid-scan (zero variance, zero true
range) are NOT errors; the calculations return neutral sentinel values for
those instead.
"""

import math
from typing import Sequence


class IndicatorError(ValueError):
    """Base class for all trendkit precondition violations."""
    pass


class EmptyInputError(IndicatorError):
    """Raised when a required input series is empty."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} cannot be empty")


class InvalidPeriodError(IndicatorError):
    """Raised when a period is zero or does not fit the data."""

    def __init__(self, period: int, data_len: int, reason: str):
        self.period = period
        self.data_len = data_len
        self.reason = reason
        super().__init__(
            f"Invalid period {period}: {reason} (data length: {data_len})"
        )


class MismatchedLengthError(IndicatorError):
    """Raised when series that must align have different lengths."""

    def __init__(self, names_and_lengths: list[tuple[str, int]]):
        self.names_and_lengths = names_and_lengths
        lengths = ", ".join(f"{name}={length}" for name, length in names_and_lengths)
        super().__init__(f"Mismatched lengths: {lengths}")


class InvalidValueError(IndicatorError):
    """Raised when a numeric parameter is outside its accepted range."""

    def __init__(self, name: str, value, reason: str):
        self.name = name
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value for {name}: {value} ({reason})")


class UnsupportedVariantError(IndicatorError):
    """Raised when an enum-like selector is not supported by a calculation."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unsupported variant: {name}")


def assert_non_empty(name: str, values: Sequence) -> None:
    """Raise EmptyInputError if values is empty."""
    if len(values) == 0:
        raise EmptyInputError(name)


def assert_same_len(series: list[tuple[str, Sequence]]) -> None:
    """
    Check that all named series share one length.

    Args:
        series: List of (name, values) pairs

    Raises:
        MismatchedLengthError: Listing every name with its length
    """
    if not series:
        return

    expected = len(series[0][1])
    if any(len(values) != expected for _, values in series):
        raise MismatchedLengthError([(name, len(values)) for name, values in series])


def assert_period(period: int, data_len: int) -> None:
    """Raise InvalidPeriodError if period is 0 or longer than the data."""
    if period <= 0:
        raise InvalidPeriodError(period, data_len, "must be greater than 0")
    if period > data_len:
        raise InvalidPeriodError(
            period, data_len, "cannot be longer than the length of provided data"
        )


def assert_min_period(period: int, min_period: int, data_len: int) -> None:
    """Raise InvalidPeriodError if period < min_period or does not fit the data."""
    if period < min_period:
        raise InvalidPeriodError(period, data_len, f"must be at least {min_period}")
    assert_period(period, data_len)


def assert_positive(name: str, value: float) -> None:
    """Raise InvalidValueError unless value > 0."""
    if math.isnan(value) or value <= 0:
        raise InvalidValueError(name, value, "must be greater than 0")


def assert_range(name: str, value: float, low: float, high: float) -> None:
    """Raise InvalidValueError unless low < value < high."""
    if math.isnan(value) or value <= low or value >= high:
        raise InvalidValueError(name, value, f"must be in range ({low}, {high})")
