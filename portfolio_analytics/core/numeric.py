"""
Fixed-point helpers shared by the valuation, metrics, simulation and backtest code.

All values are ``Decimal``; every division and quantization rounds half-up.
"""
import statistics
from decimal import Decimal
from typing import Iterable, Sequence

from portfolio_analytics.core.constants import DecimalConstants


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and Decimals (floats via their repr) to Decimal."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def quantize(value: Decimal, exponent: Decimal) -> Decimal:
    return value.quantize(exponent, rounding=DecimalConstants.ROUNDING)


def money(value: Decimal) -> Decimal:
    return quantize(value, DecimalConstants.MONEY)


def quantity(value: Decimal) -> Decimal:
    return quantize(value, DecimalConstants.QUANTITY)


def ratio(value: Decimal) -> Decimal:
    return quantize(value, DecimalConstants.RATIO)


def safe_divide(
    numerator: Decimal,
    denominator: Decimal,
    exponent: Decimal = DecimalConstants.RATIO
) -> Decimal:
    """
    Divide and round, returning zero when the denominator is zero.

    Metrics degrade to zero on an empty or zero-valued input instead of
    raising or producing NaN/Infinity.
    """
    if denominator == 0:
        return quantize(DecimalConstants.ZERO, exponent)
    return quantize(numerator / denominator, exponent)


def population_std_dev(
    values: Iterable[Decimal],
    exponent: Decimal = DecimalConstants.RATIO
) -> Decimal:
    """Population standard deviation; zero for an empty sample."""
    data = list(values)
    if not data:
        return quantize(DecimalConstants.ZERO, exponent)
    return quantize(statistics.pstdev(data), exponent)


def mean(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return DecimalConstants.ZERO
    return sum(values, DecimalConstants.ZERO) / len(values)


def percentile(sorted_values: Sequence[Decimal], p: Decimal) -> Decimal:
    """
    Interpolated-rank percentile over an ascending sample.

    The rank is ``p * (n + 1) / 100``. Ranks below 1 return the minimum,
    ranks at or above n return the maximum, anything in between is a linear
    interpolation of the two neighbouring order statistics.

    Args:
        sorted_values: Sample sorted ascending (must not be empty)
        p: Percentile in (0, 100]

    Raises:
        ValueError: If the sample is empty or p is out of range
    """
    n = len(sorted_values)
    if n == 0:
        raise ValueError("Cannot compute a percentile of an empty sample")
    p = to_decimal(p)
    if p <= 0 or p > 100:
        raise ValueError(f"Percentile must be in (0, 100], got {p}")
    if n == 1:
        return sorted_values[0]

    position = p * (n + 1) / DecimalConstants.HUNDRED
    if position < 1:
        return sorted_values[0]
    if position >= n:
        return sorted_values[-1]

    lower_rank = int(position)
    fraction = position - lower_rank
    lower = sorted_values[lower_rank - 1]
    upper = sorted_values[lower_rank]
    return lower + fraction * (upper - lower)
