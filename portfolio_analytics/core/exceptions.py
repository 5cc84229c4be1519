"""
Exception hierarchy for the analytics engine and trading workflow.

Every error carries an ``ErrorCode`` so the API layer and ``ServiceResult``
objects can report it without string matching.
"""
from decimal import Decimal
from typing import Optional

from portfolio_analytics.core.constants import ErrorCode


class AnalyticsError(Exception):
    """Base class for all recoverable engine errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ==================== Invalid argument ====================

class InvalidAmountError(AnalyticsError, ValueError):
    """Non-positive quantity/price, negative fees or out-of-range parameters."""

    error_code = ErrorCode.VALIDATION_ERROR

    def __init__(self, field_name: str, value: object, requirement: str = "must be positive"):
        super().__init__(f"{field_name} {requirement} (got {value})")
        self.field_name = field_name
        self.value = value


# ==================== Insufficient resource ====================

class InsufficientResourceError(AnalyticsError):
    """Requested amount exceeds what is available."""

    error_code = ErrorCode.INSUFFICIENT_RESOURCE


class InsufficientQuantityError(InsufficientResourceError):
    """Selling more units than the holding contains."""

    def __init__(self, owned: Decimal, requested: Decimal):
        super().__init__(f"Insufficient quantity. Owned: {owned}, Requested: {requested}")
        self.owned = owned
        self.requested = requested


class InsufficientCashError(InsufficientResourceError):
    """Buying for more than the available cash."""

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(f"Insufficient cash. Required: {required}, Available: {available}")
        self.required = required
        self.available = available


class MaxHoldingsExceededError(InsufficientResourceError):
    """Opening a new holding would exceed the per-portfolio limit."""

    def __init__(self, limit: int):
        super().__init__(f"Maximum number of holdings reached: {limit}")
        self.limit = limit


# ==================== Missing precondition ====================

class MissingPreconditionError(AnalyticsError):
    """The portfolio is not in a state the operation can work with."""

    error_code = ErrorCode.PRECONDITION_FAILED


class NoHoldingsError(MissingPreconditionError):
    """Simulation or backtest requested on a portfolio without holdings."""

    def __init__(self, portfolio_id: Optional[int], operation: str):
        super().__init__(f"Portfolio {portfolio_id} has no holdings to {operation}")
        self.portfolio_id = portfolio_id
        self.operation = operation


class InactiveInstrumentError(MissingPreconditionError):
    """Instrument is flagged inactive and cannot be bought."""

    def __init__(self, ticker: str):
        super().__init__(f"Cannot buy inactive instrument: {ticker}")
        self.ticker = ticker


# ==================== Not found ====================

class NotFoundError(AnalyticsError):
    """Referenced entity does not exist."""

    error_code = ErrorCode.NOT_FOUND


class PortfolioNotFoundError(NotFoundError):
    def __init__(self, portfolio_id: int):
        super().__init__(f"Portfolio {portfolio_id} not found")
        self.portfolio_id = portfolio_id


class InstrumentNotFoundError(NotFoundError):
    def __init__(self, instrument_id: int):
        super().__init__(f"Instrument {instrument_id} not found")
        self.instrument_id = instrument_id


class HoldingNotFoundError(NotFoundError):
    def __init__(self, portfolio_id: Optional[int], instrument_id: int):
        super().__init__(
            f"Holding not found for portfolio {portfolio_id} and instrument {instrument_id}"
        )
        self.portfolio_id = portfolio_id
        self.instrument_id = instrument_id
