"""
Constants for decimal precision, transaction and asset types, and error codes.
"""
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum


class DecimalConstants:
    """Fixed-point scales and rounding used for every money calculation."""

    # Single rounding rule for all divisions and quantizations
    ROUNDING = ROUND_HALF_UP

    # Prices, values, cash
    MONEY = Decimal("0.01")

    # Share quantities (fractional units down to 1e-8)
    QUANTITY = Decimal("0.00000001")

    # Returns, ratios, volatility, Sharpe
    RATIO = Decimal("0.0001")

    # Daily returns in simulation and backtest
    DAILY_RATE = Decimal("0.000001")

    ZERO = Decimal("0")
    ONE = Decimal("1")
    HUNDRED = Decimal("100")


class TransactionType(str, Enum):
    """Transaction types recorded in the audit trail."""
    BUY = "BUY"
    SELL = "SELL"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"
    DIVIDEND = "DIVIDEND"

    @classmethod
    def trade_types(cls) -> list["TransactionType"]:
        """Types counted as trading volume for turnover."""
        return [cls.BUY, cls.SELL]


class AssetType(str, Enum):
    """Instrument categories."""
    STOCK = "STOCK"
    ETF = "ETF"
    REIT = "REIT"
    CRYPTO = "CRYPTO"
    BOND = "BOND"
    MUTUAL_FUND = "MUTUAL_FUND"
    COMMODITY = "COMMODITY"
    OTHER = "OTHER"


class ErrorCode(str, Enum):
    """Standardized error codes for service operations."""
    NONE = "none"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_RESOURCE = "insufficient_resource"
    PRECONDITION_FAILED = "precondition_failed"
    INTERNAL_ERROR = "internal_error"
