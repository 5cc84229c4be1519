"""
Valuation model for holdings and portfolios.

Holdings and portfolios are immutable snapshots. Buy and sell operations never
mutate their input; they validate everything first and then return new
snapshots, so a rejected trade leaves the caller's state untouched.
"""
import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from portfolio_analytics.core import numeric
from portfolio_analytics.core.constants import DecimalConstants
from portfolio_analytics.core.exceptions import (
    HoldingNotFoundError,
    InsufficientCashError,
    InsufficientQuantityError,
    InvalidAmountError,
    MaxHoldingsExceededError,
)

logger = logging.getLogger(__name__)


class Closed(Enum):
    """Marker returned by ``apply_sell`` when a holding is fully sold."""
    CLOSED = "closed"


CLOSED = Closed.CLOSED


@dataclass(frozen=True)
class InstrumentQuote:
    """The parts of an instrument the valuation needs."""
    instrument_id: int
    ticker: str
    current_price: Optional[Decimal] = None

    @property
    def has_valid_price(self) -> bool:
        return self.current_price is not None and self.current_price > 0


@dataclass(frozen=True)
class HoldingSnapshot:
    """A position in one instrument with weighted-average cost basis."""
    instrument: InstrumentQuote
    quantity: Decimal
    average_cost: Decimal
    holding_id: Optional[int] = None

    @property
    def instrument_id(self) -> int:
        return self.instrument.instrument_id

    @property
    def ticker(self) -> str:
        return self.instrument.ticker

    @property
    def current_value(self) -> Decimal:
        """Quantity times current price; zero when the price is unknown."""
        if not self.instrument.has_valid_price:
            return numeric.money(DecimalConstants.ZERO)
        return numeric.money(self.quantity * self.instrument.current_price)

    @property
    def cost_basis(self) -> Decimal:
        return numeric.money(self.quantity * self.average_cost)

    @property
    def unrealized_profit_loss(self) -> Decimal:
        return self.current_value - self.cost_basis

    @property
    def return_ratio(self) -> Decimal:
        """Unrealized P&L over cost basis as a fraction (0.2000 = 20%)."""
        return numeric.safe_divide(self.unrealized_profit_loss, self.cost_basis)

    @property
    def pnl_percent(self) -> Decimal:
        """Unrealized P&L over cost basis in percent (20.00 = 20%)."""
        return numeric.money(self.return_ratio * DecimalConstants.HUNDRED)


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Cash plus holdings, read once per engine call."""
    portfolio_id: Optional[int]
    available_cash: Decimal
    holdings: tuple[HoldingSnapshot, ...] = field(default_factory=tuple)
    name: Optional[str] = None

    @property
    def holdings_value(self) -> Decimal:
        return sum((h.current_value for h in self.holdings), DecimalConstants.ZERO)

    @property
    def total_value(self) -> Decimal:
        """Holdings value plus cash, always recomputed."""
        return self.holdings_value + self.available_cash

    @property
    def total_cost_basis(self) -> Decimal:
        return sum((h.cost_basis for h in self.holdings), DecimalConstants.ZERO)

    def holding_for(self, instrument_id: int) -> Optional[HoldingSnapshot]:
        for holding in self.holdings:
            if holding.instrument_id == instrument_id:
                return holding
        return None


@dataclass(frozen=True)
class TradeOutcome:
    """New portfolio state after a buy or sell."""
    portfolio: PortfolioSnapshot
    holding: Optional[HoldingSnapshot]
    quantity: Decimal
    gross_amount: Decimal
    fees: Decimal

    @property
    def position_closed(self) -> bool:
        return self.holding is None


def validate_positive(value: Decimal, field_name: str) -> Decimal:
    value = numeric.to_decimal(value)
    if value <= 0:
        raise InvalidAmountError(field_name, value)
    return value


def validate_non_negative(value: Decimal, field_name: str) -> Decimal:
    value = numeric.to_decimal(value)
    if value < 0:
        raise InvalidAmountError(field_name, value, "cannot be negative")
    return value


def validate_quantity_scale(value: Decimal) -> Decimal:
    """Reject quantities finer than the 8-digit unit a holding can store."""
    if numeric.quantity(value) != value:
        raise InvalidAmountError("Quantity", value, "cannot have more than 8 decimal places")
    return numeric.quantity(value)


def apply_buy(
    holding: Optional[HoldingSnapshot],
    quantity: Decimal,
    price: Decimal,
    instrument: Optional[InstrumentQuote] = None
) -> HoldingSnapshot:
    """
    Add units to a holding, recomputing the weighted-average cost.

    newAvg = (oldQty * oldCost + qty * price) / (oldQty + qty)

    Args:
        holding: Existing holding, or None to open a new one
        quantity: Units bought (> 0)
        price: Unit purchase price (> 0)
        instrument: Required when ``holding`` is None

    Returns:
        The updated (or newly created) holding
    """
    quantity = validate_quantity_scale(validate_positive(quantity, "Quantity"))
    price = validate_positive(price, "Price")

    if holding is None:
        if instrument is None:
            raise ValueError("An instrument is required to open a new holding")
        return HoldingSnapshot(
            instrument=instrument,
            quantity=quantity,
            average_cost=numeric.money(price)
        )

    total_cost = holding.quantity * holding.average_cost + quantity * price
    new_quantity = holding.quantity + quantity
    return replace(
        holding,
        quantity=new_quantity,
        average_cost=numeric.money(total_cost / new_quantity)
    )


def apply_sell(
    holding: HoldingSnapshot,
    quantity: Decimal
) -> Union[HoldingSnapshot, Closed]:
    """
    Remove units from a holding; the average cost of the remainder is unchanged.

    Returns:
        The reduced holding, or ``CLOSED`` when nothing is left

    Raises:
        InvalidAmountError: If quantity is not positive or has more than 8 decimal places
        InsufficientQuantityError: If quantity exceeds the holding
    """
    quantity = validate_positive(quantity, "Quantity")
    if quantity > holding.quantity:
        raise InsufficientQuantityError(holding.quantity, quantity)
    quantity = validate_quantity_scale(quantity)

    remaining = holding.quantity - quantity
    if remaining == 0:
        return CLOSED
    return replace(holding, quantity=remaining)


def execute_buy(
    portfolio: PortfolioSnapshot,
    instrument: InstrumentQuote,
    quantity: Decimal,
    price: Decimal,
    fees: Decimal = DecimalConstants.ZERO,
    max_holdings: Optional[int] = None
) -> TradeOutcome:
    """
    Buy into a portfolio: update or open the holding and debit cash.

    Fees are not part of the cost basis or the cash debit; they are returned on
    the outcome for the audit record.
    """
    quantity = validate_quantity_scale(validate_positive(quantity, "Quantity"))
    price = validate_positive(price, "Price")
    fees = validate_non_negative(fees, "Fees")

    gross_amount = numeric.money(quantity * price)
    if portfolio.available_cash < gross_amount:
        logger.warning(
            f"Rejected buy of {quantity} {instrument.ticker} for portfolio {portfolio.portfolio_id}: "
            f"required {gross_amount}, available {portfolio.available_cash}"
        )
        raise InsufficientCashError(gross_amount, portfolio.available_cash)

    existing = portfolio.holding_for(instrument.instrument_id)
    if existing is None and max_holdings is not None and len(portfolio.holdings) >= max_holdings:
        raise MaxHoldingsExceededError(max_holdings)

    updated = apply_buy(existing, quantity, price, instrument)
    if existing is None:
        holdings = portfolio.holdings + (updated,)
    else:
        holdings = tuple(updated if h is existing else h for h in portfolio.holdings)

    new_portfolio = replace(
        portfolio,
        available_cash=portfolio.available_cash - gross_amount,
        holdings=holdings
    )
    return TradeOutcome(new_portfolio, updated, quantity, gross_amount, fees)


def execute_sell(
    portfolio: PortfolioSnapshot,
    instrument_id: int,
    quantity: Decimal,
    price: Decimal,
    fees: Decimal = DecimalConstants.ZERO
) -> TradeOutcome:
    """Sell out of a portfolio: reduce or close the holding and credit cash."""
    quantity = validate_positive(quantity, "Quantity")
    price = validate_positive(price, "Price")
    fees = validate_non_negative(fees, "Fees")

    existing = portfolio.holding_for(instrument_id)
    if existing is None:
        raise HoldingNotFoundError(portfolio.portfolio_id, instrument_id)

    result = apply_sell(existing, quantity)
    quantity = numeric.quantity(quantity)
    gross_amount = numeric.money(quantity * price)

    if result is CLOSED:
        holdings = tuple(h for h in portfolio.holdings if h is not existing)
        updated = None
    else:
        holdings = tuple(result if h is existing else h for h in portfolio.holdings)
        updated = result

    new_portfolio = replace(
        portfolio,
        available_cash=portfolio.available_cash + gross_amount,
        holdings=holdings
    )
    return TradeOutcome(new_portfolio, updated, quantity, gross_amount, fees)
