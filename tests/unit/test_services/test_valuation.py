"""
Unit tests for the valuation model.

Tests cover:
- Derived holding values (current value, cost basis, P&L)
- Weighted-average cost on buy, unchanged cost on sell
- Closing a position and rejecting oversized sells
- Portfolio-level buy/sell with cash and holdings-limit checks
"""
import pytest
from decimal import Decimal

from portfolio_analytics.core.exceptions import (
    HoldingNotFoundError,
    InsufficientCashError,
    InsufficientQuantityError,
    InvalidAmountError,
    MaxHoldingsExceededError,
)
from portfolio_analytics.services.valuation import (
    CLOSED,
    InstrumentQuote,
    PortfolioSnapshot,
    apply_buy,
    apply_sell,
    execute_buy,
    execute_sell,
)


@pytest.fixture
def aapl_quote():
    return InstrumentQuote(instrument_id=1, ticker="AAPL", current_price=Decimal("180.00"))


@pytest.fixture
def googl_quote():
    return InstrumentQuote(instrument_id=4, ticker="GOOGL", current_price=Decimal("140.00"))


class TestHoldingValuation:
    """Test values derived from a holding."""

    @pytest.mark.unit
    def test_profitable_holding(self, aapl_holding):
        assert aapl_holding.current_value == Decimal("1800.00")
        assert aapl_holding.cost_basis == Decimal("1500.00")
        assert aapl_holding.unrealized_profit_loss == Decimal("300.00")
        assert aapl_holding.return_ratio == Decimal("0.2000")
        assert aapl_holding.pnl_percent == Decimal("20.00")

    @pytest.mark.unit
    def test_losing_holding(self, msft_holding):
        assert msft_holding.unrealized_profit_loss == Decimal("-50.00")
        assert msft_holding.pnl_percent == Decimal("-5.00")

    @pytest.mark.unit
    def test_zero_cost_basis_gives_zero_percent(self, holding_factory):
        holding = holding_factory(10, "0", "50.00")
        assert holding.cost_basis == Decimal("0")
        assert holding.pnl_percent == Decimal("0")

    @pytest.mark.unit
    @pytest.mark.parametrize("price", [None, "0"])
    def test_unknown_price_values_holding_at_zero(self, holding_factory, price):
        holding = holding_factory(10, "150.00", price)
        assert holding.current_value == Decimal("0")
        assert holding.unrealized_profit_loss == Decimal("-1500.00")

    @pytest.mark.unit
    def test_portfolio_total_value_includes_cash(self, mixed_portfolio):
        assert mixed_portfolio.holdings_value == Decimal("3350.00")
        assert mixed_portfolio.total_value == Decimal("4350.00")
        assert mixed_portfolio.total_cost_basis == Decimal("3000.00")


class TestApplyBuy:
    """Test weighted-average cost on buy."""

    @pytest.mark.unit
    def test_buy_opens_then_averages(self, aapl_quote):
        first = apply_buy(None, Decimal("5"), Decimal("100"), aapl_quote)
        assert first.quantity == Decimal("5")
        assert first.average_cost == Decimal("100.00")

        second = apply_buy(first, Decimal("5"), Decimal("200"))
        assert second.quantity == Decimal("10")
        assert second.average_cost == Decimal("150.00")

    @pytest.mark.unit
    def test_buy_rounds_average_cost(self, holding_factory):
        holding = holding_factory(3, "10.00", "10.00")
        updated = apply_buy(holding, Decimal("1"), Decimal("11"))
        # (30 + 11) / 4 = 10.25
        assert updated.average_cost == Decimal("10.25")

    @pytest.mark.unit
    def test_buy_does_not_mutate_input(self, aapl_holding):
        apply_buy(aapl_holding, Decimal("10"), Decimal("200"))
        assert aapl_holding.quantity == Decimal("10")
        assert aapl_holding.average_cost == Decimal("150.00")

    @pytest.mark.unit
    def test_new_holding_requires_instrument(self):
        with pytest.raises(ValueError, match="instrument"):
            apply_buy(None, Decimal("1"), Decimal("1"))

    @pytest.mark.unit
    @pytest.mark.parametrize("quantity,price", [
        (Decimal("0"), Decimal("100")),
        (Decimal("-1"), Decimal("100")),
        (Decimal("1"), Decimal("0")),
    ])
    def test_non_positive_amounts_rejected(self, aapl_holding, quantity, price):
        with pytest.raises(InvalidAmountError):
            apply_buy(aapl_holding, quantity, price)

    @pytest.mark.unit
    def test_sub_unit_quantity_rejected(self, aapl_quote):
        # 0.000000004 would round to a zero-quantity holding
        with pytest.raises(InvalidAmountError, match="8 decimal places"):
            apply_buy(None, Decimal("0.000000004"), Decimal("100"), aapl_quote)

    @pytest.mark.unit
    def test_eight_decimal_quantity_accepted(self, aapl_quote):
        holding = apply_buy(None, Decimal("0.00000001"), Decimal("100"), aapl_quote)
        assert holding.quantity == Decimal("0.00000001")
        assert holding.quantity > 0


class TestApplySell:
    """Test selling out of a holding."""

    @pytest.mark.unit
    def test_partial_sell_keeps_average_cost(self, holding_factory):
        holding = holding_factory(10, "150.00", "180.00")
        updated = apply_sell(holding, Decimal("4"))
        assert updated.quantity == Decimal("6")
        assert updated.average_cost == Decimal("150.00")

    @pytest.mark.unit
    def test_full_sell_closes_position(self, aapl_holding):
        assert apply_sell(aapl_holding, Decimal("10")) is CLOSED

    @pytest.mark.unit
    def test_oversized_sell_rejected(self, aapl_holding):
        with pytest.raises(InsufficientQuantityError, match="Insufficient quantity") as exc_info:
            apply_sell(aapl_holding, Decimal("11"))

        assert exc_info.value.owned == Decimal("10")
        assert aapl_holding.quantity == Decimal("10")

    @pytest.mark.unit
    def test_zero_quantity_rejected(self, aapl_holding):
        with pytest.raises(InvalidAmountError):
            apply_sell(aapl_holding, Decimal("0"))

    @pytest.mark.unit
    def test_sell_just_above_holding_rejected(self, aapl_holding):
        with pytest.raises(InsufficientQuantityError):
            apply_sell(aapl_holding, Decimal("10.000000001"))

        assert aapl_holding.quantity == Decimal("10")

    @pytest.mark.unit
    def test_sell_finer_than_eight_decimals_rejected(self, aapl_holding):
        with pytest.raises(InvalidAmountError, match="8 decimal places"):
            apply_sell(aapl_holding, Decimal("9.999999999"))


class TestExecuteBuy:
    """Test buying into a portfolio."""

    @pytest.mark.unit
    def test_buy_debits_cash_and_adds_holding(self, aapl_quote):
        portfolio = PortfolioSnapshot(portfolio_id=1, available_cash=Decimal("1000.00"))

        outcome = execute_buy(portfolio, aapl_quote, Decimal("5"), Decimal("100"), Decimal("1.50"))

        assert outcome.gross_amount == Decimal("500.00")
        assert outcome.fees == Decimal("1.50")
        assert outcome.portfolio.available_cash == Decimal("500.00")
        assert len(outcome.portfolio.holdings) == 1
        assert outcome.holding.quantity == Decimal("5")
        assert portfolio.holdings == ()

    @pytest.mark.unit
    def test_buy_into_existing_holding_updates_it(self, single_holding_portfolio, aapl_quote):
        portfolio = PortfolioSnapshot(
            portfolio_id=1,
            available_cash=Decimal("2000.00"),
            holdings=single_holding_portfolio.holdings
        )

        outcome = execute_buy(portfolio, aapl_quote, Decimal("10"), Decimal("170"))

        assert len(outcome.portfolio.holdings) == 1
        assert outcome.holding.quantity == Decimal("20")
        assert outcome.holding.average_cost == Decimal("160.00")
        assert outcome.portfolio.available_cash == Decimal("300.00")

    @pytest.mark.unit
    def test_insufficient_cash_rejected(self, aapl_quote):
        portfolio = PortfolioSnapshot(portfolio_id=1, available_cash=Decimal("100.00"))

        with pytest.raises(InsufficientCashError) as exc_info:
            execute_buy(portfolio, aapl_quote, Decimal("2"), Decimal("100"))

        assert exc_info.value.required == Decimal("200.00")
        assert portfolio.available_cash == Decimal("100.00")

    @pytest.mark.unit
    def test_holdings_limit_applies_to_new_instruments_only(
        self, single_holding_portfolio, aapl_quote, googl_quote
    ):
        portfolio = PortfolioSnapshot(
            portfolio_id=1,
            available_cash=Decimal("5000.00"),
            holdings=single_holding_portfolio.holdings
        )

        with pytest.raises(MaxHoldingsExceededError):
            execute_buy(portfolio, googl_quote, Decimal("1"), Decimal("140"), max_holdings=1)

        outcome = execute_buy(portfolio, aapl_quote, Decimal("1"), Decimal("180"), max_holdings=1)
        assert outcome.holding.quantity == Decimal("11")

    @pytest.mark.unit
    def test_negative_fees_rejected(self, aapl_quote):
        portfolio = PortfolioSnapshot(portfolio_id=1, available_cash=Decimal("1000.00"))
        with pytest.raises(InvalidAmountError, match="Fees"):
            execute_buy(portfolio, aapl_quote, Decimal("1"), Decimal("100"), Decimal("-1"))

    @pytest.mark.unit
    def test_sub_unit_quantity_moves_no_cash(self, aapl_quote):
        portfolio = PortfolioSnapshot(portfolio_id=1, available_cash=Decimal("1000.00"))

        with pytest.raises(InvalidAmountError):
            execute_buy(portfolio, aapl_quote, Decimal("1.000000004"), Decimal("100"))

        assert portfolio.available_cash == Decimal("1000.00")
        assert portfolio.holdings == ()

    @pytest.mark.unit
    def test_outcome_carries_traded_quantity(self, aapl_quote):
        portfolio = PortfolioSnapshot(portfolio_id=1, available_cash=Decimal("1000.00"))

        outcome = execute_buy(portfolio, aapl_quote, Decimal("2.5"), Decimal("100"))

        assert outcome.quantity == Decimal("2.50000000")
        assert outcome.gross_amount == Decimal("250.00")
        assert outcome.holding.quantity == outcome.quantity


class TestExecuteSell:
    """Test selling out of a portfolio."""

    @pytest.mark.unit
    def test_full_sell_removes_holding_and_credits_cash(self, single_holding_portfolio):
        outcome = execute_sell(single_holding_portfolio, 1, Decimal("10"), Decimal("180"))

        assert outcome.position_closed is True
        assert outcome.portfolio.holdings == ()
        assert outcome.portfolio.available_cash == Decimal("1800.00")

    @pytest.mark.unit
    def test_partial_sell_keeps_holding(self, single_holding_portfolio):
        outcome = execute_sell(single_holding_portfolio, 1, Decimal("4"), Decimal("200"))

        assert outcome.position_closed is False
        assert outcome.holding.quantity == Decimal("6")
        assert outcome.portfolio.available_cash == Decimal("800.00")

    @pytest.mark.unit
    def test_unknown_holding_rejected(self, single_holding_portfolio):
        with pytest.raises(HoldingNotFoundError):
            execute_sell(single_holding_portfolio, 99, Decimal("1"), Decimal("10"))

    @pytest.mark.unit
    def test_oversized_sell_leaves_portfolio_unchanged(self, single_holding_portfolio):
        with pytest.raises(InsufficientQuantityError):
            execute_sell(single_holding_portfolio, 1, Decimal("11"), Decimal("180"))

        assert single_holding_portfolio.holdings[0].quantity == Decimal("10")
        assert single_holding_portfolio.available_cash == Decimal("0.00")

    @pytest.mark.unit
    def test_sell_just_above_holding_leaves_portfolio_unchanged(self, single_holding_portfolio):
        with pytest.raises(InsufficientQuantityError):
            execute_sell(single_holding_portfolio, 1, Decimal("10.000000001"), Decimal("180"))

        assert len(single_holding_portfolio.holdings) == 1
        assert single_holding_portfolio.available_cash == Decimal("0.00")
