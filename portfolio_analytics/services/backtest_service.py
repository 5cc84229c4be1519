"""
Rule-based strategy backtesting over a synthetic window.

The replay uses the portfolio's current holdings as a static snapshot: every
simulated day evaluates the same P&L percentages against the strategy
thresholds, so a condition that holds on day one fires on every day of the
window. There is no daily price history behind it.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from portfolio_analytics.core import numeric
from portfolio_analytics.core.config import settings
from portfolio_analytics.core.constants import DecimalConstants
from portfolio_analytics.core.exceptions import InvalidAmountError, NoHoldingsError
from portfolio_analytics.services.portfolio_metrics_service import max_drawdown
from portfolio_analytics.services.result_objects import BacktestResult, DailyValue
from portfolio_analytics.services.valuation import HoldingSnapshot, PortfolioSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BacktestStrategy:
    """
    Threshold strategy parameters.

    Thresholds are compared against holding P&L percentages. ``take_profit`` and
    ``rebalance_days`` are carried on the result but not evaluated by the replay.
    """
    strategy_name: str
    initial_capital: Decimal
    buy_threshold: Decimal       # buy when P&L <= this (e.g. -0.05)
    sell_threshold: Decimal      # sell when P&L >= this (e.g. 0.10)
    max_position_size: Decimal   # fraction of cash spent per buy, (0, 1]
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    rebalance_days: Optional[int] = None

    def validate(self) -> None:
        """Raise InvalidAmountError for parameters the replay cannot use."""
        if self.initial_capital <= 0:
            raise InvalidAmountError("Initial capital", self.initial_capital)
        if self.buy_threshold > 0:
            raise InvalidAmountError("Buy threshold", self.buy_threshold, "must be zero or negative")
        if self.sell_threshold < 0:
            raise InvalidAmountError("Sell threshold", self.sell_threshold, "cannot be negative")
        if not 0 < self.max_position_size <= 1:
            raise InvalidAmountError(
                "Max position size", self.max_position_size, "must be in (0, 1]"
            )
        if self.stop_loss is not None and self.stop_loss > 0:
            raise InvalidAmountError("Stop loss", self.stop_loss, "must be zero or negative")
        if self.take_profit is not None and self.take_profit < 0:
            raise InvalidAmountError("Take profit", self.take_profit, "cannot be negative")


@dataclass
class _ReplayState:
    """Mutable state of one replay; never leaves this module."""
    cash: Decimal
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_wins: Decimal = DecimalConstants.ZERO
    total_losses: Decimal = DecimalConstants.ZERO
    history: List[DailyValue] = field(default_factory=list)
    daily_returns: List[Decimal] = field(default_factory=list)


class BacktestService:
    """Replays a threshold strategy and compares it with buy-and-hold."""

    def __init__(self, risk_free_rate: Optional[Decimal] = None):
        self.risk_free_rate = (
            numeric.to_decimal(risk_free_rate) if risk_free_rate is not None else settings.risk_free_rate
        )

    def run_backtest(
        self,
        portfolio: PortfolioSnapshot,
        strategy: BacktestStrategy,
        days: Optional[int] = None,
        end_date: Optional[date] = None
    ) -> BacktestResult:
        """
        Run the strategy from ``end_date - days`` through ``end_date`` inclusive.

        Args:
            portfolio: Snapshot whose holdings drive the trade signals
            strategy: Strategy parameters
            days: Window length (defaults to 252, one trading year)
            end_date: Last simulated day (defaults to today)

        Raises:
            NoHoldingsError: If the portfolio has no holdings
            InvalidAmountError: If days is negative or the strategy is invalid
        """
        days = days if days is not None else settings.backtest_default_days

        logger.info(
            f"Running backtest: portfolio={portfolio.portfolio_id}, "
            f"strategy={strategy.strategy_name}, days={days}"
        )

        if days < 0:
            raise InvalidAmountError("Days", days, "cannot be negative")
        strategy.validate()
        if not portfolio.holdings:
            raise NoHoldingsError(portfolio.portfolio_id, "backtest")

        end_date = end_date or date.today()
        start_date = end_date - timedelta(days=days)

        state = self._replay(portfolio.holdings, strategy, start_date, end_date)
        buy_and_hold_return = self.calculate_buy_and_hold_return(portfolio.holdings)

        return self._build_result(
            portfolio, strategy, state, buy_and_hold_return, start_date, end_date, days
        )

    def _replay(
        self,
        holdings: tuple[HoldingSnapshot, ...],
        strategy: BacktestStrategy,
        start_date: date,
        end_date: date
    ) -> _ReplayState:
        state = _ReplayState(cash=strategy.initial_capital)

        current = start_date
        while current <= end_date:
            # Day value is the opening cash plus whatever was bought today;
            # sell proceeds only show up from the next day.
            portfolio_value = state.cash

            for holding in holdings:
                pnl_percent = holding.pnl_percent

                if pnl_percent <= strategy.buy_threshold:
                    buy_amount = numeric.money(state.cash * strategy.max_position_size)
                    if buy_amount > 0:
                        state.cash -= buy_amount
                        portfolio_value += buy_amount
                        state.total_trades += 1

                if pnl_percent >= strategy.sell_threshold or (
                    strategy.stop_loss is not None and pnl_percent <= strategy.stop_loss
                ):
                    sell_value = holding.current_value
                    trade_return = sell_value - holding.cost_basis
                    if trade_return > 0:
                        state.winning_trades += 1
                        state.total_wins += trade_return
                    else:
                        state.losing_trades += 1
                        state.total_losses += abs(trade_return)
                    state.cash += sell_value
                    state.total_trades += 1

            value = numeric.money(portfolio_value)
            if state.history:
                previous = state.history[-1].value
                if previous > 0:
                    state.daily_returns.append(numeric.quantize(
                        (value - previous) / previous, DecimalConstants.DAILY_RATE
                    ))
            state.history.append(DailyValue(date=current, value=value))

            current += timedelta(days=1)

        return state

    @staticmethod
    def calculate_buy_and_hold_return(holdings) -> Decimal:
        """Return of simply keeping the current holdings: (value - cost) / cost."""
        total_cost = sum((h.cost_basis for h in holdings), DecimalConstants.ZERO)
        total_value = sum((h.current_value for h in holdings), DecimalConstants.ZERO)
        return numeric.safe_divide(total_value - total_cost, total_cost)

    def _build_result(
        self,
        portfolio: PortfolioSnapshot,
        strategy: BacktestStrategy,
        state: _ReplayState,
        buy_and_hold_return: Decimal,
        start_date: date,
        end_date: date,
        days: int
    ) -> BacktestResult:
        final_capital = state.cash
        total_return = final_capital - strategy.initial_capital
        total_return_pct = numeric.safe_divide(total_return, strategy.initial_capital)
        volatility = numeric.population_std_dev(state.daily_returns)

        return BacktestResult(
            strategy_name=strategy.strategy_name,
            portfolio_id=portfolio.portfolio_id,
            start_date=start_date,
            end_date=end_date,
            total_days=days,
            buy_threshold=strategy.buy_threshold,
            sell_threshold=strategy.sell_threshold,
            max_position_size=strategy.max_position_size,
            stop_loss=strategy.stop_loss,
            take_profit=strategy.take_profit,
            initial_capital=strategy.initial_capital,
            final_capital=final_capital,
            total_return=total_return,
            total_return_percentage=total_return_pct,
            sharpe_ratio=numeric.safe_divide(total_return_pct - self.risk_free_rate, volatility),
            max_drawdown=max_drawdown(
                (point.value for point in state.history),
                initial_peak=strategy.initial_capital
            ),
            volatility=volatility,
            total_trades=state.total_trades,
            winning_trades=state.winning_trades,
            losing_trades=state.losing_trades,
            win_rate=numeric.safe_divide(Decimal(state.winning_trades), Decimal(state.total_trades)),
            avg_win=numeric.safe_divide(
                state.total_wins, Decimal(state.winning_trades), DecimalConstants.MONEY
            ),
            avg_loss=numeric.safe_divide(
                state.total_losses, Decimal(state.losing_trades), DecimalConstants.MONEY
            ),
            profit_factor=numeric.safe_divide(
                state.total_wins, state.total_losses, DecimalConstants.MONEY
            ),
            buy_and_hold_return=buy_and_hold_return,
            strategy_vs_buy_and_hold=total_return_pct - buy_and_hold_return,
            portfolio_history=tuple(state.history),
            calculated_at=datetime.now()
        )
