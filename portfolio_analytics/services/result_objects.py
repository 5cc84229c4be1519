"""Result objects for service layer operations and analytics calculations."""
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from portfolio_analytics.core.constants import ErrorCode

if TYPE_CHECKING:
    from portfolio_analytics.services.valuation import HoldingSnapshot


@dataclass
class ServiceResult:
    """Base result object for service operations."""
    success: bool
    message: str
    errors: list[str] = field(default_factory=list)
    error_code: ErrorCode = ErrorCode.NONE


@dataclass
class TradeResult(ServiceResult):
    """Result for a buy or sell operation."""
    transaction_id: Optional[int] = None
    holding: Optional["HoldingSnapshot"] = None
    position_closed: bool = False
    gross_amount: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")
    available_cash: Optional[Decimal] = None
    total_value: Optional[Decimal] = None


@dataclass(frozen=True)
class MetricsSnapshot:
    """Portfolio risk/performance metrics, computed on demand and never persisted."""
    portfolio_id: Optional[int]
    portfolio_name: Optional[str]
    total_value: Decimal
    total_cost: Decimal
    total_profit_loss: Decimal
    total_return: Decimal
    sharpe_ratio: Decimal
    volatility: Decimal
    max_drawdown: Decimal
    turnover_rate: Decimal
    win_rate: Decimal
    total_holdings: int
    profitable_holdings: int
    losing_holdings: int
    best_performer: Decimal
    worst_performer: Decimal
    risk_free_rate: Decimal
    calculated_at: datetime


@dataclass(frozen=True)
class SimulationResult:
    """Monte Carlo projection of future portfolio value."""
    portfolio_id: Optional[int]
    iterations: int
    days_projected: int
    seed: Optional[int]
    initial_value: Decimal

    # Statistical projections
    expected_value: Decimal
    median_value: Decimal
    best_case: Decimal       # 95th percentile
    worst_case: Decimal      # 5th percentile

    # Confidence bands
    percentile_90_high: Decimal
    percentile_90_low: Decimal
    percentile_50_high: Decimal
    percentile_50_low: Decimal

    # Risk
    probability_of_loss: Decimal
    probability_of_doubling: Decimal

    # Inputs derived from the metrics engine
    historical_return: Decimal
    historical_volatility: Decimal

    # Bounded, sorted sample of outcomes for charting
    simulation_results: tuple[Decimal, ...]
    calculated_at: datetime


@dataclass(frozen=True)
class DailyValue:
    """One point of a backtest value series."""
    date: date
    value: Decimal


@dataclass(frozen=True)
class BacktestResult:
    """Outcome of replaying a threshold strategy over a synthetic window."""
    strategy_name: str
    portfolio_id: Optional[int]

    # Period
    start_date: date
    end_date: date
    total_days: int

    # Strategy parameters used
    buy_threshold: Decimal
    sell_threshold: Decimal
    max_position_size: Decimal
    stop_loss: Optional[Decimal]
    take_profit: Optional[Decimal]

    # Capital
    initial_capital: Decimal
    final_capital: Decimal
    total_return: Decimal
    total_return_percentage: Decimal

    # Risk
    sharpe_ratio: Decimal
    max_drawdown: Decimal
    volatility: Decimal

    # Trades
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: Decimal
    avg_win: Decimal
    avg_loss: Decimal
    profit_factor: Decimal

    # Benchmark
    buy_and_hold_return: Decimal
    strategy_vs_buy_and_hold: Decimal

    portfolio_history: tuple[DailyValue, ...]
    calculated_at: datetime
