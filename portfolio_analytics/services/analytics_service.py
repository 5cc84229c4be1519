"""
Async facade over the analytics engines.

Loads a portfolio and its holdings through the repositories, turns them into
an immutable snapshot and hands that snapshot to the synchronous engines.
Simulation and backtest run in a worker thread so they don't block the event
loop.
"""
import asyncio
import logging
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.core.config import settings
from portfolio_analytics.core.constants import TransactionType
from portfolio_analytics.core.exceptions import InvalidAmountError, PortfolioNotFoundError
from portfolio_analytics.core.telemetry import get_tracer
from portfolio_analytics.db.models import Holding, Instrument, Portfolio
from portfolio_analytics.repositories.holding_repository import HoldingRepository
from portfolio_analytics.repositories.portfolio_repository import PortfolioRepository
from portfolio_analytics.repositories.transaction_repository import TransactionRepository
from portfolio_analytics.services.backtest_service import BacktestService, BacktestStrategy
from portfolio_analytics.services.business_metrics_service import (
    BusinessMetricsService,
    get_business_metrics_service,
)
from portfolio_analytics.services.monte_carlo_service import MonteCarloService
from portfolio_analytics.services.portfolio_metrics_service import PortfolioMetricsService
from portfolio_analytics.services.result_objects import (
    BacktestResult,
    MetricsSnapshot,
    SimulationResult,
)
from portfolio_analytics.services.valuation import (
    HoldingSnapshot,
    InstrumentQuote,
    PortfolioSnapshot,
)

logger = logging.getLogger(__name__)


def to_instrument_quote(instrument: Instrument) -> InstrumentQuote:
    return InstrumentQuote(
        instrument_id=instrument.id,
        ticker=instrument.ticker,
        current_price=instrument.current_price
    )


def build_snapshot(
    portfolio: Portfolio,
    rows: Iterable[Tuple[Holding, Instrument]]
) -> PortfolioSnapshot:
    """Convert a portfolio row and its (holding, instrument) rows into a snapshot."""
    holdings = tuple(
        HoldingSnapshot(
            instrument=to_instrument_quote(instrument),
            quantity=holding.quantity,
            average_cost=holding.average_cost,
            holding_id=holding.id
        )
        for holding, instrument in rows
    )
    return PortfolioSnapshot(
        portfolio_id=portfolio.id,
        available_cash=portfolio.available_cash if portfolio.available_cash is not None else Decimal("0"),
        holdings=holdings,
        name=portfolio.name
    )


def _check_max_days(days: Optional[int], limit: int) -> None:
    if days is not None and days > limit:
        raise InvalidAmountError("Days", days, f"cannot exceed {limit}")


class AnalyticsService:
    """Service layer for portfolio metrics, simulations and backtests."""

    def __init__(
        self,
        db: AsyncSession,
        metrics_service: Optional[PortfolioMetricsService] = None,
        monte_carlo_service: Optional[MonteCarloService] = None,
        backtest_service: Optional[BacktestService] = None,
        business_metrics: Optional[BusinessMetricsService] = None
    ):
        self.db = db
        self.portfolio_repository = PortfolioRepository(db)
        self.holding_repository = HoldingRepository(db)
        self.transaction_repository = TransactionRepository(db)
        self.metrics_service = metrics_service or PortfolioMetricsService()
        self.monte_carlo_service = monte_carlo_service or MonteCarloService(self.metrics_service)
        self.backtest_service = backtest_service or BacktestService()
        self.business_metrics = business_metrics or get_business_metrics_service()

    async def load_snapshot_async(self, portfolio_id: int) -> PortfolioSnapshot:
        """
        Read a portfolio and its holdings into an immutable snapshot.

        Raises:
            PortfolioNotFoundError: If the portfolio doesn't exist
        """
        portfolio = await self.portfolio_repository.get_by_id(portfolio_id)
        if portfolio is None:
            logger.warning(f"Portfolio {portfolio_id} not found")
            raise PortfolioNotFoundError(portfolio_id)

        rows = await self.holding_repository.get_with_instruments_by_portfolio_id(portfolio_id)
        return build_snapshot(portfolio, rows)

    async def get_trading_volume_async(self, portfolio_id: int) -> Decimal:
        return await self.transaction_repository.calculate_total_volume(
            portfolio_id, TransactionType.trade_types()
        )

    # ==================== Metrics ====================

    async def get_metrics_async(
        self,
        portfolio_id: int,
        risk_free_rate: Optional[Decimal] = None
    ) -> MetricsSnapshot:
        with self.business_metrics.track_metrics_request("all", portfolio_id):
            snapshot = await self.load_snapshot_async(portfolio_id)
            volume = await self.get_trading_volume_async(portfolio_id)
            return self.metrics_service.calculate_metrics(snapshot, volume, risk_free_rate)

    async def get_sharpe_ratio_async(
        self,
        portfolio_id: int,
        risk_free_rate: Optional[Decimal] = None
    ) -> Decimal:
        with self.business_metrics.track_metrics_request("sharpe_ratio", portfolio_id):
            snapshot = await self.load_snapshot_async(portfolio_id)
            return self.metrics_service.calculate_sharpe_ratio(snapshot, risk_free_rate)

    async def get_volatility_async(self, portfolio_id: int) -> Decimal:
        with self.business_metrics.track_metrics_request("volatility", portfolio_id):
            snapshot = await self.load_snapshot_async(portfolio_id)
            return self.metrics_service.calculate_volatility(snapshot)

    async def get_max_drawdown_async(self, portfolio_id: int) -> Decimal:
        with self.business_metrics.track_metrics_request("max_drawdown", portfolio_id):
            snapshot = await self.load_snapshot_async(portfolio_id)
            return self.metrics_service.calculate_max_drawdown(snapshot)

    async def get_total_return_async(self, portfolio_id: int) -> Decimal:
        with self.business_metrics.track_metrics_request("total_return", portfolio_id):
            snapshot = await self.load_snapshot_async(portfolio_id)
            return self.metrics_service.calculate_total_return(snapshot)

    async def get_turnover_rate_async(self, portfolio_id: int) -> Decimal:
        with self.business_metrics.track_metrics_request("turnover_rate", portfolio_id):
            snapshot = await self.load_snapshot_async(portfolio_id)
            volume = await self.get_trading_volume_async(portfolio_id)
            return self.metrics_service.calculate_turnover_rate(snapshot, volume)

    # ==================== Simulation and backtest ====================

    async def run_simulation_async(
        self,
        portfolio_id: int,
        iterations: Optional[int] = None,
        days: Optional[int] = None,
        seed: Optional[int] = None
    ) -> SimulationResult:
        """
        Run a Monte Carlo projection for a stored portfolio.

        Raises:
            PortfolioNotFoundError: If the portfolio doesn't exist
            InvalidAmountError: If iterations or days exceeds the configured maximum
            NoHoldingsError: If the portfolio has no holdings
        """
        iterations = iterations if iterations is not None else settings.monte_carlo_default_iterations
        if iterations > settings.monte_carlo_max_iterations:
            raise InvalidAmountError(
                "Iterations", iterations, f"cannot exceed {settings.monte_carlo_max_iterations}"
            )
        _check_max_days(days, settings.monte_carlo_max_days)

        with self.business_metrics.track_simulation(iterations, portfolio_id), \
                get_tracer().start_as_current_span("monte_carlo.simulate") as span:
            span.set_attribute("portfolio.id", portfolio_id)
            span.set_attribute("monte_carlo.iterations", iterations)
            snapshot = await self.load_snapshot_async(portfolio_id)
            return await asyncio.to_thread(
                self.monte_carlo_service.run_simulation,
                snapshot,
                iterations,
                days,
                None,
                seed
            )

    async def run_backtest_async(
        self,
        portfolio_id: int,
        strategy: BacktestStrategy,
        days: Optional[int] = None
    ) -> BacktestResult:
        """
        Replay a strategy against a stored portfolio's current holdings.

        Raises:
            PortfolioNotFoundError: If the portfolio doesn't exist
            InvalidAmountError: If days exceeds the configured maximum
            NoHoldingsError: If the portfolio has no holdings
        """
        _check_max_days(days, settings.backtest_max_days)

        with self.business_metrics.track_backtest(strategy.strategy_name, portfolio_id), \
                get_tracer().start_as_current_span("backtest.run") as span:
            span.set_attribute("portfolio.id", portfolio_id)
            span.set_attribute("backtest.strategy", strategy.strategy_name)
            snapshot = await self.load_snapshot_async(portfolio_id)
            return await asyncio.to_thread(
                self.backtest_service.run_backtest,
                snapshot,
                strategy,
                days
            )
