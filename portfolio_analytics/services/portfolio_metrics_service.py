"""
Portfolio risk and performance metrics.

Every metric is computed from a ``PortfolioSnapshot``. Division by zero never
raises: empty portfolios, zero cost and zero volatility all produce zero.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from portfolio_analytics.core import numeric
from portfolio_analytics.core.config import settings
from portfolio_analytics.core.constants import DecimalConstants
from portfolio_analytics.services.result_objects import MetricsSnapshot
from portfolio_analytics.services.valuation import PortfolioSnapshot

logger = logging.getLogger(__name__)


class PortfolioMetricsService:
    """
    Calculates portfolio-level metrics from holding valuations.

    Sharpe ratio interpretation: > 1.0 good, > 2.0 very good, > 3.0 excellent.
    """

    def __init__(self, risk_free_rate: Optional[Decimal] = None):
        """
        Args:
            risk_free_rate: Annual risk-free rate used when a call doesn't pass one
        """
        self.risk_free_rate = (
            numeric.to_decimal(risk_free_rate) if risk_free_rate is not None else settings.risk_free_rate
        )

    def calculate_total_return(self, portfolio: PortfolioSnapshot) -> Decimal:
        """
        (totalValue - totalInvested) / totalInvested, where totalInvested is
        cost basis plus cash. Returned as a fraction (0.15 = 15%).
        """
        total_invested = self._total_invested(portfolio)
        return numeric.safe_divide(portfolio.total_value - total_invested, total_invested)

    def calculate_volatility(self, portfolio: PortfolioSnapshot) -> Decimal:
        """
        Population standard deviation of holding returns.

        This is cross-sectional dispersion across current holdings, not a
        time-series estimate.
        """
        return numeric.population_std_dev(h.return_ratio for h in portfolio.holdings)

    def calculate_sharpe_ratio(
        self,
        portfolio: PortfolioSnapshot,
        risk_free_rate: Optional[Decimal] = None
    ) -> Decimal:
        """(totalReturn - riskFreeRate) / volatility, zero when volatility is zero."""
        rate = self._resolve_rate(risk_free_rate)
        excess_return = self.calculate_total_return(portfolio) - rate
        return numeric.safe_divide(excess_return, self.calculate_volatility(portfolio))

    def calculate_max_drawdown(self, portfolio: PortfolioSnapshot) -> Decimal:
        """
        Largest decline from the running peak of holding values.

        Walks holdings in their given order, so this is a peak-to-trough measure
        over the holdings sequence rather than a historical drawdown.
        Returns a non-positive fraction (-0.25 = 25% below peak).
        """
        values = [h.current_value for h in portfolio.holdings]
        return max_drawdown(values)

    def calculate_turnover_rate(
        self,
        portfolio: PortfolioSnapshot,
        trading_volume: Decimal
    ) -> Decimal:
        """Buy plus sell volume divided by current total value."""
        return numeric.safe_divide(numeric.to_decimal(trading_volume), portfolio.total_value)

    def calculate_total_profit_loss(self, portfolio: PortfolioSnapshot) -> Decimal:
        return sum(
            (h.unrealized_profit_loss for h in portfolio.holdings),
            DecimalConstants.ZERO
        )

    def calculate_win_rate(self, portfolio: PortfolioSnapshot) -> Decimal:
        """Fraction of holdings with a positive unrealized P&L."""
        return numeric.safe_divide(
            Decimal(self._count_profitable(portfolio)),
            Decimal(len(portfolio.holdings))
        )

    def calculate_metrics(
        self,
        portfolio: PortfolioSnapshot,
        trading_volume: Decimal = DecimalConstants.ZERO,
        risk_free_rate: Optional[Decimal] = None
    ) -> MetricsSnapshot:
        """Calculate every metric for one snapshot."""
        logger.info(f"Calculating comprehensive metrics for portfolio: {portfolio.portfolio_id}")

        rate = self._resolve_rate(risk_free_rate)
        holdings = portfolio.holdings
        profitable = self._count_profitable(portfolio)
        percents = [h.pnl_percent for h in holdings]
        zero_percent = numeric.money(DecimalConstants.ZERO)

        return MetricsSnapshot(
            portfolio_id=portfolio.portfolio_id,
            portfolio_name=portfolio.name,
            total_value=portfolio.total_value,
            total_cost=self._total_invested(portfolio),
            total_profit_loss=self.calculate_total_profit_loss(portfolio),
            total_return=self.calculate_total_return(portfolio),
            sharpe_ratio=self.calculate_sharpe_ratio(portfolio, rate),
            volatility=self.calculate_volatility(portfolio),
            max_drawdown=self.calculate_max_drawdown(portfolio),
            turnover_rate=self.calculate_turnover_rate(portfolio, trading_volume),
            win_rate=self.calculate_win_rate(portfolio),
            total_holdings=len(holdings),
            profitable_holdings=profitable,
            losing_holdings=len(holdings) - profitable,
            best_performer=max(percents) if percents else zero_percent,
            worst_performer=min(percents) if percents else zero_percent,
            risk_free_rate=rate,
            calculated_at=datetime.now()
        )

    def _resolve_rate(self, risk_free_rate: Optional[Decimal]) -> Decimal:
        if risk_free_rate is None:
            return self.risk_free_rate
        return numeric.to_decimal(risk_free_rate)

    @staticmethod
    def _total_invested(portfolio: PortfolioSnapshot) -> Decimal:
        return portfolio.total_cost_basis + portfolio.available_cash

    @staticmethod
    def _count_profitable(portfolio: PortfolioSnapshot) -> int:
        return sum(1 for h in portfolio.holdings if h.unrealized_profit_loss > 0)


def max_drawdown(values, initial_peak: Decimal = DecimalConstants.ZERO) -> Decimal:
    """
    Most negative ``(value - peak) / peak`` over a sequence, tracking the
    running peak. Zero for an empty or never-positive sequence.

    Args:
        values: Values in sequence order
        initial_peak: Peak before the first value (zero for holdings,
            starting capital for a backtest)
    """
    peak = initial_peak
    worst = numeric.ratio(DecimalConstants.ZERO)
    for value in values:
        if value > peak:
            peak = value
        if peak > 0:
            drawdown = numeric.safe_divide(value - peak, peak)
            if drawdown < worst:
                worst = drawdown
    return worst
