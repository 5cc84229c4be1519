"""
Monte Carlo simulation for probabilistic portfolio projections.

Each iteration compounds the current portfolio value through ``days`` normally
distributed daily returns (discrete geometric Brownian motion). The random
source is a ``numpy.random.Generator`` passed per call, so a seeded generator
reproduces a result exactly.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

import numpy as np

from portfolio_analytics.core import numeric
from portfolio_analytics.core.config import settings
from portfolio_analytics.core.constants import DecimalConstants
from portfolio_analytics.core.exceptions import InvalidAmountError, NoHoldingsError
from portfolio_analytics.services.portfolio_metrics_service import PortfolioMetricsService
from portfolio_analytics.services.result_objects import SimulationResult
from portfolio_analytics.services.valuation import PortfolioSnapshot

logger = logging.getLogger(__name__)

# Percentiles reported on every result
_MEDIAN = Decimal("50")
_BEST_CASE = Decimal("95")
_WORST_CASE = Decimal("5")
_BAND_90_HIGH = Decimal("90")
_BAND_90_LOW = Decimal("10")
_BAND_50_HIGH = Decimal("75")
_BAND_50_LOW = Decimal("25")


class MonteCarloService:
    """Runs Monte Carlo projections over a portfolio snapshot."""

    def __init__(
        self,
        metrics_service: Optional[PortfolioMetricsService] = None,
        trading_days_per_year: Optional[int] = None,
        sample_limit: Optional[int] = None
    ):
        """
        Args:
            metrics_service: Source of historical return and volatility
            trading_days_per_year: Divisor turning total return into a daily return
            sample_limit: Number of sorted outcomes kept on the result
        """
        self.metrics_service = metrics_service or PortfolioMetricsService()
        self.trading_days_per_year = trading_days_per_year or settings.trading_days_per_year
        self.sample_limit = sample_limit if sample_limit is not None else settings.simulation_sample_limit

    def run_simulation(
        self,
        portfolio: PortfolioSnapshot,
        iterations: Optional[int] = None,
        days: Optional[int] = None,
        random_source: Optional[np.random.Generator] = None,
        seed: Optional[int] = None
    ) -> SimulationResult:
        """
        Simulate ``iterations`` independent paths of ``days`` steps.

        Args:
            portfolio: Snapshot to project (must hold at least one holding)
            iterations: Number of paths (defaults to configuration, 10,000)
            days: Steps per path (defaults to 252, one trading year)
            random_source: Generator to draw from; created when omitted
            seed: Seed for the generator created when ``random_source`` is omitted.
                Ignored (and recorded as None) when a generator is injected.

        Returns:
            SimulationResult with percentiles, probabilities and a bounded sample

        Raises:
            NoHoldingsError: If the portfolio has no holdings
            InvalidAmountError: If iterations or days is not positive
        """
        iterations = iterations if iterations is not None else settings.monte_carlo_default_iterations
        days = days if days is not None else settings.monte_carlo_default_days

        logger.info(
            f"Running Monte Carlo simulation: portfolio={portfolio.portfolio_id}, "
            f"iterations={iterations}, days={days}"
        )

        if iterations < 1:
            raise InvalidAmountError("Iterations", iterations)
        if days < 1:
            raise InvalidAmountError("Days", days)
        if not portfolio.holdings:
            raise NoHoldingsError(portfolio.portfolio_id, "simulate")

        if random_source is not None:
            rng, seed = random_source, None
        else:
            rng = np.random.default_rng(seed)

        initial_value = portfolio.total_value
        volatility = self.metrics_service.calculate_volatility(portfolio)
        daily_return = numeric.quantize(
            self.metrics_service.calculate_total_return(portfolio) / self.trading_days_per_year,
            DecimalConstants.DAILY_RATE
        )

        outcomes = [
            self._simulate_path(initial_value, days, rng, float(daily_return), float(volatility))
            for _ in range(iterations)
        ]
        outcomes.sort()

        return self._build_result(
            portfolio, iterations, days, seed, initial_value,
            outcomes, daily_return, volatility
        )

    @staticmethod
    def _simulate_path(
        initial_value: Decimal,
        days: int,
        rng: np.random.Generator,
        mean: float,
        std_dev: float
    ) -> Decimal:
        """One path: multiply by (1 + r) per day, r ~ N(mean, std_dev)."""
        value = initial_value
        for r in rng.normal(mean, std_dev, size=days).tolist():
            value *= DecimalConstants.ONE + numeric.to_decimal(r)
        return numeric.money(value)

    def _build_result(
        self,
        portfolio: PortfolioSnapshot,
        iterations: int,
        days: int,
        seed: Optional[int],
        initial_value: Decimal,
        outcomes: List[Decimal],
        daily_return: Decimal,
        volatility: Decimal
    ) -> SimulationResult:
        """Aggregate sorted outcomes into the result record."""
        def pct(p: Decimal) -> Decimal:
            return numeric.money(numeric.percentile(outcomes, p))

        doubled = initial_value * 2
        loss_count = sum(1 for v in outcomes if v < initial_value)
        doubling_count = sum(1 for v in outcomes if v >= doubled)

        return SimulationResult(
            portfolio_id=portfolio.portfolio_id,
            iterations=iterations,
            days_projected=days,
            seed=seed,
            initial_value=initial_value,
            expected_value=numeric.money(numeric.mean(outcomes)),
            median_value=pct(_MEDIAN),
            best_case=pct(_BEST_CASE),
            worst_case=pct(_WORST_CASE),
            percentile_90_high=pct(_BAND_90_HIGH),
            percentile_90_low=pct(_BAND_90_LOW),
            percentile_50_high=pct(_BAND_50_HIGH),
            percentile_50_low=pct(_BAND_50_LOW),
            probability_of_loss=numeric.safe_divide(Decimal(loss_count), Decimal(iterations)),
            probability_of_doubling=numeric.safe_divide(Decimal(doubling_count), Decimal(iterations)),
            historical_return=daily_return,
            historical_volatility=volatility,
            simulation_results=tuple(outcomes[:self.sample_limit]),
            calculated_at=datetime.now()
        )
