"""Business metrics service for OpenTelemetry instrumentation.

Counters track how often each analytics operation runs and histograms measure
how long it takes. Every measurement is tagged with the operation status and,
where known, the portfolio ID.
"""
import time
from contextlib import contextmanager
from functools import lru_cache
from typing import Dict, Generator, Optional

from opentelemetry import metrics

from portfolio_analytics.core.config import settings

_meter = metrics.get_meter(
    f"{settings.otel_service_name}.Business", settings.otel_service_version
)

# Counters
_metrics_requests_total = _meter.create_counter(
    name="portfolio_metrics_requests_total",
    description="Total number of portfolio metrics requests",
    unit="1"
)

_simulations_total = _meter.create_counter(
    name="monte_carlo_simulations_total",
    description="Total number of Monte Carlo simulations",
    unit="1"
)

_simulation_iterations_total = _meter.create_counter(
    name="monte_carlo_iterations_total",
    description="Total number of simulated paths",
    unit="1"
)

_backtests_total = _meter.create_counter(
    name="backtests_total",
    description="Total number of strategy backtests",
    unit="1"
)

_trades_total = _meter.create_counter(
    name="trades_total",
    description="Total number of buy/sell operations",
    unit="1"
)

# Histograms for duration tracking
_metrics_request_duration = _meter.create_histogram(
    name="portfolio_metrics_request_duration_seconds",
    description="Duration of portfolio metrics calculations in seconds",
    unit="s"
)

_simulation_duration = _meter.create_histogram(
    name="monte_carlo_simulation_duration_seconds",
    description="Duration of Monte Carlo simulations in seconds",
    unit="s"
)

_backtest_duration = _meter.create_histogram(
    name="backtest_duration_seconds",
    description="Duration of strategy backtests in seconds",
    unit="s"
)

_trade_duration = _meter.create_histogram(
    name="trade_duration_seconds",
    description="Duration of buy/sell operations in seconds",
    unit="s"
)


def _attributes(portfolio_id: Optional[int], **extra: str) -> Dict[str, str]:
    attributes = dict(extra)
    if portfolio_id is not None:
        attributes["portfolio_id"] = str(portfolio_id)
    return attributes


class BusinessMetricsService:
    """Service for recording analytics business metrics."""

    def increment_metrics_requests(
        self,
        metric: str,
        portfolio_id: Optional[int] = None,
        status: str = "requested"
    ) -> None:
        """Increment metrics request counter."""
        _metrics_requests_total.add(1, _attributes(portfolio_id, metric=metric, status=status))

    def record_metrics_request_duration(
        self,
        duration_seconds: float,
        metric: str,
        portfolio_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        _metrics_request_duration.record(
            duration_seconds, _attributes(portfolio_id, metric=metric, status=status)
        )

    def increment_simulations(
        self,
        iterations: int,
        portfolio_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        """Increment simulation counter and the number of simulated paths."""
        attributes = _attributes(portfolio_id, status=status)
        _simulations_total.add(1, attributes)
        if status == "success":
            _simulation_iterations_total.add(iterations, attributes)

    def record_simulation_duration(
        self,
        duration_seconds: float,
        portfolio_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        _simulation_duration.record(duration_seconds, _attributes(portfolio_id, status=status))

    def increment_backtests(
        self,
        strategy_name: str,
        portfolio_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        _backtests_total.add(1, _attributes(portfolio_id, strategy=strategy_name, status=status))

    def record_backtest_duration(
        self,
        duration_seconds: float,
        strategy_name: str,
        portfolio_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        _backtest_duration.record(
            duration_seconds, _attributes(portfolio_id, strategy=strategy_name, status=status)
        )

    def increment_trades(
        self,
        side: str,
        portfolio_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        """Increment trade counter (buy/sell)."""
        _trades_total.add(1, _attributes(portfolio_id, side=side, status=status))

    def record_trade_duration(
        self,
        duration_seconds: float,
        side: str,
        portfolio_id: Optional[int] = None,
        status: str = "success"
    ) -> None:
        _trade_duration.record(duration_seconds, _attributes(portfolio_id, side=side, status=status))

    @contextmanager
    def track_metrics_request(
        self,
        metric: str,
        portfolio_id: Optional[int] = None
    ) -> Generator[None, None, None]:
        """Context manager for tracking metrics request metrics."""
        self.increment_metrics_requests(metric, portfolio_id, "requested")
        start_time = time.perf_counter()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            duration = time.perf_counter() - start_time
            self.record_metrics_request_duration(duration, metric, portfolio_id, status)

    @contextmanager
    def track_simulation(
        self,
        iterations: int,
        portfolio_id: Optional[int] = None
    ) -> Generator[None, None, None]:
        """Context manager for tracking Monte Carlo simulation metrics."""
        start_time = time.perf_counter()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            duration = time.perf_counter() - start_time
            self.increment_simulations(iterations, portfolio_id, status)
            self.record_simulation_duration(duration, portfolio_id, status)

    @contextmanager
    def track_backtest(
        self,
        strategy_name: str,
        portfolio_id: Optional[int] = None
    ) -> Generator[None, None, None]:
        """Context manager for tracking backtest metrics."""
        start_time = time.perf_counter()
        status = "success"
        try:
            yield
        except Exception:
            status = "error"
            raise
        finally:
            duration = time.perf_counter() - start_time
            self.increment_backtests(strategy_name, portfolio_id, status)
            self.record_backtest_duration(duration, strategy_name, portfolio_id, status)


@lru_cache()
def get_business_metrics_service() -> BusinessMetricsService:
    """Get singleton business metrics service instance."""
    return BusinessMetricsService()
