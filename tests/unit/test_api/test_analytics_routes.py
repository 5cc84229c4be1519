"""
Unit tests for the metrics, Monte Carlo and backtest routes.

Tests cover:
- camelCase JSON responses
- Query parameter defaults and limits
- Engine errors mapped to status codes with an error code
- Generic 500 response without internal details
"""
import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock

from portfolio_analytics.api import main
from portfolio_analytics.core.config import settings
from portfolio_analytics.core.exceptions import (
    InvalidAmountError,
    NoHoldingsError,
    PortfolioNotFoundError,
)
from portfolio_analytics.services.backtest_service import BacktestService, BacktestStrategy
from portfolio_analytics.services.monte_carlo_service import MonteCarloService
from portfolio_analytics.services.portfolio_metrics_service import PortfolioMetricsService


@pytest.fixture
def strategy_body():
    return {
        "strategyName": "Threshold",
        "initialCapital": "10000.00",
        "buyThreshold": "-0.05",
        "sellThreshold": "0.10",
        "maxPositionSize": "0.10",
        "stopLoss": "-0.10"
    }


class TestMetricsRoutes:
    """Test /api/portfolios/{id}/metrics endpoints."""

    @pytest.mark.unit
    def test_get_metrics(self, client, mock_analytics_service, mixed_portfolio):
        mock_analytics_service.get_metrics_async.return_value = (
            PortfolioMetricsService(Decimal("0.02")).calculate_metrics(mixed_portfolio)
        )

        response = client.get("/api/portfolios/1/metrics")

        assert response.status_code == 200
        data = response.json()
        assert data["portfolioId"] == 1
        assert Decimal(str(data["totalReturn"])) == Decimal("0.0875")
        assert Decimal(str(data["sharpeRatio"])) == Decimal("0.5725")
        assert data["totalHoldings"] == 3
        assert "calculatedAt" in data
        mock_analytics_service.get_metrics_async.assert_awaited_once_with(1, None)

    @pytest.mark.unit
    def test_sharpe_ratio_default_rate(self, client, mock_analytics_service):
        mock_analytics_service.get_sharpe_ratio_async.return_value = Decimal("1.2500")

        response = client.get("/api/portfolios/1/metrics/sharpe-ratio")

        assert response.status_code == 200
        data = response.json()
        assert data["metric"] == "sharpeRatio"
        assert Decimal(str(data["value"])) == Decimal("1.2500")
        mock_analytics_service.get_sharpe_ratio_async.assert_awaited_once_with(1, Decimal("0.02"))

    @pytest.mark.unit
    def test_sharpe_ratio_custom_rate(self, client, mock_analytics_service):
        mock_analytics_service.get_sharpe_ratio_async.return_value = Decimal("0.9000")

        client.get("/api/portfolios/1/metrics/sharpe-ratio", params={"riskFreeRate": "0.05"})

        mock_analytics_service.get_sharpe_ratio_async.assert_awaited_once_with(1, Decimal("0.05"))

    @pytest.mark.unit
    @pytest.mark.parametrize("path,method,metric", [
        ("volatility", "get_volatility_async", "volatility"),
        ("max-drawdown", "get_max_drawdown_async", "maxDrawdown"),
        ("total-return", "get_total_return_async", "totalReturn"),
        ("turnover-rate", "get_turnover_rate_async", "turnoverRate"),
    ])
    def test_single_metric_routes(self, client, mock_analytics_service, path, method, metric):
        getattr(mock_analytics_service, method).return_value = Decimal("0.1234")

        response = client.get(f"/api/portfolios/3/metrics/{path}")

        assert response.status_code == 200
        data = response.json()
        assert data["portfolioId"] == 3
        assert data["metric"] == metric
        assert Decimal(str(data["value"])) == Decimal("0.1234")

    @pytest.mark.unit
    def test_portfolio_not_found(self, client, mock_analytics_service):
        mock_analytics_service.get_metrics_async.side_effect = PortfolioNotFoundError(99)

        response = client.get("/api/portfolios/99/metrics")

        assert response.status_code == 404
        assert response.json() == {"detail": "Portfolio 99 not found", "errorCode": "not_found"}

    @pytest.mark.unit
    def test_unexpected_error_hides_details(self, client, mock_analytics_service):
        mock_analytics_service.get_volatility_async.side_effect = RuntimeError("password=secret")

        response = client.get("/api/portfolios/1/metrics/volatility")

        assert response.status_code == 500
        assert "secret" not in response.text
        assert response.json()["errorCode"] == "internal_error"


class TestMonteCarloRoute:
    """Test /api/portfolios/{id}/monte-carlo/simulate."""

    @pytest.mark.unit
    def test_simulate_with_seed(self, client, mock_analytics_service, mixed_portfolio):
        mock_analytics_service.run_simulation_async.return_value = (
            MonteCarloService().run_simulation(mixed_portfolio, iterations=20, days=5, seed=9)
        )

        response = client.get(
            "/api/portfolios/1/monte-carlo/simulate",
            params={"iterations": 20, "days": 5, "seed": 9}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["iterations"] == 20
        assert data["daysProjected"] == 5
        assert data["seed"] == 9
        assert len(data["simulationResults"]) == 20
        mock_analytics_service.run_simulation_async.assert_awaited_once_with(1, 20, 5, 9)

    @pytest.mark.unit
    def test_defaults(self, client, mock_analytics_service, mixed_portfolio):
        mock_analytics_service.run_simulation_async.return_value = (
            MonteCarloService().run_simulation(mixed_portfolio, iterations=5, days=5, seed=1)
        )

        client.get("/api/portfolios/1/monte-carlo/simulate")

        mock_analytics_service.run_simulation_async.assert_awaited_once_with(
            1, settings.monte_carlo_default_iterations, settings.monte_carlo_default_days, None
        )

    @pytest.mark.unit
    def test_iterations_over_limit_rejected(self, client, mock_analytics_service):
        response = client.get(
            "/api/portfolios/1/monte-carlo/simulate",
            params={"iterations": settings.monte_carlo_max_iterations + 1}
        )

        assert response.status_code == 422
        mock_analytics_service.run_simulation_async.assert_not_awaited()

    @pytest.mark.unit
    def test_days_over_limit_rejected(self, client, mock_analytics_service):
        response = client.get(
            "/api/portfolios/1/monte-carlo/simulate",
            params={"days": settings.monte_carlo_max_days + 1}
        )

        assert response.status_code == 422
        mock_analytics_service.run_simulation_async.assert_not_awaited()

    @pytest.mark.unit
    def test_no_holdings(self, client, mock_analytics_service):
        mock_analytics_service.run_simulation_async.side_effect = NoHoldingsError(1, "simulate")

        response = client.get("/api/portfolios/1/monte-carlo/simulate")

        assert response.status_code == 422
        assert response.json()["errorCode"] == "precondition_failed"


class TestBacktestRoute:
    """Test /api/portfolios/{id}/backtest."""

    @pytest.mark.unit
    def test_run_backtest(self, client, mock_analytics_service, single_holding_portfolio, strategy_body):
        strategy = BacktestStrategy(
            strategy_name="Threshold",
            initial_capital=Decimal("10000.00"),
            buy_threshold=Decimal("-0.05"),
            sell_threshold=Decimal("0.10"),
            max_position_size=Decimal("0.10")
        )
        mock_analytics_service.run_backtest_async.return_value = BacktestService().run_backtest(
            single_holding_portfolio, strategy, days=2, end_date=date(2024, 1, 31)
        )

        response = client.post("/api/portfolios/1/backtest", params={"days": 2}, json=strategy_body)

        assert response.status_code == 200
        data = response.json()
        assert data["strategyName"] == "Threshold"
        assert data["startDate"] == "2024-01-29"
        assert data["endDate"] == "2024-01-31"
        assert len(data["portfolioHistory"]) == 3
        assert data["portfolioHistory"][0]["date"] == "2024-01-29"
        assert data["totalTrades"] == 3

        portfolio_id, sent_strategy, days = mock_analytics_service.run_backtest_async.await_args.args
        assert portfolio_id == 1
        assert days == 2
        assert sent_strategy.stop_loss == Decimal("-0.10")
        assert sent_strategy.max_position_size == Decimal("0.10")

    @pytest.mark.unit
    def test_default_days(self, client, mock_analytics_service, strategy_body):
        mock_analytics_service.run_backtest_async.side_effect = NoHoldingsError(1, "backtest")

        client.post("/api/portfolios/1/backtest", json=strategy_body)

        assert mock_analytics_service.run_backtest_async.await_args.args[2] == settings.backtest_default_days

    @pytest.mark.unit
    def test_days_over_limit_rejected(self, client, mock_analytics_service, strategy_body):
        response = client.post(
            "/api/portfolios/1/backtest",
            params={"days": settings.backtest_max_days + 1},
            json=strategy_body
        )

        assert response.status_code == 422
        mock_analytics_service.run_backtest_async.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.parametrize("field,value", [
        ("strategyName", "ab"),
        ("initialCapital", "0"),
        ("buyThreshold", "0.5"),
        ("sellThreshold", "-1"),
        ("maxPositionSize", "1.5"),
        ("stopLoss", "0.2"),
    ])
    def test_invalid_strategy_rejected(self, client, mock_analytics_service, strategy_body, field, value):
        strategy_body[field] = value

        response = client.post("/api/portfolios/1/backtest", json=strategy_body)

        assert response.status_code == 422
        mock_analytics_service.run_backtest_async.assert_not_awaited()

    @pytest.mark.unit
    def test_engine_validation_error(self, client, mock_analytics_service, strategy_body):
        mock_analytics_service.run_backtest_async.side_effect = InvalidAmountError("Days", -1, "cannot be negative")

        response = client.post("/api/portfolios/1/backtest", json=strategy_body)

        assert response.status_code == 400
        assert response.json()["errorCode"] == "validation_error"


class TestHealthRoutes:
    @pytest.mark.unit
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.unit
    def test_health_when_database_answers(self, client, monkeypatch):
        monkeypatch.setattr(main, "check_database_async", AsyncMock())

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"]["database"]["status"] == "healthy"

    @pytest.mark.unit
    def test_health_when_database_down(self, client, monkeypatch):
        monkeypatch.setattr(
            main, "check_database_async", AsyncMock(side_effect=OSError("password=secret"))
        )

        response = client.get("/health")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["checks"]["database"]["message"] == "Connection failed"
        assert "secret" not in response.text
