"""
Pytest configuration and shared fixtures for unit tests.

This module provides common fixtures for unit testing:
- Engine snapshots (holdings, portfolios) built from plain values
- Mock database session and ORM rows
- FastAPI test client with service dependencies overridden

Note: Database fixtures are not included because SQLite doesn't support
PostgreSQL schemas. For integration tests with database, use a real
PostgreSQL test database.
"""
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.api.dependencies import get_analytics_service, get_trading_service
from portfolio_analytics.api.main import app
from portfolio_analytics.services.analytics_service import AnalyticsService
from portfolio_analytics.services.business_metrics_service import BusinessMetricsService
from portfolio_analytics.services.trading_service import TradingService
from portfolio_analytics.services.valuation import (
    HoldingSnapshot,
    InstrumentQuote,
    PortfolioSnapshot,
)


def make_holding(
    quantity,
    average_cost,
    current_price,
    instrument_id: int = 1,
    ticker: str = "AAPL"
) -> HoldingSnapshot:
    """Build a holding snapshot from plain numbers."""
    price = Decimal(str(current_price)) if current_price is not None else None
    return HoldingSnapshot(
        instrument=InstrumentQuote(instrument_id=instrument_id, ticker=ticker, current_price=price),
        quantity=Decimal(str(quantity)),
        average_cost=Decimal(str(average_cost))
    )


# ==================== Engine Snapshot Fixtures ====================

@pytest.fixture
def holding_factory():
    """Expose ``make_holding`` to tests that need custom holdings."""
    return make_holding


@pytest.fixture
def aapl_holding():
    """10 units bought at 150.00, now priced at 180.00 (+20%)."""
    return make_holding(10, "150.00", "180.00", 1, "AAPL")


@pytest.fixture
def msft_holding():
    """5 units bought at 200.00, now priced at 190.00 (-5%)."""
    return make_holding(5, "200.00", "190.00", 2, "MSFT")


@pytest.fixture
def tsla_holding():
    """2 units bought at 250.00, now priced at 300.00 (+20%)."""
    return make_holding(2, "250.00", "300.00", 3, "TSLA")


@pytest.fixture
def empty_portfolio():
    return PortfolioSnapshot(portfolio_id=1, available_cash=Decimal("10000.00"), name="Empty")


@pytest.fixture
def single_holding_portfolio(aapl_holding):
    return PortfolioSnapshot(
        portfolio_id=1,
        available_cash=Decimal("0.00"),
        holdings=(aapl_holding,),
        name="Single"
    )


@pytest.fixture
def mixed_portfolio(aapl_holding, msft_holding, tsla_holding):
    """Three holdings (two winners, one loser) plus 1,000.00 cash."""
    return PortfolioSnapshot(
        portfolio_id=1,
        available_cash=Decimal("1000.00"),
        holdings=(aapl_holding, msft_holding, tsla_holding),
        name="Mixed"
    )


# ==================== Mock Database and Model Fixtures ====================

@pytest.fixture
def mock_db_session():
    """Create a mock AsyncSession for database testing."""
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture
def mock_business_metrics():
    """Business metrics mock; the tracking context managers still wrap the call."""
    real = BusinessMetricsService()
    mock = MagicMock(spec=BusinessMetricsService)
    mock.track_metrics_request.side_effect = real.track_metrics_request
    mock.track_simulation.side_effect = real.track_simulation
    mock.track_backtest.side_effect = real.track_backtest
    return mock


@pytest.fixture
def sample_portfolio():
    """Create a sample portfolio row."""
    portfolio = MagicMock()
    portfolio.id = 1
    portfolio.name = "Test Portfolio"
    portfolio.available_cash = Decimal("10000.00")
    portfolio.total_value = Decimal("11800.00")
    return portfolio


@pytest.fixture
def sample_instrument():
    """Create a sample instrument row."""
    instrument = MagicMock()
    instrument.id = 1
    instrument.ticker = "AAPL"
    instrument.name = "Apple Inc."
    instrument.active = True
    instrument.current_price = Decimal("180.00")
    return instrument


@pytest.fixture
def sample_holding():
    """Create a sample holding row (10 AAPL at 150.00)."""
    holding = MagicMock()
    holding.id = 1
    holding.portfolio_id = 1
    holding.instrument_id = 1
    holding.quantity = Decimal("10")
    holding.average_cost = Decimal("150.00")
    return holding


# ==================== FastAPI App & Client Fixtures ====================

@pytest.fixture
def mock_analytics_service():
    return AsyncMock(spec=AnalyticsService)


@pytest.fixture
def mock_trading_service():
    return AsyncMock(spec=TradingService)


@pytest.fixture
def client(mock_analytics_service, mock_trading_service):
    """
    Synchronous test client with the analytics and trading services replaced
    by mocks, so no database is touched.
    """
    app.dependency_overrides[get_analytics_service] = lambda: mock_analytics_service
    app.dependency_overrides[get_trading_service] = lambda: mock_trading_service
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()
