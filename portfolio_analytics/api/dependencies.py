"""FastAPI dependencies shared by the analytics and trading routes."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.db.session import get_db
from portfolio_analytics.services.analytics_service import AnalyticsService
from portfolio_analytics.services.trading_service import TradingService


def get_analytics_service(db: AsyncSession = Depends(get_db)) -> AnalyticsService:
    """Dependency to get AnalyticsService instance."""
    return AnalyticsService(db)


def get_trading_service(db: AsyncSession = Depends(get_db)) -> TradingService:
    """Dependency to get TradingService instance."""
    return TradingService(db)
