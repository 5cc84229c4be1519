"""Repository for Portfolio data access."""
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.db.models import Portfolio
from portfolio_analytics.repositories.base import BaseRepository


class PortfolioRepository(BaseRepository[Portfolio]):
    """Repository for portfolios."""

    def __init__(self, db: AsyncSession):
        super().__init__(Portfolio, db)
