"""Repository for Holdings data access."""
from typing import List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.db.models import Holding, Instrument
from portfolio_analytics.repositories.base import BaseRepository


class HoldingRepository(BaseRepository[Holding]):
    """Repository for Holdings with instrument joins."""

    def __init__(self, db: AsyncSession):
        super().__init__(Holding, db)

    async def get_with_instruments_by_portfolio_id(
        self,
        portfolio_id: int
    ) -> List[Tuple[Holding, Instrument]]:
        """
        Get all holdings of a portfolio together with their instruments.

        Rows are ordered by holding ID so metrics that depend on sequence
        (max drawdown) are stable between calls.
        """
        result = await self.db.execute(
            select(Holding, Instrument)
            .join(Instrument, Holding.instrument_id == Instrument.id)
            .where(Holding.portfolio_id == portfolio_id)
            .order_by(Holding.id)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def get_by_portfolio_and_instrument(
        self,
        portfolio_id: int,
        instrument_id: int
    ) -> Optional[Holding]:
        """Get a specific holding by portfolio and instrument."""
        result = await self.db.execute(
            select(Holding)
            .where(
                Holding.portfolio_id == portfolio_id,
                Holding.instrument_id == instrument_id
            )
        )
        return result.scalar_one_or_none()
