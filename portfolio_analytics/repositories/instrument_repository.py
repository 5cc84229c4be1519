"""Repository for Instrument data access."""
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.db.models import Instrument
from portfolio_analytics.repositories.base import BaseRepository


class InstrumentRepository(BaseRepository[Instrument]):
    """Repository for instruments."""

    def __init__(self, db: AsyncSession):
        super().__init__(Instrument, db)
