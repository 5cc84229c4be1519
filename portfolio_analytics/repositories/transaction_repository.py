"""Repository for Transaction data access."""
from decimal import Decimal
from typing import Iterable
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.core.constants import TransactionType
from portfolio_analytics.db.models import Transaction
from portfolio_analytics.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for the transaction audit trail."""

    def __init__(self, db: AsyncSession):
        super().__init__(Transaction, db)

    async def calculate_total_volume(
        self,
        portfolio_id: int,
        types: Iterable[TransactionType]
    ) -> Decimal:
        """Sum of total amounts for the given transaction types (zero if none)."""
        type_values = [t.value for t in types]
        result = await self.db.execute(
            select(func.sum(Transaction.total_amount))
            .where(
                Transaction.portfolio_id == portfolio_id,
                Transaction.transaction_type.in_(type_values)
            )
        )
        total = result.scalar_one_or_none()
        return total if total is not None else Decimal("0")

