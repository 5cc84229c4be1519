"""Portfolio model representing investment portfolios in the database."""
from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, Numeric
from sqlalchemy.orm import relationship

from portfolio_analytics.db.session import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Portfolio(Base):
    """
    Portfolio aggregating holdings and a cash balance.

    ``total_value`` is a stored convenience column refreshed after every
    trade; analytics always recompute it from holdings and cash.
    """
    __tablename__ = "portfolios"
    __table_args__ = {'schema': 'app'}

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Portfolio Details
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)

    # Balances
    total_value = Column(Numeric(15, 2), nullable=False, default=Decimal("0"))
    available_cash = Column(Numeric(15, 2), nullable=False, default=Decimal("0"))

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    # Relationships
    holdings = relationship("Holding", back_populates="portfolio", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="portfolio", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Portfolio(id={self.id}, name={self.name})>"
