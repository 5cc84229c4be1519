"""Transaction model: audit trail of buys, sells and cash movements."""
from decimal import Decimal
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from portfolio_analytics.db.models.portfolio import _utcnow
from portfolio_analytics.db.session import Base


class Transaction(Base):
    """
    Immutable record of a portfolio transaction.

    ``instrument_id``, ``quantity`` and ``price`` are null for cash-only
    transactions (deposit, withdrawal, dividend).
    """
    __tablename__ = "transactions"
    __table_args__ = {'schema': 'app'}

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Foreign Keys
    portfolio_id = Column(Integer, ForeignKey("app.portfolios.id"), nullable=False, index=True)
    instrument_id = Column(Integer, ForeignKey("app.instruments.id"), nullable=True, index=True)

    # Transaction Values
    transaction_type = Column(String(20), nullable=False, index=True)
    quantity = Column(Numeric(20, 8), nullable=True)
    price = Column(Numeric(15, 2), nullable=True)
    total_amount = Column(Numeric(15, 2), nullable=False)
    fees = Column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    notes = Column(String(500), nullable=True)

    # Timestamps
    transaction_date = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="transactions")

    def __repr__(self) -> str:
        return (
            f"<Transaction(id={self.id}, type={self.transaction_type}, "
            f"total_amount={self.total_amount})>"
        )
