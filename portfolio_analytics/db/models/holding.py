"""Holding model representing portfolio holdings in the database."""
from sqlalchemy import Column, Integer, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from portfolio_analytics.db.models.portfolio import _utcnow
from portfolio_analytics.db.session import Base


class Holding(Base):
    """
    Holding of one instrument within one portfolio.

    Quantity uses 8 fractional digits for fractional units; average cost is
    the weighted-average unit cost. Rows are deleted when quantity reaches zero.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("portfolio_id", "instrument_id", name="uk_holdings_portfolio_instrument"),
        {'schema': 'app'},
    )

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Foreign Keys
    portfolio_id = Column(Integer, ForeignKey("app.portfolios.id"), nullable=False, index=True)
    instrument_id = Column(Integer, ForeignKey("app.instruments.id"), nullable=False, index=True)

    # Holding Values
    quantity = Column(Numeric(20, 8), nullable=False)
    average_cost = Column(Numeric(15, 2), nullable=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    # Relationships
    portfolio = relationship("Portfolio", back_populates="holdings")
    instrument = relationship("Instrument")

    def __repr__(self) -> str:
        return f"<Holding(id={self.id}, instrument_id={self.instrument_id}, quantity={self.quantity})>"
