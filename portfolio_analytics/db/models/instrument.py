"""Instrument model representing financial instruments in the database."""
from sqlalchemy import Boolean, Column, Integer, String, DateTime, Numeric

from portfolio_analytics.core.constants import AssetType
from portfolio_analytics.db.models.portfolio import _utcnow
from portfolio_analytics.db.session import Base


class Instrument(Base):
    """Instrument model representing stocks, ETFs, crypto, etc."""
    __tablename__ = "instruments"
    __table_args__ = {'schema': 'app'}

    # Primary Key
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Instrument Details
    ticker = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    asset_type = Column(String(20), nullable=False, default=AssetType.STOCK.value)
    currency_code = Column(String(3), nullable=False, default="USD")
    exchange = Column(String(50), nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    # Latest market price; null until a price has been fetched
    current_price = Column(Numeric(15, 2), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Instrument(id={self.id}, ticker={self.ticker}, name={self.name})>"
