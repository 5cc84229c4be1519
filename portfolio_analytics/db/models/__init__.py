"""Models module initialization."""
from portfolio_analytics.db.models.holding import Holding
from portfolio_analytics.db.models.instrument import Instrument
from portfolio_analytics.db.models.portfolio import Portfolio
from portfolio_analytics.db.models.transaction import Transaction

__all__ = [
    "Holding",
    "Instrument",
    "Portfolio",
    "Transaction",
]
