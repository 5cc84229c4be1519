"""Business logic service for buying and selling instruments."""
import logging
import time
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from portfolio_analytics.core.config import settings
from portfolio_analytics.core.constants import DecimalConstants, TransactionType
from portfolio_analytics.core.exceptions import (
    AnalyticsError,
    InactiveInstrumentError,
    InstrumentNotFoundError,
    PortfolioNotFoundError,
)
from portfolio_analytics.db.models import Holding, Instrument, Portfolio, Transaction
from portfolio_analytics.repositories.holding_repository import HoldingRepository
from portfolio_analytics.repositories.instrument_repository import InstrumentRepository
from portfolio_analytics.repositories.portfolio_repository import PortfolioRepository
from portfolio_analytics.repositories.transaction_repository import TransactionRepository
from portfolio_analytics.services.analytics_service import build_snapshot, to_instrument_quote
from portfolio_analytics.services.business_metrics_service import (
    BusinessMetricsService,
    get_business_metrics_service,
)
from portfolio_analytics.services.result_objects import ErrorCode, TradeResult
from portfolio_analytics.services.valuation import (
    PortfolioSnapshot,
    TradeOutcome,
    execute_buy,
    execute_sell,
)

logger = logging.getLogger(__name__)


class TradingService:
    """
    Service layer for trades.

    Every trade is validated against an in-memory snapshot first; rows are only
    touched once the valuation model has accepted it. Failures roll the session
    back and come back as an unsuccessful ``TradeResult``.
    """

    def __init__(
        self,
        db: AsyncSession,
        business_metrics: Optional[BusinessMetricsService] = None
    ):
        self.db = db
        self.portfolio_repository = PortfolioRepository(db)
        self.instrument_repository = InstrumentRepository(db)
        self.holding_repository = HoldingRepository(db)
        self.transaction_repository = TransactionRepository(db)
        self.business_metrics = business_metrics or get_business_metrics_service()

    async def buy_async(
        self,
        portfolio_id: int,
        instrument_id: int,
        quantity: Decimal,
        price: Decimal,
        fees: Decimal = DecimalConstants.ZERO,
        notes: Optional[str] = None
    ) -> TradeResult:
        """
        Buy units of an instrument into a portfolio.

        Args:
            portfolio_id: Portfolio to buy into
            instrument_id: Instrument to buy
            quantity: Units to buy (> 0)
            price: Unit price (> 0)
            fees: Trade fees recorded on the transaction (>= 0)
            notes: Optional free text for the audit trail

        Returns:
            TradeResult with the updated holding and cash balance
        """
        start_time = time.perf_counter()
        try:
            portfolio, snapshot = await self._load_async(portfolio_id)
            instrument = await self._get_instrument_async(instrument_id)
            if not instrument.active:
                raise InactiveInstrumentError(instrument.ticker)

            outcome = execute_buy(
                snapshot,
                to_instrument_quote(instrument),
                quantity,
                price,
                fees,
                max_holdings=settings.max_holdings_per_portfolio
            )

            existing = await self.holding_repository.get_by_portfolio_and_instrument(
                portfolio_id, instrument_id
            )
            if existing is None:
                await self.holding_repository.create(Holding(
                    portfolio_id=portfolio_id,
                    instrument_id=instrument_id,
                    quantity=outcome.holding.quantity,
                    average_cost=outcome.holding.average_cost
                ))
            else:
                existing.quantity = outcome.holding.quantity
                existing.average_cost = outcome.holding.average_cost

            result = await self._complete_trade_async(
                portfolio, instrument, outcome, TransactionType.BUY, price, notes
            )
            logger.info(
                f"Bought {outcome.quantity} {instrument.ticker} @ {price} for portfolio {portfolio_id}"
            )
        except Exception as e:
            result = await self._fail_async("buy", portfolio_id, e)

        self._record_trade("buy", portfolio_id, result, start_time)
        return result

    async def sell_async(
        self,
        portfolio_id: int,
        instrument_id: int,
        quantity: Decimal,
        price: Decimal,
        fees: Decimal = DecimalConstants.ZERO,
        notes: Optional[str] = None
    ) -> TradeResult:
        """Sell units of a held instrument; the holding row is deleted when fully sold."""
        start_time = time.perf_counter()
        try:
            portfolio, snapshot = await self._load_async(portfolio_id)
            instrument = await self._get_instrument_async(instrument_id)

            outcome = execute_sell(snapshot, instrument_id, quantity, price, fees)

            existing = await self.holding_repository.get_by_portfolio_and_instrument(
                portfolio_id, instrument_id
            )
            if outcome.position_closed:
                await self.holding_repository.delete(existing)
            else:
                existing.quantity = outcome.holding.quantity

            result = await self._complete_trade_async(
                portfolio, instrument, outcome, TransactionType.SELL, price, notes
            )
            logger.info(
                f"Sold {outcome.quantity} {instrument.ticker} @ {price} from portfolio {portfolio_id}"
            )
        except Exception as e:
            result = await self._fail_async("sell", portfolio_id, e)

        self._record_trade("sell", portfolio_id, result, start_time)
        return result

    async def _load_async(self, portfolio_id: int) -> Tuple[Portfolio, PortfolioSnapshot]:
        portfolio = await self.portfolio_repository.get_by_id(portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        rows = await self.holding_repository.get_with_instruments_by_portfolio_id(portfolio_id)
        return portfolio, build_snapshot(portfolio, rows)

    async def _get_instrument_async(self, instrument_id: int) -> Instrument:
        instrument = await self.instrument_repository.get_by_id(instrument_id)
        if instrument is None:
            raise InstrumentNotFoundError(instrument_id)
        return instrument

    async def _complete_trade_async(
        self,
        portfolio: Portfolio,
        instrument: Instrument,
        outcome: TradeOutcome,
        transaction_type: TransactionType,
        price: Decimal,
        notes: Optional[str]
    ) -> TradeResult:
        """Write the new cash balance and the audit record, then commit."""
        portfolio.available_cash = outcome.portfolio.available_cash
        portfolio.total_value = outcome.portfolio.total_value

        transaction = await self.transaction_repository.create(Transaction(
            portfolio_id=portfolio.id,
            instrument_id=instrument.id,
            transaction_type=transaction_type.value,
            quantity=outcome.quantity,
            price=price,
            total_amount=outcome.gross_amount,
            fees=outcome.fees,
            notes=notes
        ))
        await self.db.commit()

        return TradeResult(
            success=True,
            message=f"{transaction_type.value.capitalize()} of {outcome.quantity} {instrument.ticker} completed",
            transaction_id=transaction.id,
            holding=outcome.holding,
            position_closed=outcome.position_closed,
            gross_amount=outcome.gross_amount,
            fees=outcome.fees,
            available_cash=outcome.portfolio.available_cash,
            total_value=outcome.portfolio.total_value
        )

    async def _fail_async(self, side: str, portfolio_id: int, error: Exception) -> TradeResult:
        await self.db.rollback()

        if isinstance(error, AnalyticsError):
            logger.warning(f"Rejected {side} for portfolio {portfolio_id}: {error.message}")
            return TradeResult(
                success=False,
                message=error.message,
                errors=[error.message],
                error_code=error.error_code
            )

        logger.error(f"Error processing {side} for portfolio {portfolio_id}: {error}", exc_info=True)
        return TradeResult(
            success=False,
            message=f"Failed to process {side}",
            errors=[f"Failed to process {side}"],
            error_code=ErrorCode.INTERNAL_ERROR
        )

    def _record_trade(
        self,
        side: str,
        portfolio_id: int,
        result: TradeResult,
        start_time: float
    ) -> None:
        status = "success" if result.success else "error"
        self.business_metrics.increment_trades(side, portfolio_id, status)
        self.business_metrics.record_trade_duration(
            time.perf_counter() - start_time, side, portfolio_id, status
        )
