"""Pydantic schemas for trade API requests and responses."""
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from portfolio_analytics.services.result_objects import TradeResult


class TradeApiRequest(BaseModel):
    instrument_id: int = Field(alias="instrumentId")
    quantity: Decimal = Field(gt=0, decimal_places=8)
    price: Decimal = Field(gt=0)
    fees: Decimal = Field(default=Decimal("0"), ge=0)
    notes: Optional[str] = Field(None, max_length=500)

    model_config = ConfigDict(populate_by_name=True)


class HoldingDto(BaseModel):
    instrument_id: int = Field(alias="instrumentId")
    ticker: str
    quantity: Decimal
    average_cost: Decimal = Field(alias="averageCost")
    cost_basis: Decimal = Field(alias="costBasis")
    current_value: Decimal = Field(alias="currentValue")
    unrealized_profit_loss: Decimal = Field(alias="unrealizedProfitLoss")
    pnl_percent: Decimal = Field(alias="pnlPercent")

    model_config = ConfigDict(populate_by_name=True)


class TradeApiResponse(BaseModel):
    success: bool
    message: str
    errors: Optional[list[str]] = None
    transaction_id: Optional[int] = Field(None, alias="transactionId")
    holding: Optional[HoldingDto] = None
    position_closed: bool = Field(False, alias="positionClosed")
    gross_amount: Decimal = Field(alias="grossAmount")
    fees: Decimal
    available_cash: Optional[Decimal] = Field(None, alias="availableCash")
    total_value: Optional[Decimal] = Field(None, alias="totalValue")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: TradeResult) -> "TradeApiResponse":
        holding = None
        if result.holding is not None:
            h = result.holding
            holding = HoldingDto(
                instrument_id=h.instrument_id,
                ticker=h.ticker,
                quantity=h.quantity,
                average_cost=h.average_cost,
                cost_basis=h.cost_basis,
                current_value=h.current_value,
                unrealized_profit_loss=h.unrealized_profit_loss,
                pnl_percent=h.pnl_percent
            )
        return cls(
            success=result.success,
            message=result.message,
            errors=result.errors or None,
            transaction_id=result.transaction_id,
            holding=holding,
            position_closed=result.position_closed,
            gross_amount=result.gross_amount,
            fees=result.fees,
            available_cash=result.available_cash,
            total_value=result.total_value
        )
