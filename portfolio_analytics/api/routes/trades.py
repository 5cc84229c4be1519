import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from portfolio_analytics.api.dependencies import get_trading_service
from portfolio_analytics.api.errors import status_code_for
from portfolio_analytics.schemas.trade import TradeApiRequest, TradeApiResponse
from portfolio_analytics.services.result_objects import TradeResult
from portfolio_analytics.services.trading_service import TradingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/portfolios/{portfolio_id}/trades", tags=["trades"])


def _to_response(result: TradeResult):
    response = TradeApiResponse.from_result(result)
    if not result.success:
        content = response.model_dump(mode="json", by_alias=True)
        content["errorCode"] = result.error_code.value
        return JSONResponse(status_code=status_code_for(result.error_code), content=content)
    return response


@router.post("/buy", response_model=TradeApiResponse, status_code=status.HTTP_201_CREATED)
async def buy(
    portfolio_id: int,
    request: TradeApiRequest,
    service: TradingService = Depends(get_trading_service)
):
    """
    Buy units of an instrument.

    Responses:
        201: Trade executed
        404: Portfolio or instrument not found
        409: Insufficient cash or holdings limit reached
        422: Instrument inactive
    """
    logger.info(f"Buy request: portfolio={portfolio_id}, instrument={request.instrument_id}")
    result = await service.buy_async(
        portfolio_id,
        request.instrument_id,
        request.quantity,
        request.price,
        request.fees,
        request.notes
    )
    return _to_response(result)


@router.post("/sell", response_model=TradeApiResponse, status_code=status.HTTP_201_CREATED)
async def sell(
    portfolio_id: int,
    request: TradeApiRequest,
    service: TradingService = Depends(get_trading_service)
):
    """
    Sell units of a held instrument.

    Responses:
        201: Trade executed
        404: Portfolio, instrument or holding not found
        409: Insufficient quantity
    """
    logger.info(f"Sell request: portfolio={portfolio_id}, instrument={request.instrument_id}")
    result = await service.sell_async(
        portfolio_id,
        request.instrument_id,
        request.quantity,
        request.price,
        request.fees,
        request.notes
    )
    return _to_response(result)
