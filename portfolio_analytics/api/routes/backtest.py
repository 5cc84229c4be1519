from fastapi import APIRouter, Depends, Query

from portfolio_analytics.api.dependencies import get_analytics_service
from portfolio_analytics.core.config import settings
from portfolio_analytics.schemas.analytics import BacktestResultResponse, BacktestStrategyRequest
from portfolio_analytics.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/api/portfolios/{portfolio_id}/backtest", tags=["backtest"])


@router.post("", response_model=BacktestResultResponse)
async def run_backtest(
    portfolio_id: int,
    request: BacktestStrategyRequest,
    days: int = Query(settings.backtest_default_days, ge=0, le=settings.backtest_max_days),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Replay a threshold strategy and compare it with buy-and-hold.

    Responses:
        200: Backtest completed
        404: Portfolio not found
        422: Portfolio has no holdings, or invalid strategy
    """
    result = await service.run_backtest_async(portfolio_id, request.to_strategy(), days)
    return BacktestResultResponse.from_result(result)
