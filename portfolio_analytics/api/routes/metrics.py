from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query

from portfolio_analytics.api.dependencies import get_analytics_service
from portfolio_analytics.schemas.analytics import MetricValueResponse, PortfolioMetricsResponse
from portfolio_analytics.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/api/portfolios/{portfolio_id}/metrics", tags=["metrics"])


@router.get("", response_model=PortfolioMetricsResponse)
async def get_portfolio_metrics(
    portfolio_id: int,
    risk_free_rate: Optional[Decimal] = Query(None, alias="riskFreeRate", ge=0, le=1),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Calculate all risk/performance metrics for a portfolio.

    Responses:
        200: Metrics calculated
        404: Portfolio not found
    """
    result = await service.get_metrics_async(portfolio_id, risk_free_rate)
    return PortfolioMetricsResponse.from_result(result)


@router.get("/sharpe-ratio", response_model=MetricValueResponse)
async def get_sharpe_ratio(
    portfolio_id: int,
    risk_free_rate: Decimal = Query(Decimal("0.02"), alias="riskFreeRate", ge=0, le=1),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """Sharpe ratio: (total return - risk-free rate) / volatility."""
    value = await service.get_sharpe_ratio_async(portfolio_id, risk_free_rate)
    return MetricValueResponse(
        portfolio_id=portfolio_id,
        metric="sharpeRatio",
        value=value,
        risk_free_rate=risk_free_rate
    )


@router.get("/volatility", response_model=MetricValueResponse)
async def get_volatility(
    portfolio_id: int,
    service: AnalyticsService = Depends(get_analytics_service)
):
    value = await service.get_volatility_async(portfolio_id)
    return MetricValueResponse(portfolio_id=portfolio_id, metric="volatility", value=value)


@router.get("/max-drawdown", response_model=MetricValueResponse)
async def get_max_drawdown(
    portfolio_id: int,
    service: AnalyticsService = Depends(get_analytics_service)
):
    value = await service.get_max_drawdown_async(portfolio_id)
    return MetricValueResponse(portfolio_id=portfolio_id, metric="maxDrawdown", value=value)


@router.get("/total-return", response_model=MetricValueResponse)
async def get_total_return(
    portfolio_id: int,
    service: AnalyticsService = Depends(get_analytics_service)
):
    value = await service.get_total_return_async(portfolio_id)
    return MetricValueResponse(portfolio_id=portfolio_id, metric="totalReturn", value=value)


@router.get("/turnover-rate", response_model=MetricValueResponse)
async def get_turnover_rate(
    portfolio_id: int,
    service: AnalyticsService = Depends(get_analytics_service)
):
    value = await service.get_turnover_rate_async(portfolio_id)
    return MetricValueResponse(portfolio_id=portfolio_id, metric="turnoverRate", value=value)
