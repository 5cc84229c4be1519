from typing import Optional
from fastapi import APIRouter, Depends, Query

from portfolio_analytics.api.dependencies import get_analytics_service
from portfolio_analytics.core.config import settings
from portfolio_analytics.schemas.analytics import MonteCarloSimulationResponse
from portfolio_analytics.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/api/portfolios/{portfolio_id}/monte-carlo", tags=["monte-carlo"])


@router.get("/simulate", response_model=MonteCarloSimulationResponse)
async def run_simulation(
    portfolio_id: int,
    iterations: int = Query(
        settings.monte_carlo_default_iterations, ge=1, le=settings.monte_carlo_max_iterations
    ),
    days: int = Query(settings.monte_carlo_default_days, ge=1, le=settings.monte_carlo_max_days),
    seed: Optional[int] = Query(None, ge=0),
    service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Project the portfolio value with a Monte Carlo simulation.

    Args:
        portfolio_id: Portfolio to project
        iterations: Number of simulated paths
        days: Trading days per path
        seed: Optional seed; the same seed reproduces the same result

    Responses:
        200: Simulation completed
        404: Portfolio not found
        422: Portfolio has no holdings, or invalid query parameters
    """
    result = await service.run_simulation_async(portfolio_id, iterations, days, seed)
    return MonteCarloSimulationResponse.from_result(result)
