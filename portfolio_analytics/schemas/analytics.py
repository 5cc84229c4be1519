"""Pydantic schemas for metrics, Monte Carlo and backtest API responses."""
from dataclasses import asdict
from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from portfolio_analytics.services.backtest_service import BacktestStrategy
from portfolio_analytics.services.result_objects import (
    BacktestResult,
    MetricsSnapshot,
    SimulationResult,
)


class PortfolioMetricsResponse(BaseModel):
    portfolio_id: Optional[int] = Field(None, alias="portfolioId")
    portfolio_name: Optional[str] = Field(None, alias="portfolioName")
    total_value: Decimal = Field(alias="totalValue")
    total_cost: Decimal = Field(alias="totalCost")
    total_profit_loss: Decimal = Field(alias="totalProfitLoss")
    total_return: Decimal = Field(alias="totalReturn")
    sharpe_ratio: Decimal = Field(alias="sharpeRatio")
    volatility: Decimal
    max_drawdown: Decimal = Field(alias="maxDrawdown")
    turnover_rate: Decimal = Field(alias="turnoverRate")
    win_rate: Decimal = Field(alias="winRate")
    total_holdings: int = Field(alias="totalHoldings")
    profitable_holdings: int = Field(alias="profitableHoldings")
    losing_holdings: int = Field(alias="losingHoldings")
    best_performer: Decimal = Field(alias="bestPerformer")
    worst_performer: Decimal = Field(alias="worstPerformer")
    risk_free_rate: Decimal = Field(alias="riskFreeRate")
    calculated_at: datetime = Field(alias="calculatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: MetricsSnapshot) -> "PortfolioMetricsResponse":
        return cls.model_validate(asdict(result))


class MetricValueResponse(BaseModel):
    """A single metric value."""
    portfolio_id: int = Field(alias="portfolioId")
    metric: str
    value: Decimal
    risk_free_rate: Optional[Decimal] = Field(None, alias="riskFreeRate")

    model_config = ConfigDict(populate_by_name=True)


class MonteCarloSimulationResponse(BaseModel):
    portfolio_id: Optional[int] = Field(None, alias="portfolioId")
    iterations: int
    days_projected: int = Field(alias="daysProjected")
    seed: Optional[int] = None
    initial_value: Decimal = Field(alias="initialValue")
    expected_value: Decimal = Field(alias="expectedValue")
    median_value: Decimal = Field(alias="medianValue")
    best_case: Decimal = Field(alias="bestCase")
    worst_case: Decimal = Field(alias="worstCase")
    percentile_90_high: Decimal = Field(alias="percentile90High")
    percentile_90_low: Decimal = Field(alias="percentile90Low")
    percentile_50_high: Decimal = Field(alias="percentile50High")
    percentile_50_low: Decimal = Field(alias="percentile50Low")
    probability_of_loss: Decimal = Field(alias="probabilityOfLoss")
    probability_of_doubling: Decimal = Field(alias="probabilityOfDoubling")
    historical_return: Decimal = Field(alias="historicalReturn")
    historical_volatility: Decimal = Field(alias="historicalVolatility")
    simulation_results: list[Decimal] = Field(alias="simulationResults")
    calculated_at: datetime = Field(alias="calculatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: SimulationResult) -> "MonteCarloSimulationResponse":
        return cls.model_validate(asdict(result))


class BacktestStrategyRequest(BaseModel):
    """
    Strategy parameters for a backtest.

    Thresholds, stop loss and take profit are compared against holding P&L
    percentages; ``max_position_size`` is the fraction of cash spent per buy.
    """
    strategy_name: str = Field(alias="strategyName", min_length=3, max_length=100)
    initial_capital: Decimal = Field(alias="initialCapital", ge=Decimal("0.01"), max_digits=12, decimal_places=2)
    buy_threshold: Decimal = Field(alias="buyThreshold", ge=-1, le=0)
    sell_threshold: Decimal = Field(alias="sellThreshold", ge=0, le=10)
    max_position_size: Decimal = Field(alias="maxPositionSize", ge=Decimal("0.01"), le=1)
    stop_loss: Optional[Decimal] = Field(None, alias="stopLoss", ge=-1, le=0)
    take_profit: Optional[Decimal] = Field(None, alias="takeProfit", ge=0, le=10)
    rebalance_days: Optional[int] = Field(None, alias="rebalanceDays", ge=0, le=365)

    model_config = ConfigDict(populate_by_name=True)

    def to_strategy(self) -> BacktestStrategy:
        return BacktestStrategy(**self.model_dump())


class DailyValueDto(BaseModel):
    value_date: date = Field(alias="date")
    value: Decimal

    model_config = ConfigDict(populate_by_name=True)


class BacktestResultResponse(BaseModel):
    strategy_name: str = Field(alias="strategyName")
    portfolio_id: Optional[int] = Field(None, alias="portfolioId")
    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")
    total_days: int = Field(alias="totalDays")
    buy_threshold: Decimal = Field(alias="buyThreshold")
    sell_threshold: Decimal = Field(alias="sellThreshold")
    max_position_size: Decimal = Field(alias="maxPositionSize")
    stop_loss: Optional[Decimal] = Field(None, alias="stopLoss")
    take_profit: Optional[Decimal] = Field(None, alias="takeProfit")
    initial_capital: Decimal = Field(alias="initialCapital")
    final_capital: Decimal = Field(alias="finalCapital")
    total_return: Decimal = Field(alias="totalReturn")
    total_return_percentage: Decimal = Field(alias="totalReturnPercentage")
    sharpe_ratio: Decimal = Field(alias="sharpeRatio")
    max_drawdown: Decimal = Field(alias="maxDrawdown")
    volatility: Decimal
    total_trades: int = Field(alias="totalTrades")
    winning_trades: int = Field(alias="winningTrades")
    losing_trades: int = Field(alias="losingTrades")
    win_rate: Decimal = Field(alias="winRate")
    avg_win: Decimal = Field(alias="avgWin")
    avg_loss: Decimal = Field(alias="avgLoss")
    profit_factor: Decimal = Field(alias="profitFactor")
    buy_and_hold_return: Decimal = Field(alias="buyAndHoldReturn")
    strategy_vs_buy_and_hold: Decimal = Field(alias="strategyVsBuyAndHold")
    portfolio_history: list[DailyValueDto] = Field(alias="portfolioHistory")
    calculated_at: datetime = Field(alias="calculatedAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_result(cls, result: BacktestResult) -> "BacktestResultResponse":
        return cls.model_validate(asdict(result))
