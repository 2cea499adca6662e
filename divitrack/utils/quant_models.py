from __future__ import annotations

from pydantic import BaseModel, Field


class PortfolioSummary(BaseModel):
    total_value: float = 0.0
    annual_income: float = 0.0
    average_yield_pct: float = 0.0
    yield_on_cost_pct: float = Field(0.0, description="Currently identical to average_yield_pct (current value basis).")
    total_shares: float = 0.0


class ScenarioRates(BaseModel):
    """Fixed annual price growth per scenario track."""

    bear: float = 0.01
    base: float = 0.05
    bull: float = 0.09


class ProjectionPoint(BaseModel):
    year: int
    base_balance: int
    bear_balance: int
    bull_balance: int
    annual_income: int
    cumulative_dividends: int
    yield_on_cost_pct: float
    shares: float = Field(..., description="Share count rounded to 2 decimals for display.")
