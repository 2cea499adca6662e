from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Mapping

from divitrack.core.schemas import DividendMetadata, Holding
from divitrack.utils.quant_models import PortfolioSummary, ProjectionPoint, ScenarioRates

PROJECTION_YEARS = 20
DEFAULT_DIVIDEND_GROWTH = 0.07
SCENARIO_RATES = ScenarioRates(bear=0.01, base=0.05, bull=0.09)


def _d(x) -> Decimal:
    if isinstance(x, Decimal):
        return x
    # exact binary value, so a float stored just under a half rounds down
    return Decimal(x)

def _round_money(x: float) -> int:
    # Half-up to whole currency units; state between years keeps full precision.
    return int(_d(x).to_integral_value(rounding=ROUND_HALF_UP))

def _round_shares(x: float) -> float:
    return float(_d(x).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))

def average_growth_rate(metadata: Mapping[str, DividendMetadata]) -> float:
    """Mean dividend growth of every cached ticker as a fraction (7% when nothing is cached)."""
    entries = list(metadata.values())
    if not entries:
        return DEFAULT_DIVIDEND_GROWTH
    return sum(m.growth_rate_pct for m in entries) / len(entries) / 100

def compute_portfolio_summary(
    holdings: Iterable[Holding],
    metadata: Mapping[str, DividendMetadata],
) -> PortfolioSummary:
    total_value = 0.0
    annual_income = 0.0
    total_shares = 0.0

    for h in holdings:
        total_shares += h.quantity
        info = metadata.get(h.ticker)
        if info is None:
            continue
        total_value += h.quantity * info.current_price
        annual_income += h.quantity * info.annual_dividend_per_share

    weighted_yield = (annual_income / total_value) * 100 if total_value > 0 else 0.0

    return PortfolioSummary(
        total_value=total_value,
        annual_income=annual_income,
        average_yield_pct=weighted_yield,
        yield_on_cost_pct=weighted_yield,
        total_shares=total_shares,
    )

def compute_dividend_projection(
    summary: PortfolioSummary,
    metadata: Mapping[str, DividendMetadata],
) -> List[ProjectionPoint]:
    """Simulate dividend reinvestment year by year for years 0..20.

    Every year's dividends buy shares at the base-case price, and the bear and
    bull tracks value that same share count. Dividend per share grows at the
    mean cached growth rate; prices grow at the fixed scenario rates.
    """
    initial_investment = summary.total_value if summary.total_value > 0 else 1.0
    avg_growth = average_growth_rate(metadata)

    share_floor = max(summary.total_shares, 1.0)
    initial_avg_price = summary.total_value / share_floor
    initial_div_per_share = summary.annual_income / share_floor

    shares = summary.total_shares
    div_per_share = initial_div_per_share

    price_base = initial_avg_price
    price_bear = initial_avg_price
    price_bull = initial_avg_price

    cumulative_dividends = 0.0
    points: List[ProjectionPoint] = []

    for year in range(PROJECTION_YEARS + 1):
        income = shares * div_per_share

        points.append(
            ProjectionPoint(
                year=year,
                base_balance=_round_money(shares * price_base),
                bear_balance=_round_money(shares * price_bear),
                bull_balance=_round_money(shares * price_bull),
                annual_income=_round_money(income),
                cumulative_dividends=_round_money(cumulative_dividends),
                yield_on_cost_pct=(income / initial_investment) * 100,
                shares=_round_shares(shares),
            )
        )

        cumulative_dividends += income
        if price_base > 0:
            shares += income / price_base

        div_per_share *= 1 + avg_growth
        price_base *= 1 + SCENARIO_RATES.base
        price_bear *= 1 + SCENARIO_RATES.bear
        price_bull *= 1 + SCENARIO_RATES.bull

    return points
