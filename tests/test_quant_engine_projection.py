from datetime import date

import pytest

from divitrack.core.schemas import DividendMetadata, Holding
from divitrack.utils.quant_engine import compute_dividend_projection, compute_portfolio_summary
from divitrack.utils.quant_models import PortfolioSummary


def _meta(ticker, price, dividend, growth):
    return DividendMetadata(
        ticker=ticker,
        name=ticker,
        current_price=price,
        yield_pct=dividend / price * 100,
        annual_dividend_per_share=dividend,
        growth_rate_pct=growth,
        payout_frequency="Quarterly",
    )


def _project(holdings, meta):
    summary = compute_portfolio_summary(holdings, meta)
    return compute_dividend_projection(summary, meta)


def test_single_holding_first_two_years():
    meta = {"X": _meta("X", 10, 1, 5)}
    points = _project([Holding(ticker="X", quantity=100, purchase_date=date(2024, 1, 2))], meta)

    y0, y1 = points[0], points[1]
    assert y0.year == 0
    assert y0.annual_income == 100
    assert y0.base_balance == 1000
    assert y0.bear_balance == 1000
    assert y0.bull_balance == 1000
    assert y0.cumulative_dividends == 0
    assert y0.yield_on_cost_pct == pytest.approx(10)
    assert y0.shares == 100

    assert y1.shares == 110
    assert y1.annual_income == 116
    assert y1.base_balance == 1155
    assert y1.bear_balance == round(110 * 10.1)
    assert y1.bull_balance == round(110 * 10.9)
    assert y1.cumulative_dividends == 100
    assert y1.yield_on_cost_pct == pytest.approx(11.55)


def test_always_21_points_in_year_order():
    meta = {"A": _meta("A", 40, 1.2, 6), "B": _meta("B", 80, 3, 3)}
    holdings = [
        Holding(ticker="A", quantity=12, purchase_date="2023-03-01"),
        Holding(ticker="B", quantity=7.5, purchase_date="2022-08-15"),
    ]
    points = _project(holdings, meta)
    assert len(points) == 21
    assert [p.year for p in points] == list(range(21))


def test_scenarios_ordered_and_dividends_accumulate():
    meta = {"A": _meta("A", 40, 1.2, 6), "B": _meta("B", 80, 3, 3)}
    holdings = [
        Holding(ticker="A", quantity=12, purchase_date="2023-03-01"),
        Holding(ticker="B", quantity=7.5, purchase_date="2022-08-15"),
    ]
    points = _project(holdings, meta)

    for p in points:
        assert p.bear_balance <= p.base_balance <= p.bull_balance

    cumulative = [p.cumulative_dividends for p in points]
    assert cumulative == sorted(cumulative)
    assert points[-1].bull_balance > points[-1].base_balance > points[-1].bear_balance


def test_empty_portfolio_projects_zeros():
    points = compute_dividend_projection(PortfolioSummary(), {})
    assert len(points) == 21
    for p in points:
        assert p.base_balance == p.bear_balance == p.bull_balance == 0
        assert p.annual_income == 0
        assert p.cumulative_dividends == 0
        assert p.yield_on_cost_pct == 0
        assert p.shares == 0


def test_projection_is_deterministic():
    meta = {"A": _meta("A", 33.3, 1.11, 7.7)}
    holdings = [Holding(ticker="A", quantity=17, purchase_date="2021-01-01")]
    assert _project(holdings, meta) == _project(holdings, meta)


def test_default_growth_when_cache_is_empty():
    summary = PortfolioSummary(total_value=1000, annual_income=100, average_yield_pct=10, yield_on_cost_pct=10, total_shares=100)
    points = compute_dividend_projection(summary, {})
    # 110 shares * 1.07 dividend per share
    assert points[1].annual_income == 118


def test_growth_averages_every_cached_ticker():
    meta = {"X": _meta("X", 10, 1, 5), "Y": _meta("Y", 20, 1, 15)}
    holdings = [Holding(ticker="X", quantity=100, purchase_date="2024-01-02")]
    points = _project(holdings, meta)
    # Y is cached but not held; it still moves the mean growth to 10%
    assert points[1].annual_income == 121


def test_reinvestment_uses_base_price_for_every_track():
    meta = {"X": _meta("X", 10, 1, 0)}
    points = _project([Holding(ticker="X", quantity=100, purchase_date="2024-01-02")], meta)
    y2 = points[2]
    # shares after year 1: 110 + 110 / 10.5
    shares = 110 + 110 / 10.5
    assert y2.shares == pytest.approx(round(shares, 2))
    assert y2.bear_balance == round(shares * 10 * 1.01 ** 2)
    assert y2.bull_balance == round(shares * 10 * 1.09 ** 2)


def test_shares_rounded_only_for_display():
    meta = {"X": _meta("X", 3, 0.1, 2)}
    points = _project([Holding(ticker="X", quantity=1, purchase_date="2024-01-02")], meta)
    for p in points:
        assert p.shares == round(p.shares, 2)
    assert points[1].shares == pytest.approx(1.03)
    # 1.0333... + 1.0333... * 0.102 / 3.15 = 1.0668; carrying 1.03 forward would give 1.06
    assert points[2].shares == pytest.approx(1.07)


@pytest.mark.parametrize("quantity,expected", [(1.005, 1.0), (0.125, 0.13), (2.675, 2.67)])
def test_shares_round_the_stored_float(quantity, expected):
    # 1.005 and 2.675 are stored just below the half cent; 0.125 is exact and rounds up
    points = _project([Holding(ticker="X", quantity=quantity, purchase_date=date(2024, 1, 2))], {})
    assert points[0].shares == expected
