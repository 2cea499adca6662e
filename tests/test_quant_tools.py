import pytest

from divitrack.tools.quant_tools import projection_frame, tool_compute_portfolio_summary, tool_compute_projection
from divitrack.utils.quant_engine import compute_dividend_projection
from divitrack.utils.quant_models import PortfolioSummary

HOLDINGS = [{"id": "abc123", "ticker": "x", "quantity": 100, "purchaseDate": "2024-01-02"}]
METADATA = {
    "x": {
        "ticker": "X",
        "name": "X Corp",
        "currentPrice": 10,
        "yield": 10,
        "annualDividend": 1,
        "growthRate": 5,
        "payoutFrequency": "Annually",
        "lastUpdated": "2025-01-01T00:00:00Z",
        "sources": [],
    }
}


def test_tool_summary_from_blob_payloads():
    out = tool_compute_portfolio_summary(HOLDINGS, METADATA)
    assert out["total_value"] == pytest.approx(1000)
    assert out["average_yield_pct"] == pytest.approx(10)
    assert out["total_shares"] == 100


def test_tool_projection_from_blob_payloads():
    out = tool_compute_projection(HOLDINGS, METADATA)
    assert len(out) == 21
    assert out[1]["base_balance"] == 1155
    assert out[1]["annual_income"] == 116


def test_tool_summary_without_metadata():
    out = tool_compute_portfolio_summary(HOLDINGS)
    assert out["total_value"] == 0
    assert out["total_shares"] == 100


def test_projection_frame_columns():
    summary = PortfolioSummary(total_value=1000, annual_income=100, average_yield_pct=10, yield_on_cost_pct=10, total_shares=100)
    df = projection_frame(compute_dividend_projection(summary, {}))
    assert list(df.columns) == ["Year", "Bear", "Base", "Bull", "Income", "Cumulative Dividends", "YoC (%)", "Shares"]
    assert len(df) == 21
    assert df["Year"].tolist() == list(range(21))
    assert df.loc[0, "YoC (%)"] == pytest.approx(10)
