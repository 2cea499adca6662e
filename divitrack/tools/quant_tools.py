from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from pydantic import TypeAdapter

from divitrack.core.schemas import DividendMetadata, Holding
from divitrack.utils.cache import MetadataCache
from divitrack.utils.quant_engine import compute_dividend_projection, compute_portfolio_summary
from divitrack.utils.quant_models import ProjectionPoint

_holding_list = TypeAdapter(List[Holding])

PROJECTION_COLUMNS = {
    "year": "Year",
    "bear_balance": "Bear",
    "base_balance": "Base",
    "bull_balance": "Bull",
    "annual_income": "Income",
    "cumulative_dividends": "Cumulative Dividends",
    "yield_on_cost_pct": "YoC (%)",
    "shares": "Shares",
}


def _load(holdings: Sequence[Dict[str, Any]], metadata: Optional[Dict[str, Dict[str, Any]]]):
    hs = _holding_list.validate_python(list(holdings or []))
    cache = MetadataCache({t: DividendMetadata.model_validate(m) for t, m in (metadata or {}).items()})
    return hs, cache.snapshot()

def tool_compute_portfolio_summary(
    holdings: Sequence[Dict[str, Any]],
    metadata: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Summary from persisted-format payloads (holding list + ticker->metadata map)."""
    hs, snapshot = _load(holdings, metadata)
    return compute_portfolio_summary(hs, snapshot).model_dump()

def tool_compute_projection(
    holdings: Sequence[Dict[str, Any]],
    metadata: Optional[Dict[str, Dict[str, Any]]] = None,
) -> List[Dict[str, Any]]:
    hs, snapshot = _load(holdings, metadata)
    summary = compute_portfolio_summary(hs, snapshot)
    return [p.model_dump() for p in compute_dividend_projection(summary, snapshot)]

def projection_frame(points: Sequence[ProjectionPoint]) -> pd.DataFrame:
    df = pd.DataFrame([p.model_dump() for p in points], columns=list(PROJECTION_COLUMNS))
    df["yield_on_cost_pct"] = df["yield_on_cost_pct"].round(2)
    return df.rename(columns=PROJECTION_COLUMNS)
