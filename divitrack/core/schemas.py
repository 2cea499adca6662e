from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PayoutFrequency = Literal["Monthly", "Quarterly", "Annually"]


def normalize_ticker(ticker: str) -> str:
    return (ticker or "").strip().upper()


def new_holding_id() -> str:
    return uuid.uuid4().hex[:12]


# -------------------------
# Holdings
# -------------------------

class Holding(BaseModel):
    """One user-entered position. Never mutated; removed by id."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=new_holding_id)
    ticker: str
    quantity: float = Field(..., gt=0)
    purchase_date: date = Field(..., alias="purchaseDate")

    @field_validator("ticker")
    @classmethod
    def _ticker_upper(cls, v: str) -> str:
        sym = normalize_ticker(v)
        if not sym:
            raise ValueError("ticker is empty")
        return sym


# -------------------------
# Dividend metadata
# -------------------------

class Source(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = "Source"
    uri: str = Field(..., min_length=1)


def dedupe_sources(sources: List[Source]) -> List[Source]:
    seen = set()
    out: List[Source] = []
    for s in sources:
        if s.uri in seen:
            continue
        seen.add(s.uri)
        out.append(s)
    return out


class DividendMetadata(BaseModel):
    """Descriptive dividend data for one ticker, replaced wholesale on refresh.

    Field aliases keep the persisted JSON compatible with the blob format
    (`currentPrice`, `yield`, `annualDividend`, ...).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ticker: str
    name: str
    current_price: float = Field(..., ge=0, alias="currentPrice")
    yield_pct: float = Field(..., alias="yield")
    annual_dividend_per_share: float = Field(..., ge=0, alias="annualDividend")
    growth_rate_pct: float = Field(..., alias="growthRate")
    payout_frequency: PayoutFrequency = Field(..., alias="payoutFrequency")
    last_updated: datetime = Field(default_factory=lambda: datetime.now(UTC), alias="lastUpdated")
    sources: List[Source] = Field(default_factory=list)

    @field_validator("ticker")
    @classmethod
    def _ticker_upper(cls, v: str) -> str:
        sym = normalize_ticker(v)
        if not sym:
            raise ValueError("ticker is empty")
        return sym

    @field_validator("payout_frequency", mode="before")
    @classmethod
    def _frequency_case(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().capitalize()
        return v

    @field_validator("sources")
    @classmethod
    def _unique_sources(cls, v: List[Source]) -> List[Source]:
        return dedupe_sources(v)


# -------------------------
# Errors
# -------------------------

class ErrorEnvelope(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    retriable: bool = False


# -------------------------
# Service / agent results
# -------------------------

class AddHoldingResult(BaseModel):
    holding: Optional[Holding] = None
    fetched: bool = False
    error: Optional[ErrorEnvelope] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.holding is not None


class RefreshReport(BaseModel):
    refreshed: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    errors: Dict[str, ErrorEnvelope] = Field(default_factory=dict)


class AgentResponse(BaseModel):
    agent_name: str
    answer_md: str
    data: Dict[str, Any] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)
    confidence: Literal["high", "medium", "low"] = "medium"
    error: Optional[ErrorEnvelope] = None
