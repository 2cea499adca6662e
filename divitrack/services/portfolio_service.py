from __future__ import annotations

import uuid
from datetime import date
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from divitrack.agents.portfolio_agent import PortfolioAnalysisAgent
from divitrack.core.config import SETTINGS
from divitrack.core.schemas import (
    AddHoldingResult,
    AgentResponse,
    ErrorEnvelope,
    Holding,
    RefreshReport,
    normalize_ticker,
)
from divitrack.core.state import AppState
from divitrack.storage.db import KeyValueStore
from divitrack.storage.state_store import load_state, save_state
from divitrack.utils.dividend_data import (
    ApiKeyInvalid,
    DividendDataService,
    InvalidMetadataResponse,
    MetadataFetchError,
    ProviderUnavailable,
    RateLimited,
    SymbolNotFound,
)
from divitrack.utils.logging import get_logger, set_log_context
from divitrack.utils.quant_models import PortfolioSummary, ProjectionPoint

logger = get_logger("portfolio_service")


def fetch_error_envelope(exc: MetadataFetchError, ticker: str) -> ErrorEnvelope:
    """Map a fetch failure onto the message shown to the user."""
    if isinstance(exc, RateLimited):
        return ErrorEnvelope(
            code="RATE_LIMITED",
            message="The dividend data service is busy. Please wait a moment and try again.",
            retriable=True,
        )
    if isinstance(exc, ApiKeyInvalid):
        return ErrorEnvelope(code="API_KEY_INVALID", message="API Key error or invalid project. Please re-select your key.")
    if isinstance(exc, ProviderUnavailable):
        return ErrorEnvelope(code="PROVIDER_UNAVAILABLE", message=f"Dividend data service unavailable: {exc}")
    if isinstance(exc, (SymbolNotFound, InvalidMetadataResponse)):
        return ErrorEnvelope(
            code="DATA_NOT_FOUND",
            message=f"Could not find data for ticker: {ticker}.",
            details={"reason": str(exc)},
        )
    return ErrorEnvelope(
        code="FETCH_FAILED",
        message="An error occurred while adding the stock. Please try again.",
        details={"reason": str(exc)},
        retriable=True,
    )


class PortfolioService:
    """
    Application entry point around an explicit AppState:
    - add/remove holdings, fetching metadata for unseen tickers
    - persist after every mutation when a store is attached
    - expose summary, projection and AI analysis
    """

    def __init__(
        self,
        state: Optional[AppState] = None,
        *,
        fetcher: Optional[DividendDataService] = None,
        store: Optional[KeyValueStore] = None,
        analyst: Optional[PortfolioAnalysisAgent] = None,
    ) -> None:
        self.state = state or AppState()
        self.fetcher = fetcher or DividendDataService()
        self.store = store
        self.analyst = analyst or PortfolioAnalysisAgent()

    @classmethod
    def open(cls, data_path: Optional[Union[str, Path]] = None, **kwargs) -> "PortfolioService":
        store = KeyValueStore(data_path or SETTINGS.data_path)
        state = load_state(store, max_age_seconds=SETTINGS.metadata_max_age_seconds)
        return cls(state, store=store, **kwargs)

    def save(self) -> None:
        if self.store is not None:
            save_state(self.store, self.state)

    def add_holding(
        self,
        ticker: str,
        quantity: float,
        purchase_date: Optional[Union[date, str]] = None,
    ) -> AddHoldingResult:
        sym = normalize_ticker(ticker)
        set_log_context(request_id=uuid.uuid4().hex[:8], ticker=sym or "-")

        try:
            holding = Holding(ticker=sym, quantity=quantity, purchase_date=purchase_date or date.today())
        except ValidationError as e:
            return AddHoldingResult(
                error=ErrorEnvelope(
                    code="INVALID_HOLDING",
                    message="Ticker, a positive quantity and a valid date are required.",
                    details={"errors": e.errors(include_url=False, include_context=False)},
                )
            )

        fetched = False
        if sym not in self.state.metadata:
            try:
                data = self.fetcher.fetch(sym)
            except MetadataFetchError as e:
                logger.warning(f"add_holding_fetch_failed err={type(e).__name__}:{e}")
                return AddHoldingResult(error=fetch_error_envelope(e, sym))
            self.state.metadata.cache_metadata(sym, data)
            fetched = True
        else:
            logger.debug("metadata_cache_hit")

        self.state.holdings.append(holding)
        self.save()
        logger.info(f"holding_added id={holding.id} quantity={holding.quantity} fetched={fetched}")
        return AddHoldingResult(holding=holding, fetched=fetched)

    def remove_holding(self, holding_id: str) -> bool:
        removed = self.state.holdings.remove_holding(holding_id)
        if removed:
            self.save()
            logger.info(f"holding_removed id={holding_id}")
        return removed

    def refresh_metadata(self, *, force: bool = False, max_age_seconds: Optional[int] = None) -> RefreshReport:
        """Re-fetch metadata for held tickers that are missing or older than the freshness window."""
        report = RefreshReport()
        for sym in self.state.holdings.tickers():
            if not force and not self.state.metadata.is_stale(sym, max_age_seconds):
                report.skipped.append(sym)
                continue
            try:
                data = self.fetcher.fetch(sym)
            except MetadataFetchError as e:
                logger.warning(f"refresh_failed ticker={sym} err={type(e).__name__}:{e}")
                report.errors[sym] = fetch_error_envelope(e, sym)
                continue
            self.state.metadata.cache_metadata(sym, data)
            report.refreshed.append(sym)

        if report.refreshed:
            self.save()
        return report

    def summary(self) -> PortfolioSummary:
        return self.state.summary()

    def projection(self) -> List[ProjectionPoint]:
        return self.state.projection()

    def analyze(self) -> AgentResponse:
        return self.analyst.run(self.state.holdings.holdings, self.state.metadata.snapshot())
