from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from divitrack.core.schemas import Holding
from divitrack.utils.cache import MetadataCache
from divitrack.utils.quant_engine import compute_dividend_projection, compute_portfolio_summary
from divitrack.utils.quant_models import PortfolioSummary, ProjectionPoint


class HoldingStore:
    """Ordered positions. Add appends, remove filters; holdings themselves are frozen."""

    def __init__(self, holdings: Iterable[Holding] = ()) -> None:
        self._lock = threading.Lock()
        self._holdings: Tuple[Holding, ...] = tuple(holdings)

    @property
    def holdings(self) -> Tuple[Holding, ...]:
        with self._lock:
            return self._holdings

    def add_holding(self, ticker: str, quantity: float, purchase_date: Union[date, str]) -> Holding:
        return self.append(Holding(ticker=ticker, quantity=quantity, purchase_date=purchase_date))

    def append(self, holding: Holding) -> Holding:
        with self._lock:
            self._holdings = self._holdings + (holding,)
        return holding

    def remove_holding(self, holding_id: str) -> bool:
        with self._lock:
            kept = tuple(h for h in self._holdings if h.id != holding_id)
            removed = len(kept) != len(self._holdings)
            self._holdings = kept
        return removed

    def get(self, holding_id: str) -> Optional[Holding]:
        return next((h for h in self.holdings if h.id == holding_id), None)

    def tickers(self) -> List[str]:
        # first-seen order, no duplicates
        return list(dict.fromkeys(h.ticker for h in self.holdings))

    def __iter__(self) -> Iterator[Holding]:
        return iter(self.holdings)

    def __len__(self) -> int:
        return len(self.holdings)


@dataclass
class AppState:
    """Everything the engine reads: the positions and the fetched metadata."""

    holdings: HoldingStore = field(default_factory=HoldingStore)
    metadata: MetadataCache = field(default_factory=MetadataCache)

    def summary(self) -> PortfolioSummary:
        return compute_portfolio_summary(self.holdings.holdings, self.metadata.snapshot())

    def projection(self) -> List[ProjectionPoint]:
        snapshot = self.metadata.snapshot()
        summary = compute_portfolio_summary(self.holdings.holdings, snapshot)
        return compute_dividend_projection(summary, snapshot)
