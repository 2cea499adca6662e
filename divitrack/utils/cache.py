from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Dict, List, Mapping, Optional

from divitrack.core.schemas import DividendMetadata, normalize_ticker

DEFAULT_MAX_AGE_SECONDS = 7 * 24 * 3600


class MetadataCache:
    """
    Ticker -> DividendMetadata mapping.
    - Thread-safe
    - At most one entry per (normalized) ticker
    - Entries are replaced wholesale, never patched
    - Freshness comes from each entry's `last_updated`
    """

    def __init__(
        self,
        entries: Optional[Mapping[str, DividendMetadata]] = None,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    ) -> None:
        self.max_age_seconds = int(max_age_seconds)
        self._lock = threading.Lock()
        self._store: Dict[str, DividendMetadata] = {}
        for ticker, data in (entries or {}).items():
            self.cache_metadata(ticker, data)

    def _now(self) -> datetime:
        return datetime.now(UTC)

    def cache_metadata(self, ticker: str, data: DividendMetadata) -> None:
        key = normalize_ticker(ticker)
        if not key:
            raise ValueError("ticker is empty")
        if data.ticker != key:
            data = data.model_copy(update={"ticker": key})
        with self._lock:
            self._store[key] = data

    def lookup(self, ticker: str) -> Optional[DividendMetadata]:
        with self._lock:
            return self._store.get(normalize_ticker(ticker))

    def evict(self, ticker: str) -> None:
        with self._lock:
            self._store.pop(normalize_ticker(ticker), None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def snapshot(self) -> Dict[str, DividendMetadata]:
        """Copy of the current entries, safe to hand to the engine."""
        with self._lock:
            return dict(self._store)

    def __contains__(self, ticker: object) -> bool:
        return isinstance(ticker, str) and self.lookup(ticker) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def age_seconds(self, ticker: str, now: Optional[datetime] = None) -> Optional[float]:
        entry = self.lookup(ticker)
        if entry is None:
            return None
        updated = entry.last_updated
        if updated.tzinfo is None:
            updated = updated.replace(tzinfo=UTC)
        return ((now or self._now()) - updated).total_seconds()

    def is_stale(self, ticker: str, max_age_seconds: Optional[int] = None, now: Optional[datetime] = None) -> bool:
        """Missing entries count as stale."""
        age = self.age_seconds(ticker, now=now)
        if age is None:
            return True
        limit = self.max_age_seconds if max_age_seconds is None else int(max_age_seconds)
        return age > limit

    def stale_tickers(self, max_age_seconds: Optional[int] = None, now: Optional[datetime] = None) -> List[str]:
        return [t for t in sorted(self.snapshot()) if self.is_stale(t, max_age_seconds, now=now)]
