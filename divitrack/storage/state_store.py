from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from divitrack.core.schemas import DividendMetadata, Holding
from divitrack.core.state import AppState, HoldingStore
from divitrack.storage.db import KeyValueStore
from divitrack.utils.cache import DEFAULT_MAX_AGE_SECONDS, MetadataCache
from divitrack.utils.logging import get_logger

logger = get_logger("state_store")

HOLDINGS_KEY = "divi_holdings"
METADATA_KEY = "divi_stock_info"

_holding_list = TypeAdapter(List[Holding])
_metadata_map = TypeAdapter(Dict[str, DividendMetadata])


class StateCorrupted(Exception):
    pass


def load_state(store: KeyValueStore, *, max_age_seconds: Optional[int] = None) -> AppState:
    """
    Rebuild AppState from the two persisted blobs. Missing keys load as empty.
    """
    raw_holdings = store.get(HOLDINGS_KEY)
    raw_metadata = store.get(METADATA_KEY)

    try:
        holdings = _holding_list.validate_json(raw_holdings) if raw_holdings else []
    except ValidationError as e:
        raise StateCorrupted(f"Stored holdings are malformed: {e.error_count()} error(s)") from e

    try:
        metadata = _metadata_map.validate_json(raw_metadata) if raw_metadata else {}
    except ValidationError as e:
        raise StateCorrupted(f"Stored dividend metadata is malformed: {e.error_count()} error(s)") from e

    logger.info(f"state_loaded holdings={len(holdings)} tickers={len(metadata)}")
    return AppState(
        holdings=HoldingStore(holdings),
        metadata=MetadataCache(
            metadata,
            max_age_seconds=DEFAULT_MAX_AGE_SECONDS if max_age_seconds is None else max_age_seconds,
        ),
    )


def save_state(store: KeyValueStore, state: AppState) -> None:
    holdings = list(state.holdings.holdings)
    metadata = state.metadata.snapshot()
    store.set_many(
        {
            HOLDINGS_KEY: _holding_list.dump_json(holdings, by_alias=True).decode("utf-8"),
            METADATA_KEY: _metadata_map.dump_json(metadata, by_alias=True).decode("utf-8"),
        }
    )
    logger.debug(f"state_saved holdings={len(holdings)} tickers={len(metadata)}")
