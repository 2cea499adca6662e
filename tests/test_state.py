from datetime import UTC, date, datetime, timedelta

import pytest
from pydantic import ValidationError

from divitrack.core.schemas import DividendMetadata, Source
from divitrack.core.state import AppState, HoldingStore
from divitrack.utils.cache import MetadataCache


def _meta(ticker="KO", price=60.0, dividend=1.94, growth=3.5, updated=None, sources=()):
    return DividendMetadata(
        ticker=ticker,
        name="Coca-Cola",
        current_price=price,
        yield_pct=3.2,
        annual_dividend_per_share=dividend,
        growth_rate_pct=growth,
        payout_frequency="Quarterly",
        last_updated=updated or datetime.now(UTC),
        sources=list(sources),
    )


def test_add_holding_normalizes_and_appends():
    store = HoldingStore()
    a = store.add_holding(" ko ", 10, date(2024, 1, 5))
    b = store.add_holding("PEP", 2.5, "2024-02-01")
    assert a.ticker == "KO"
    assert b.purchase_date == date(2024, 2, 1)
    assert [h.id for h in store] == [a.id, b.id]
    assert a.id != b.id


@pytest.mark.parametrize("ticker,qty", [("", 1), ("   ", 1), ("KO", 0), ("KO", -3)])
def test_add_holding_rejects_bad_input(ticker, qty):
    store = HoldingStore()
    with pytest.raises(ValidationError):
        store.add_holding(ticker, qty, date(2024, 1, 5))
    assert len(store) == 0


def test_remove_holding_by_id():
    store = HoldingStore()
    a = store.add_holding("KO", 10, date(2024, 1, 5))
    b = store.add_holding("KO", 5, date(2024, 3, 5))
    before = store.holdings

    assert store.remove_holding(a.id) is True
    assert [h.id for h in store] == [b.id]
    assert store.remove_holding("missing") is False
    assert len(store) == 1
    # earlier snapshots are untouched
    assert len(before) == 2


def test_holdings_are_frozen():
    h = HoldingStore().add_holding("KO", 10, date(2024, 1, 5))
    with pytest.raises(ValidationError):
        h.quantity = 20


def test_tickers_unique_in_first_seen_order():
    store = HoldingStore()
    for t in ("O", "KO", "o", "MAIN"):
        store.add_holding(t, 1, date(2024, 1, 5))
    assert store.tickers() == ["O", "KO", "MAIN"]


def test_cache_one_entry_per_ticker():
    cache = MetadataCache()
    cache.cache_metadata("ko", _meta(price=60))
    cache.cache_metadata("KO", _meta(price=61))
    assert len(cache) == 1
    assert cache.lookup("Ko").current_price == 61
    assert "KO" in cache
    assert cache.lookup("PEP") is None
    assert "PEP" not in cache


def test_cache_keys_entry_under_normalized_ticker():
    cache = MetadataCache()
    cache.cache_metadata("o", _meta(ticker="REALTY"))
    assert cache.lookup("O").ticker == "O"


def test_cache_evict_and_clear():
    cache = MetadataCache({"KO": _meta(), "PEP": _meta(ticker="PEP")})
    cache.evict("ko")
    assert list(cache.snapshot()) == ["PEP"]
    cache.clear()
    assert len(cache) == 0


def test_cache_staleness():
    now = datetime(2025, 6, 1, tzinfo=UTC)
    cache = MetadataCache(
        {
            "KO": _meta(updated=now - timedelta(days=1)),
            "PEP": _meta(ticker="PEP", updated=now - timedelta(days=30)),
        },
        max_age_seconds=7 * 24 * 3600,
    )
    assert cache.is_stale("KO", now=now) is False
    assert cache.is_stale("PEP", now=now) is True
    assert cache.is_stale("MISSING", now=now) is True
    assert cache.is_stale("KO", max_age_seconds=3600, now=now) is True
    assert cache.stale_tickers(now=now) == ["PEP"]


def test_sources_deduplicated_by_uri():
    m = _meta(
        sources=[
            Source(title="A", uri="https://a.example"),
            Source(title="B", uri="https://b.example"),
            Source(title="A again", uri="https://a.example"),
        ]
    )
    assert [s.title for s in m.sources] == ["A", "B"]


def test_payout_frequency_is_case_normalized_and_checked():
    m = DividendMetadata.model_validate(
        {
            "ticker": "O",
            "name": "Realty Income",
            "currentPrice": 55,
            "yield": 5.6,
            "annualDividend": 3.1,
            "growthRate": 3.9,
            "payoutFrequency": "monthly",
        }
    )
    assert m.payout_frequency == "Monthly"
    with pytest.raises(ValidationError):
        DividendMetadata.model_validate({**m.model_dump(by_alias=True), "payoutFrequency": "Weekly"})


def test_app_state_summary_and_projection():
    state = AppState()
    state.holdings.add_holding("X", 100, date(2024, 1, 2))
    state.metadata.cache_metadata("X", _meta(ticker="X", price=10, dividend=1, growth=5))

    summary = state.summary()
    assert summary.total_value == pytest.approx(1000)

    points = state.projection()
    assert len(points) == 21
    assert points[1].base_balance == 1155
