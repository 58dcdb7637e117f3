"""
Shared fixtures: a scripted completion provider, a controllable clock and a
cache backed by a temporary SQLite file.
"""
from datetime import date

import pytest

from slangbridge.core.refresh import RefreshCoordinator
from slangbridge.core.slang_terms import TermCurrencyRegistry
from slangbridge.core.translation_cache import DAY_MS, TranslationCache
from slangbridge.core.utils.llm import UpstreamError

TODAY = date(2025, 8, 13)

SAMPLE_TERMS = [
    {
        "term": "it's giving",
        "aliases": ["its giving"],
        "status": "current",
        "last_seen": "2025-08-12",
        "source_count_30d": 800,
        "trend_hits_30d": 400,
        "age_months": 24,
    },
    {
        "term": "no cap",
        "aliases": [],
        "status": "current",
        "last_seen": "2025-08-10",
        "source_count_30d": 900,
        "trend_hits_30d": 450,
        "age_months": 36,
    },
    {
        "term": "rizz",
        "aliases": [],
        "status": "current",
        "last_seen": "2025-08-13",
        "source_count_30d": 1000,
        "trend_hits_30d": 500,
        "age_months": 12,
    },
    {
        "term": "sus",
        "aliases": [],
        "status": "fading",
        "last_seen": "2025-06-01",
        "source_count_30d": 200,
        "trend_hits_30d": 50,
        "age_months": 60,
    },
    {
        "term": "on fleek",
        "aliases": [],
        "status": "deprecated",
        "last_seen": "2019-01-01",
        "source_count_30d": 5,
        "trend_hits_30d": 1,
        "age_months": 120,
        "replacements": ["slay", "ate"],
    },
    {
        "term": "lit",
        "aliases": [],
        "status": "deprecated",
        "last_seen": "2020-01-01",
        "source_count_30d": 40,
        "trend_hits_30d": 10,
        "age_months": 96,
        "replacements": ["fire", "bussin"],
    },
]


class FakeProvider:
    """Completion provider that answers from a handler and records every call."""

    def __init__(self, handler=None):
        self.calls = []
        self.handler = handler or (lambda instruction, text: f"translated: {text}")
        self.fail = False

    def complete(self, instruction, text, temperature=0.3, max_tokens=500):
        self.calls.append((instruction, text))
        if self.fail:
            raise UpstreamError("provider unavailable")
        return self.handler(instruction, text)

    def status(self):
        return {"engine": "fake"}


class FakeClock:
    def __init__(self, now_ms=1_750_000_000_000):
        self.now = now_ms

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms

    def advance_days(self, days):
        self.now += int(days * DAY_MS)


@pytest.fixture
def registry():
    return TermCurrencyRegistry.from_terms(SAMPLE_TERMS, version="test")


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_path(tmp_path):
    return str(tmp_path / "cache" / "translations.db")


@pytest.fixture
def cache(cache_path, clock):
    store = TranslationCache(cache_path, ttl_days=30, stale_after_days=7,
                             refresher=RefreshCoordinator(max_workers=2), clock=clock)
    yield store
    store.close()
