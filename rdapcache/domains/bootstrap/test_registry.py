"""
Tests for the bootstrap registry cache.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from rdapcache.config.errors import BootstrapUnavailableError

from .models import BootstrapSources, RegistryCacheState, RegistryKind
from .registry import BootstrapRegistryCache

SOURCES = BootstrapSources(
    domain_url="https://iana.test/rdap/dns.json",
    ipv4_url="https://iana.test/rdap/ipv4.json",
    ipv6_url="https://iana.test/rdap/ipv6.json",
)

DOCUMENTS = {
    SOURCES.domain_url: {
        "version": "1.0",
        "publication": "2024-01-01T00:00:00Z",
        "services": [
            [["COM", "net"], ["https://rdap.verisign.test/com/v1/"]],
            [["org"], ["https://rdap.pir.test/"]],
        ],
    },
    SOURCES.ipv4_url: {
        "version": "1.0",
        "publication": "2024-01-01T00:00:00Z",
        "services": [[["193.0.0.0/8", "not-a-cidr"], ["https://rdap.ripe.test/"]]],
    },
    SOURCES.ipv6_url: {
        "version": "1.0",
        "publication": "2024-01-01T00:00:00Z",
        "services": [[["2001:4860::/32"], ["https://rdap.arin.test/registry/"]]],
    },
}


class Clock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class Upstream:
    """Fake IANA server counting requests per URL."""

    def __init__(self) -> None:
        self.calls: Counter[str] = Counter()
        self.failing = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls[url] += 1
        if self.failing:
            return httpx.Response(503)
        return httpx.Response(200, json=DOCUMENTS[url])


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def registry(upstream: Upstream, clock: Clock) -> BootstrapRegistryCache:
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return BootstrapRegistryCache(client, sources=SOURCES, clock=clock)


# --- Model Tests ---


def test_empty_state_is_not_loaded() -> None:
    state = RegistryCacheState()
    assert not state.is_loaded
    assert not state.is_fresh(datetime.now(timezone.utc), timedelta(hours=24))


def test_sources_urls() -> None:
    urls = SOURCES.urls()
    assert urls[RegistryKind.DOMAIN] == SOURCES.domain_url
    assert urls[RegistryKind.IPV6] == SOURCES.ipv6_url


# --- Loading ---


async def test_first_call_loads_all_registries(
    registry: BootstrapRegistryCache, upstream: Upstream, clock: Clock
) -> None:
    state = await registry.ensure_fresh()

    assert state.is_loaded
    assert state.last_loaded_at == clock.now
    assert state.domain.entries[0].match_keys == ("com", "net")
    assert len(state.ipv4.entries) == 1
    assert len(state.ipv6.entries) == 1
    assert registry.snapshot is state
    assert sum(upstream.calls.values()) == 3


async def test_invalid_cidr_keys_are_skipped(registry: BootstrapRegistryCache) -> None:
    state = await registry.ensure_fresh()

    entry = state.ipv4.entries[0]
    assert entry.match_keys == ("193.0.0.0/8", "not-a-cidr")
    assert [str(n) for n in entry.networks] == ["193.0.0.0/8"]


async def test_fresh_snapshot_served_without_io(
    registry: BootstrapRegistryCache, upstream: Upstream, clock: Clock
) -> None:
    first = await registry.ensure_fresh()
    clock.advance(timedelta(hours=23))
    second = await registry.ensure_fresh()

    assert second is first
    assert upstream.calls[SOURCES.domain_url] == 1


async def test_stale_snapshot_is_reloaded(
    registry: BootstrapRegistryCache, upstream: Upstream, clock: Clock
) -> None:
    first = await registry.ensure_fresh()
    clock.advance(timedelta(hours=24))
    second = await registry.ensure_fresh()

    assert second is not first
    assert second.last_loaded_at == clock.now
    assert upstream.calls[SOURCES.domain_url] == 2


async def test_is_fresh_tracks_clock(
    registry: BootstrapRegistryCache, clock: Clock
) -> None:
    assert not registry.is_fresh()

    await registry.ensure_fresh()
    assert registry.is_fresh()

    clock.advance(timedelta(hours=24, seconds=1))
    assert not registry.is_fresh()


async def test_force_refresh_reloads(
    registry: BootstrapRegistryCache, upstream: Upstream
) -> None:
    await registry.ensure_fresh()
    await registry.ensure_fresh(force_refresh=True)

    assert upstream.calls[SOURCES.ipv4_url] == 2


async def test_concurrent_callers_share_one_load(
    registry: BootstrapRegistryCache, upstream: Upstream
) -> None:
    """Concurrent triggers collapse into a single in-flight refresh."""
    states = await asyncio.gather(*(registry.ensure_fresh() for _ in range(10)))

    assert all(state is states[0] for state in states)
    assert upstream.calls == Counter({url: 1 for url in DOCUMENTS})
    assert not registry.is_loading


# --- Failures ---


async def test_never_loaded_failure_raises(
    registry: BootstrapRegistryCache, upstream: Upstream
) -> None:
    upstream.failing = True

    with pytest.raises(BootstrapUnavailableError):
        await registry.ensure_fresh()

    assert not registry.snapshot.is_loaded


async def test_invalid_source_url_is_unavailable(upstream: Upstream, clock: Clock) -> None:
    sources = SOURCES.model_copy(update={"domain_url": "https://iana.test:99999/rdap/dns.json"})
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    registry = BootstrapRegistryCache(client, sources=sources, clock=clock)

    with pytest.raises(BootstrapUnavailableError):
        await registry.ensure_fresh()

    assert not registry.snapshot.is_loaded
    assert upstream.calls[sources.domain_url] == 0


async def test_failure_does_not_poison_later_loads(
    registry: BootstrapRegistryCache, upstream: Upstream
) -> None:
    upstream.failing = True
    with pytest.raises(BootstrapUnavailableError):
        await registry.ensure_fresh()

    upstream.failing = False
    state = await registry.ensure_fresh()

    assert state.is_loaded


async def test_failed_refresh_keeps_previous_snapshot(
    registry: BootstrapRegistryCache, upstream: Upstream, clock: Clock
) -> None:
    first = await registry.ensure_fresh()
    clock.advance(timedelta(days=2))
    upstream.failing = True

    state = await registry.ensure_fresh()

    assert state is first
    assert registry.snapshot is first


async def test_concurrent_callers_all_see_failure(
    registry: BootstrapRegistryCache, upstream: Upstream
) -> None:
    upstream.failing = True

    results = await asyncio.gather(
        *(registry.ensure_fresh() for _ in range(3)), return_exceptions=True
    )

    assert all(isinstance(r, BootstrapUnavailableError) for r in results)
    assert upstream.calls[SOURCES.domain_url] == 1


async def test_malformed_document_is_failure(upstream: Upstream, clock: Clock) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"services": []})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    registry = BootstrapRegistryCache(client, sources=SOURCES, clock=clock)

    with pytest.raises(BootstrapUnavailableError):
        await registry.ensure_fresh()


def test_summary_reports_counts() -> None:
    state = RegistryCacheState()
    summary = state.summary()
    assert summary["last_loaded_at"] is None
    assert summary["registries"] == {"domain": None, "ipv4": None, "ipv6": None}
