"""
Bootstrap Registry Cache - Fresh IANA RDAP bootstrap directories.

Keeps one immutable snapshot of the domain, IPv4 and IPv6 registries and
refreshes it when it is older than the configured age. Refreshes are
single-flight: while one is loading, every caller waits on the same task.

States:
    Idle     -> no snapshot, nothing in flight
    Loading  -> ``_inflight`` holds the shared refresh task
    Ready    -> ``_state`` holds the snapshot and its load time
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone

import httpx
from pydantic import ValidationError

from rdapcache.config.errors import BootstrapUnavailableError

from .models import (
    BootstrapDocument,
    BootstrapRegistry,
    BootstrapSources,
    RegistryCacheState,
    RegistryKind,
)

logger = logging.getLogger(__name__)

__all__ = ["BootstrapRegistryCache", "BootstrapFetchError"]


class BootstrapFetchError(Exception):
    """A registry file could not be fetched or parsed."""

    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BootstrapRegistryCache:
    """
    Process-lifetime cache of the three bootstrap registries.

    Example:
        >>> registry = BootstrapRegistryCache(http_client)
        >>> state = await registry.ensure_fresh()
        >>> state.domain.version
        '1.0'
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        sources: BootstrapSources | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize registry cache.

        Args:
            http_client: Client used for the registry downloads
            sources: Registry URLs and maximum snapshot age
            clock: Returns the current time (timezone-aware)
        """
        self._client = http_client
        self.sources = sources or BootstrapSources()
        self._clock = clock
        self._state = RegistryCacheState()
        self._inflight: asyncio.Task[RegistryCacheState] | None = None

    @property
    def snapshot(self) -> RegistryCacheState:
        """Current snapshot, possibly stale or empty. No I/O."""
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._inflight is not None

    def is_fresh(self) -> bool:
        """Whether the current snapshot is loaded and younger than the max age."""
        return self._state.is_fresh(self._clock(), self.sources.max_age)

    async def ensure_fresh(self, force_refresh: bool = False) -> RegistryCacheState:
        """
        Return a fresh snapshot, refreshing it if needed.

        Args:
            force_refresh: Reload even if the snapshot is still fresh

        Returns:
            The new snapshot, or the previous one if the refresh failed
            and a previous one exists

        Raises:
            BootstrapUnavailableError: Nothing has ever loaded and the
                attempted load failed
        """
        state = self._state
        if not force_refresh and state.is_fresh(self._clock(), self.sources.max_age):
            return state

        if self._inflight is None:
            if state.is_loaded:
                logger.info("Bootstrap data is stale or refresh forced, refreshing")
            self._inflight = asyncio.ensure_future(self._refresh())
            self._inflight.add_done_callback(self._on_refresh_done)

        try:
            # Waiters being cancelled must not cancel the shared load
            return await asyncio.shield(self._inflight)
        except BootstrapFetchError as e:
            if self._state.is_loaded:
                logger.warning(
                    "Bootstrap refresh failed, serving snapshot loaded at %s: %s",
                    self._state.last_loaded_at,
                    e,
                )
                return self._state
            raise BootstrapUnavailableError(
                f"Failed to load bootstrap data: {e}",
                details={"sources": {k.value: v for k, v in self.sources.urls().items()}},
            ) from e

    def _on_refresh_done(self, task: asyncio.Task[RegistryCacheState]) -> None:
        self._inflight = None
        # Mark the exception retrieved even when every waiter went away
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> RegistryCacheState:
        """Fetch all three registries and swap the snapshot in one step."""
        logger.info("Loading IANA bootstrap data...")
        urls = self.sources.urls()

        try:
            domain, ipv4, ipv6 = await asyncio.gather(
                self._fetch(RegistryKind.DOMAIN, urls[RegistryKind.DOMAIN]),
                self._fetch(RegistryKind.IPV4, urls[RegistryKind.IPV4]),
                self._fetch(RegistryKind.IPV6, urls[RegistryKind.IPV6]),
            )
        except BootstrapFetchError as e:
            logger.error("Failed to load bootstrap data: %s", e)
            raise

        state = RegistryCacheState(
            domain=domain,
            ipv4=ipv4,
            ipv6=ipv6,
            last_loaded_at=self._clock(),
        )
        self._state = state

        logger.info(
            "Bootstrap data loaded: domain=%d ipv4=%d ipv6=%d entries",
            len(domain.entries),
            len(ipv4.entries),
            len(ipv6.entries),
        )
        return state

    async def _fetch(self, kind: RegistryKind, url: str) -> BootstrapRegistry:
        """Download and validate one registry file."""
        logger.debug("Fetching %s bootstrap data from %s", kind.value, url)

        try:
            response = await self._client.get(url, follow_redirects=True)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise BootstrapFetchError(f"Failed to fetch {url}: {e}") from e

        try:
            document = BootstrapDocument.model_validate_json(response.content)
        except ValidationError as e:
            raise BootstrapFetchError(
                f"Invalid bootstrap document from {url}: {e.error_count()} validation error(s)"
            ) from e

        return BootstrapRegistry.from_document(document, kind)
