"""
Query Orchestrator - Cache-aside RDAP lookups.

Classifies a raw query, answers from the persistent cache when it can,
otherwise locates the authoritative server, fetches live and writes the
result back on a best-effort basis.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import TYPE_CHECKING, Any

from rdapcache.config.errors import (
    BootstrapUnavailableError,
    CacheWriteConflictError,
    ErrorCode,
    InvalidInputError,
    RdapCacheError,
)
from rdapcache.domains.bootstrap import (
    BootstrapRegistryCache,
    BootstrapSources,
    QueryKind,
    RegistryCacheState,
    ServerLocator,
    ServiceLocator,
    build_query_url,
)

from .classifier import classify_query
from .contracts import CacheStore, RequestExecutor
from .models import (
    CacheStatus,
    ClassifiedQuery,
    LookupResponse,
    StructuredError,
)

if TYPE_CHECKING:
    import httpx

    from rdapcache.config import Settings

logger = logging.getLogger(__name__)

__all__ = ["QueryOrchestrator", "extract_cidr"]


def extract_cidr(payload: dict[str, Any]) -> str | None:
    """
    Cache key of an ``ip network`` object.

    Uses ``cidr`` when present, else the first ``cidr0_cidrs`` entry with a
    prefix and length.
    """
    cidr = payload.get("cidr")
    if isinstance(cidr, str) and cidr:
        return cidr

    for block in payload.get("cidr0_cidrs") or []:
        if not isinstance(block, dict):
            continue
        prefix = block.get("v4prefix") or block.get("v6prefix")
        length = block.get("length")
        if prefix and length is not None:
            return f"{prefix}/{length}"
    return None


class QueryOrchestrator:
    """
    Single entry point for RDAP lookups.

    Bundles the registry cache, locator, executor and store. Build one per
    process with ``from_settings`` and share it.

    Example:
        >>> orchestrator = QueryOrchestrator.from_settings(settings, store)
        >>> await orchestrator.warm_up()
        >>> result = await orchestrator.lookup("example.com")
        >>> result.cache_status
        <CacheStatus.MISS: 'miss'>
    """

    def __init__(
        self,
        registry: BootstrapRegistryCache,
        locator: ServerLocator,
        executor: RequestExecutor,
        store: CacheStore,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            registry: Bootstrap registry cache
            locator: Maps queries to RDAP base URLs
            executor: Fetches RDAP URLs
            store: Persistent cache
            http_client: Client owned by this bundle, closed by ``aclose``
        """
        self.registry = registry
        self._locator = locator
        self._executor = executor
        self._store = store
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings: Settings, store: CacheStore) -> QueryOrchestrator:
        """Build the full bundle around one shared HTTP client."""
        from rdapcache.adapters.rdap import (
            ExecutorConfig,
            RdapRequestExecutor,
            create_http_client,
        )

        config = ExecutorConfig.from_settings(settings)
        http_client = create_http_client(config)
        registry = BootstrapRegistryCache(
            http_client, sources=BootstrapSources.from_settings(settings)
        )
        return cls(
            registry=registry,
            locator=ServiceLocator(registry),
            executor=RdapRequestExecutor(http_client, config=config),
            store=store,
            http_client=http_client,
        )

    async def warm_up(self) -> RegistryCacheState:
        """Best-effort initial registry load; failures are logged only."""
        try:
            return await self.registry.ensure_fresh()
        except BootstrapUnavailableError as e:
            logger.warning("Initial bootstrap load failed: %s", e.message)
            return self.registry.snapshot

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()

    async def lookup(self, raw_query: str) -> LookupResponse | StructuredError:
        """
        Resolve a domain or IP query, from the cache when possible.

        Args:
            raw_query: User input, e.g. "example.com" or "8.8.8.8"

        Returns:
            LookupResponse with hit/miss status, or StructuredError
        """
        try:
            query = classify_query(raw_query)
        except InvalidInputError as e:
            logger.info("Rejected query %r: %s", raw_query, e.message)
            return StructuredError(
                error_code=ErrorCode.INVALID_INPUT,
                code=400,
                title="Invalid Input",
                description=[e.message],
            )

        try:
            return await self._lookup(query)
        except RdapCacheError as e:
            logger.error("Lookup failed for %s: %s", query.value, e)
            return _error_from_exception(e)
        except Exception as e:
            logger.exception("Unexpected error looking up %s", query.value)
            return StructuredError(
                error_code=ErrorCode.INTERNAL_ERROR,
                code=500,
                title="Internal Server Error",
                description=[f"An unexpected error occurred: {e}"],
            )

    async def _lookup(self, query: ClassifiedQuery) -> LookupResponse | StructuredError:
        # Step 1: Check cache
        cached = await self._read_cache(query)
        if cached is not None:
            logger.info("Cache hit for %s %s", query.kind.value, query.value)
            return LookupResponse(payload=cached, type=query.kind, cache_status=CacheStatus.HIT)

        # Step 2: Locate authoritative server
        logger.info("Cache miss for %s %s, querying RDAP", query.kind.value, query.value)
        base_url = await self._locator.resolve(query.value, query.kind)
        if base_url is None:
            return StructuredError(
                error_code=ErrorCode.BOOTSTRAP_UNAVAILABLE,
                code=404,
                title="Bootstrap Failed",
                description=[
                    f"Could not find an RDAP server for {query.kind.value} {query.value}"
                ],
            )

        # Step 3: Live lookup
        url = build_query_url(base_url, query.kind, query.value)
        result = await self._executor.execute(url)
        if isinstance(result, StructuredError):
            logger.warning(
                "RDAP lookup for %s returned %d %s", query.value, result.code, result.title
            )
            return result

        if result.object_kind != query.kind:
            logger.error(
                "Expected %s object for %s, got %s",
                query.kind.value,
                query.value,
                result.object_kind.value,
            )
            return StructuredError(
                error_code=ErrorCode.UNEXPECTED_RESPONSE_SHAPE,
                code=500,
                title="Client Response Error",
                description=[
                    f"Received {result.object_kind.value} object for a {query.kind.value} query."
                ],
            )

        # Step 4: Populate cache, never affecting the response
        await self._write_cache(query, result.payload)
        return LookupResponse(
            payload=result.payload, type=query.kind, cache_status=CacheStatus.MISS
        )

    async def _read_cache(self, query: ClassifiedQuery) -> dict[str, Any] | None:
        if query.kind == QueryKind.IP:
            return await self._store.find_ip_containing(query.value)
        return await self._store.get_domain(query.cache_key)

    async def _write_cache(self, query: ClassifiedQuery, payload: dict[str, Any]) -> None:
        if query.kind == QueryKind.IP:
            key = extract_cidr(payload)
            if key is None:
                logger.warning("No CIDR in RDAP response for %s, not caching", query.value)
                return
            try:
                ipaddress.ip_network(key, strict=False)
            except ValueError:
                logger.warning("Invalid CIDR %r for %s, not caching", key, query.value)
                return
            put = self._store.put_ip
        else:
            key = query.cache_key
            put = self._store.put_domain

        try:
            await put(key, payload)
            logger.info("Cached %s %s", query.kind.value, key)
        except CacheWriteConflictError:
            logger.info("Cache entry for %s already exists (concurrent write)", key)
        except Exception as e:
            logger.error("Failed to cache %s %s: %s", query.kind.value, key, e)


def _error_from_exception(error: RdapCacheError) -> StructuredError:
    if error.code == ErrorCode.BOOTSTRAP_UNAVAILABLE:
        return StructuredError(
            error_code=ErrorCode.BOOTSTRAP_UNAVAILABLE,
            code=404,
            title="Bootstrap Unavailable",
            description=[error.message],
        )
    if error.code == ErrorCode.INVALID_INPUT:
        return StructuredError(
            error_code=ErrorCode.INVALID_INPUT,
            code=400,
            title="Invalid Input",
            description=[error.message],
        )
    return StructuredError(
        error_code=ErrorCode.INTERNAL_ERROR,
        code=500,
        title="Internal Server Error",
        description=[error.message],
    )
