"""
Lookup Contracts - Interfaces for the lookup domain.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import LookupResponse, QueryResult, StructuredError


@runtime_checkable
class CacheStore(Protocol):
    """
    Contract for the persistent RDAP cache.

    Two keyed collections: IP networks by CIDR and domains by lowercase
    name. ``put_*`` raises ``CacheWriteConflictError`` when the key already
    exists and ``StorageError`` for any other failure.
    """

    async def get_ip(self, cidr: str) -> dict[str, Any] | None:
        """Exact lookup by CIDR block."""
        ...

    async def find_ip_containing(self, address: str) -> dict[str, Any] | None:
        """
        Most specific stored network containing ``address``.

        Returns:
            Stored payload, or None if no stored CIDR contains the address
        """
        ...

    async def put_ip(self, cidr: str, payload: dict[str, Any]) -> None:
        """Insert an IP network payload under its CIDR block."""
        ...

    async def get_domain(self, domain_name: str) -> dict[str, Any] | None:
        """Exact lookup by lowercase domain name."""
        ...

    async def put_domain(self, domain_name: str, payload: dict[str, Any]) -> None:
        """Insert a domain payload under its lowercase name."""
        ...


@runtime_checkable
class RequestExecutor(Protocol):
    """Contract for fetching one RDAP URL."""

    async def execute(self, url: str) -> QueryResult:
        """
        Fetch ``url`` following redirects and retrying transient failures.

        Returns:
            Success or StructuredError; never raises for transport failures
        """
        ...


@runtime_checkable
class LookupService(Protocol):
    """Contract exposed to front ends."""

    async def lookup(self, raw_query: str) -> LookupResponse | StructuredError:
        """
        Resolve a domain or IP query, from the cache when possible.

        Args:
            raw_query: User input

        Returns:
            Lookup response or structured error
        """
        ...
