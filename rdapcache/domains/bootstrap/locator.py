"""
Service Locator - Map a query to its authoritative RDAP base URL.
"""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Sequence
from urllib.parse import quote, urljoin

from rdapcache.config.errors import BootstrapUnavailableError, InvalidInputError

from .contracts import RegistryProvider
from .models import BootstrapRegistry, QueryKind, ServiceEntry

logger = logging.getLogger(__name__)

__all__ = ["ServiceLocator", "build_query_url"]


class ServiceLocator:
    """
    Looks up authoritative RDAP servers in the bootstrap registries.

    Domains match most-specific-first: the full name is tried before each
    shorter suffix. IP addresses match the first entry, in registry order,
    with a CIDR containing the address.
    """

    def __init__(self, registry: RegistryProvider) -> None:
        self._registry = registry

    async def resolve(self, query: str, kind: QueryKind) -> str | None:
        """
        Find the base URL serving ``query``.

        Args:
            query: Domain name or IP address
            kind: Whether ``query`` is a domain or an IP address

        Returns:
            Base URL, or None if no registry entry matches

        Raises:
            BootstrapUnavailableError: Registries have never loaded
            InvalidInputError: ``kind`` is "ip" and ``query`` is not an address
        """
        try:
            kind = QueryKind(kind)
        except ValueError as e:
            raise InvalidInputError(f"Unsupported query kind: {kind}") from e

        address = None
        if kind == QueryKind.IP:
            try:
                address = ipaddress.ip_address(query)
            except ValueError as e:
                raise InvalidInputError(f"Invalid IP address format: {query}") from e

        state = await self._registry.ensure_fresh()
        if not state.is_loaded:
            raise BootstrapUnavailableError("Bootstrap data is not available")

        if address is None:
            entry = self._match_domain(query, state.domain)
        else:
            registry = state.ipv6 if address.version == 6 else state.ipv4
            entry = self._match_ip(address, registry)

        if entry is None:
            logger.warning("No RDAP bootstrap server found for %s %s", kind.value, query)
            return None

        base_url = self.select_base_url(entry.base_urls)
        if base_url is None:
            logger.error(
                "No suitable HTTPS or HTTP URL in bootstrap entry for %s %s", kind.value, query
            )
        return base_url

    @staticmethod
    def select_base_url(base_urls: Sequence[str]) -> str | None:
        """First HTTPS URL, else first HTTP URL, else None."""
        for url in base_urls:
            if url.lower().startswith("https://"):
                return url
        for url in base_urls:
            if url.lower().startswith("http://"):
                logger.warning("Using non-HTTPS RDAP URL: %s", url)
                return url
        return None

    @staticmethod
    def _match_domain(
        query: str, registry: BootstrapRegistry | None
    ) -> ServiceEntry | None:
        if registry is None:
            return None

        labels = query.lower().split(".")
        for i in range(len(labels)):
            suffix = ".".join(labels[i:])
            logger.debug("Checking suffix: %s", suffix)
            for entry in registry.entries:
                if suffix in entry.match_keys:
                    return entry
        return None

    @staticmethod
    def _match_ip(
        address: ipaddress.IPv4Address | ipaddress.IPv6Address,
        registry: BootstrapRegistry | None,
    ) -> ServiceEntry | None:
        if registry is None:
            return None

        # First match in registry order; IANA ranges do not overlap
        for entry in registry.entries:
            for network in entry.networks:
                if network.version == address.version and address in network:
                    return entry
        return None


def build_query_url(base_url: str, kind: QueryKind, query: str) -> str:
    """
    Build ``{base}/{domain|ip}/{query}`` with the query percent-encoded.

    A base URL without a trailing slash is treated as a directory.
    """
    if not base_url.endswith("/"):
        base_url += "/"
    return urljoin(base_url, f"{QueryKind(kind).value}/{quote(query, safe='')}")
