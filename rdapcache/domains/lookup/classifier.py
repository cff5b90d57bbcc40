"""
Query Classifier - Decide whether a raw query is an IP address or a domain.

Address parsing wins. Anything that is not an address must look like a
hostname: contain a dot, use only ``[A-Za-z0-9.-]`` and neither start nor
end with a dot or hyphen.

A dotted numeric string that is not a valid address, e.g. ``999.1.1.1``,
passes the hostname test and is classified as a domain.
"""

from __future__ import annotations

import ipaddress
import re

from rdapcache.config.errors import InvalidInputError
from rdapcache.domains.bootstrap.models import QueryKind

from .models import ClassifiedQuery

__all__ = ["classify_query", "is_domain", "parse_address"]

DOMAIN_CHARSET = re.compile(r"^[A-Za-z0-9.-]+$")
DOMAIN_EDGES = re.compile(r"^[.-]|[.-]$")


def parse_address(query: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Parse an IP address; IPv4-mapped IPv6 addresses become IPv4."""
    try:
        address = ipaddress.ip_address(query)
    except ValueError:
        return None
    if isinstance(address, ipaddress.IPv6Address) and address.ipv4_mapped:
        return address.ipv4_mapped
    return address


def is_domain(query: str) -> bool:
    return (
        "." in query
        and not DOMAIN_EDGES.search(query)
        and DOMAIN_CHARSET.match(query) is not None
        and parse_address(query) is None
    )


def classify_query(raw_query: str) -> ClassifiedQuery:
    """
    Classify and normalize a raw query.

    Raises:
        InvalidInputError: Neither an IP address nor a domain name
    """
    query = (raw_query or "").strip()
    if not query:
        raise InvalidInputError("Query must be a non-empty string")

    address = parse_address(query)
    if address is not None:
        value = str(address)
        return ClassifiedQuery(kind=QueryKind.IP, value=value, cache_key=value)

    if is_domain(query):
        return ClassifiedQuery(kind=QueryKind.DOMAIN, value=query, cache_key=query.lower())

    raise InvalidInputError(
        f"Query format not recognized as a valid IP address or domain: {query}",
        details={"query": query},
    )
