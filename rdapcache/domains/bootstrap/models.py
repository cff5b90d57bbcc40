"""
Bootstrap Models - Data types for the IANA bootstrap registries.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Union

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from rdapcache.config import Settings

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


class QueryKind(str, Enum):
    """What a query names; also the RDAP path segment."""

    DOMAIN = "domain"
    IP = "ip"


class RegistryKind(str, Enum):
    """The three bootstrap directories."""

    DOMAIN = "domain"
    IPV4 = "ipv4"
    IPV6 = "ipv6"


class BootstrapDocument(BaseModel):
    """Wire format of an IANA bootstrap file (RFC 9224)."""

    version: str = Field(..., min_length=1)
    publication: str | None = None
    description: str | None = None
    services: list[tuple[list[str], list[str]]]


class BootstrapSources(BaseModel):
    """Where the registries are fetched from."""

    domain_url: str = "https://data.iana.org/rdap/dns.json"
    ipv4_url: str = "https://data.iana.org/rdap/ipv4.json"
    ipv6_url: str = "https://data.iana.org/rdap/ipv6.json"
    max_age: timedelta = timedelta(hours=24)

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> BootstrapSources:
        return cls(
            domain_url=settings.bootstrap_domain_url,
            ipv4_url=settings.bootstrap_ipv4_url,
            ipv6_url=settings.bootstrap_ipv6_url,
            max_age=timedelta(hours=settings.bootstrap_max_age_hours),
        )

    def urls(self) -> dict[RegistryKind, str]:
        return {
            RegistryKind.DOMAIN: self.domain_url,
            RegistryKind.IPV4: self.ipv4_url,
            RegistryKind.IPV6: self.ipv6_url,
        }


@dataclass(frozen=True)
class ServiceEntry:
    """One service row: match keys and the base URLs serving them."""

    match_keys: tuple[str, ...]
    base_urls: tuple[str, ...]
    # Parsed form of match_keys for IP registries; invalid CIDRs are dropped
    networks: tuple[IPNetwork, ...] = ()


@dataclass(frozen=True)
class BootstrapRegistry:
    """Immutable snapshot of one bootstrap directory."""

    version: str
    publication: str | None
    entries: tuple[ServiceEntry, ...] = ()

    @classmethod
    def from_document(cls, document: BootstrapDocument, kind: RegistryKind) -> BootstrapRegistry:
        entries = []
        for match_keys, base_urls in document.services:
            if kind is RegistryKind.DOMAIN:
                entries.append(
                    ServiceEntry(
                        match_keys=tuple(key.lower() for key in match_keys),
                        base_urls=tuple(base_urls),
                    )
                )
            else:
                entries.append(
                    ServiceEntry(
                        match_keys=tuple(match_keys),
                        base_urls=tuple(base_urls),
                        networks=_parse_networks(match_keys),
                    )
                )
        return cls(
            version=document.version,
            publication=document.publication,
            entries=tuple(entries),
        )


@dataclass(frozen=True)
class RegistryCacheState:
    """
    All three registries plus the time they were loaded.

    Replaced as a whole on every successful refresh, so readers never
    see registries from different loads mixed together.
    """

    domain: BootstrapRegistry | None = None
    ipv4: BootstrapRegistry | None = None
    ipv6: BootstrapRegistry | None = None
    last_loaded_at: datetime | None = None

    @property
    def is_loaded(self) -> bool:
        return self.last_loaded_at is not None

    def is_fresh(self, now: datetime, max_age: timedelta) -> bool:
        """Fresh iff loaded and younger than ``max_age``."""
        if self.last_loaded_at is None:
            return False
        return now - self.last_loaded_at < max_age

    def registry_for(self, kind: RegistryKind) -> BootstrapRegistry | None:
        return {
            RegistryKind.DOMAIN: self.domain,
            RegistryKind.IPV4: self.ipv4,
            RegistryKind.IPV6: self.ipv6,
        }[kind]

    def summary(self) -> dict[str, object]:
        """Versions and entry counts, for display."""
        registries: dict[str, object] = {}
        for kind in RegistryKind:
            registry = self.registry_for(kind)
            registries[kind.value] = (
                {
                    "version": registry.version,
                    "publication": registry.publication,
                    "entries": len(registry.entries),
                }
                if registry
                else None
            )
        return {
            "last_loaded_at": self.last_loaded_at.isoformat() if self.last_loaded_at else None,
            "registries": registries,
        }


def _parse_networks(keys: list[str]) -> tuple[IPNetwork, ...]:
    networks: list[IPNetwork] = []
    for key in keys:
        try:
            networks.append(ipaddress.ip_network(key, strict=False))
        except ValueError:
            continue
    return tuple(networks)
