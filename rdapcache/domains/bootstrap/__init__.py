"""
Bootstrap Domain - Discovery of authoritative RDAP servers.

This domain handles:
- Loading and refreshing the IANA bootstrap registries
- Matching domains and IP addresses to RDAP base URLs
"""

from .contracts import RegistryProvider, ServerLocator
from .locator import ServiceLocator, build_query_url
from .models import (
    BootstrapDocument,
    BootstrapRegistry,
    BootstrapSources,
    QueryKind,
    RegistryCacheState,
    RegistryKind,
    ServiceEntry,
)
from .registry import BootstrapFetchError, BootstrapRegistryCache

__all__ = [
    # Contracts
    "RegistryProvider",
    "ServerLocator",
    # Models
    "BootstrapDocument",
    "BootstrapRegistry",
    "BootstrapSources",
    "QueryKind",
    "RegistryCacheState",
    "RegistryKind",
    "ServiceEntry",
    # Implementations
    "BootstrapRegistryCache",
    "BootstrapFetchError",
    "ServiceLocator",
    "build_query_url",
]
