"""
Lookup Domain - Cache-aside RDAP resolution.

This domain handles:
- Classifying raw queries as domains or IP addresses
- The uniform success-or-error result type
- Reading and populating the persistent cache
"""

from .classifier import classify_query, is_domain, parse_address
from .contracts import CacheStore, LookupService, RequestExecutor
from .models import (
    OBJECT_CLASS_KINDS,
    CacheStatus,
    ClassifiedQuery,
    LookupResponse,
    QueryResult,
    StructuredError,
    Success,
)
from .orchestrator import QueryOrchestrator, extract_cidr

__all__ = [
    # Contracts
    "CacheStore",
    "LookupService",
    "RequestExecutor",
    # Models
    "OBJECT_CLASS_KINDS",
    "CacheStatus",
    "ClassifiedQuery",
    "LookupResponse",
    "QueryResult",
    "StructuredError",
    "Success",
    # Implementations
    "QueryOrchestrator",
    "classify_query",
    "extract_cidr",
    "is_domain",
    "parse_address",
]
