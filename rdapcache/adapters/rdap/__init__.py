"""
RDAP Adapter - Resilient HTTP access to upstream RDAP servers.

This is the ONLY place that issues RDAP queries.
"""

from .client import (
    RdapRequestExecutor,
    RetryableOutcome,
    create_http_client,
    parse_retry_after,
)
from .models import RDAP_ACCEPT, ExecutorConfig, RequestAttemptState

__all__ = [
    "RdapRequestExecutor",
    "RetryableOutcome",
    "create_http_client",
    "parse_retry_after",
    "ExecutorConfig",
    "RequestAttemptState",
    "RDAP_ACCEPT",
]
