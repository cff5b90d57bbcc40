"""
Adapters - External service integrations.

All network and storage access is wrapped here to isolate domains from third-party changes.
"""

from .rdap import ExecutorConfig, RdapRequestExecutor, create_http_client
from .sqlite import SQLiteCacheRepository

__all__ = [
    # Upstream RDAP servers
    "RdapRequestExecutor",
    "ExecutorConfig",
    "create_http_client",
    # Persistent cache
    "SQLiteCacheRepository",
]
