"""
RDAPCache - Cached RDAP lookups for domains and IP networks.

Example:
    >>> from rdapcache.domains.lookup import QueryOrchestrator
    >>> orchestrator = QueryOrchestrator.from_settings(settings, store)
    >>> result = await orchestrator.lookup("example.com")
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
