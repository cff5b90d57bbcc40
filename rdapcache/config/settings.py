"""
Settings - Application configuration using Pydantic Settings.

Loads from environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from rdapcache import __version__


class Settings(BaseSettings):
    """Application settings."""

    # IANA bootstrap registries
    bootstrap_domain_url: str = "https://data.iana.org/rdap/dns.json"
    bootstrap_ipv4_url: str = "https://data.iana.org/rdap/ipv4.json"
    bootstrap_ipv6_url: str = "https://data.iana.org/rdap/ipv6.json"
    bootstrap_max_age_hours: float = 24.0

    # Upstream RDAP requests
    rdap_timeout_seconds: float = 10.0
    rdap_max_redirects: int = 5
    rdap_max_retries: int = 2
    rdap_backoff_base_seconds: float = 1.0
    rdap_backoff_jitter_seconds: float = 1.0
    rdap_retry_after_jitter_seconds: float = 0.5
    rdap_user_agent: str = f"rdapcache/{__version__}"

    # Paths
    data_dir: Path = Path("data")
    db_path: Path = Path("data/rdapcache.db")

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_debug: bool = False

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
