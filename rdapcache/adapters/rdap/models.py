"""
RDAP Adapter Models - Configuration and per-request state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from rdapcache import __version__

if TYPE_CHECKING:
    from rdapcache.config import Settings

RDAP_ACCEPT = "application/rdap+json"


class ExecutorConfig(BaseModel):
    """Configuration for the RDAP request executor."""

    timeout_seconds: float = Field(default=10.0, gt=0)
    max_redirects: int = Field(default=5, ge=0)
    max_retries: int = Field(default=2, ge=0)
    backoff_base_seconds: float = Field(default=1.0, ge=0)
    backoff_jitter_seconds: float = Field(default=1.0, ge=0)
    retry_after_jitter_seconds: float = Field(default=0.5, ge=0)
    user_agent: str = Field(default=f"rdapcache/{__version__}")

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> ExecutorConfig:
        return cls(
            timeout_seconds=settings.rdap_timeout_seconds,
            max_redirects=settings.rdap_max_redirects,
            max_retries=settings.rdap_max_retries,
            backoff_base_seconds=settings.rdap_backoff_base_seconds,
            backoff_jitter_seconds=settings.rdap_backoff_jitter_seconds,
            retry_after_jitter_seconds=settings.rdap_retry_after_jitter_seconds,
            user_agent=settings.rdap_user_agent,
        )


@dataclass
class RequestAttemptState:
    """
    Loop state of one logical request.

    ``attempt`` counts retries against the current URL and resets to 0 on
    every redirect; ``redirect_count`` only grows.
    """

    attempt: int = 0
    redirect_count: int = 0
