"""
Lookup Models - Data types for the lookup domain.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from rdapcache.config.errors import ErrorCode
from rdapcache.domains.bootstrap.models import QueryKind


class CacheStatus(str, Enum):
    """Whether a response came from the cache."""

    HIT = "hit"
    MISS = "miss"


# RDAP objectClassName -> kind of query it answers
OBJECT_CLASS_KINDS = {
    "domain": QueryKind.DOMAIN,
    "ip network": QueryKind.IP,
}


class Success(BaseModel):
    """Upstream RDAP object of a known class."""

    tag: Literal["ok"] = "ok"
    payload: dict[str, Any]
    object_kind: QueryKind

    model_config = {"frozen": True}


class StructuredError(BaseModel):
    """RDAP-style error value: numeric code, title and description lines."""

    tag: Literal["error"] = "error"
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    code: int
    title: str = ""
    description: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def http_status(self) -> int:
        """Caller-facing HTTP status: own code when it is an error status, else 404."""
        if 400 <= self.code < 600:
            return self.code
        return 404

    def to_envelope(self) -> dict[str, Any]:
        """JSON body in RDAP error form."""
        return {
            "errorCode": self.code,
            "title": self.title,
            "description": list(self.description),
        }

    @classmethod
    def from_rdap_body(cls, body: Any, error_code: ErrorCode) -> StructuredError | None:
        """
        Adopt a server-provided RDAP error body.

        Returns None unless ``body`` has an integer ``errorCode`` and a
        list ``description``.
        """
        if not isinstance(body, dict):
            return None
        code = body.get("errorCode")
        description = body.get("description")
        if not isinstance(code, int) or isinstance(code, bool) or not isinstance(description, list):
            return None
        return cls(
            error_code=error_code,
            code=code,
            title=str(body.get("title") or ""),
            description=[str(line) for line in description],
        )


QueryResult = Annotated[Union[Success, StructuredError], Field(discriminator="tag")]


class ClassifiedQuery(BaseModel):
    """A validated query and the key it is cached under."""

    kind: QueryKind
    value: str
    cache_key: str

    model_config = {"frozen": True}


class LookupResponse(BaseModel):
    """Successful lookup, from the cache or live."""

    payload: dict[str, Any]
    type: QueryKind
    cache_status: CacheStatus

    def to_dict(self) -> dict[str, Any]:
        """Convert to API-friendly dictionary."""
        return {
            "rdapResponse": self.payload,
            "cacheStatus": self.cache_status.value,
            "type": self.type.value,
        }
