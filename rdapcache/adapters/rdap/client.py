"""
RDAP Request Executor - Resilient GET against upstream RDAP servers.

Turns an unreliable HTTP dependency into a total function from URL to
``QueryResult``. Every terminal outcome is a value; nothing raises.

Policy per response:
- 2xx: success, body checked for a known ``objectClassName``
- 3xx with Location: follow, attempt count resets (max 5 redirects)
- 404: not found, never retried
- 429: retried after max(Retry-After, backoff) + jitter
- other 4xx: client error, never retried
- 5xx and network failures: retried after exponential backoff + jitter
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from rdapcache.config.errors import ErrorCode
from rdapcache.domains.lookup.models import (
    OBJECT_CLASS_KINDS,
    QueryResult,
    StructuredError,
    Success,
)

from .models import RDAP_ACCEPT, ExecutorConfig, RequestAttemptState

logger = logging.getLogger(__name__)

__all__ = [
    "RdapRequestExecutor",
    "RetryableOutcome",
    "create_http_client",
    "parse_retry_after",
]


class RetryableOutcome(Exception):
    """Transient failure; ``error`` is returned once retries run out."""

    def __init__(self, error: StructuredError, retry_after: float | None = None) -> None:
        self.error = error
        self.retry_after = retry_after
        super().__init__(error.title)


class _Redirect:
    """Follow-up location of a 3xx response."""

    __slots__ = ("location",)

    def __init__(self, location: str) -> None:
        self.location = location


def create_http_client(config: ExecutorConfig | None = None) -> httpx.AsyncClient:
    """
    HTTP client shared by the executor and the bootstrap loader.

    Redirects are off; the executor follows them itself.
    """
    config = config or ExecutorConfig()
    return httpx.AsyncClient(
        timeout=config.timeout_seconds,
        follow_redirects=False,
        headers={"Accept": RDAP_ACCEPT, "User-Agent": config.user_agent},
    )


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Seconds from a Retry-After header (delta-seconds or HTTP-date)."""
    if not value:
        return None
    value = value.strip()
    if value.isdigit():
        return float(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


class RdapRequestExecutor:
    """
    Fetches RDAP URLs with bounded retries and redirects.

    Example:
        >>> executor = RdapRequestExecutor(create_http_client())
        >>> result = await executor.execute("https://rdap.example/domain/example.com")
        >>> result.tag
        'ok'
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        config: ExecutorConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize executor.

        Args:
            http_client: Client used for every request
            config: Retry, redirect and timeout settings
            sleep: Awaitable delay used between retries
        """
        self._client = http_client
        self.config = config or ExecutorConfig()
        self._sleep = sleep
        # 2^attempt * base, attempt counted from 0
        self._backoff = wait_exponential(multiplier=self.config.backoff_base_seconds, exp_base=2)
        self._jitter = wait_random(0, self.config.backoff_jitter_seconds)
        self._retry_after_jitter = wait_random(0, self.config.retry_after_jitter_seconds)

    async def execute(self, url: str) -> QueryResult:
        """
        Fetch ``url`` until a terminal outcome is reached.

        Args:
            url: Absolute RDAP query URL

        Returns:
            Success with the RDAP object, or StructuredError
        """
        state = RequestAttemptState()
        current_url = url

        while True:
            outcome = await self._fetch_with_retries(current_url, state)
            if not isinstance(outcome, _Redirect):
                return outcome

            if state.redirect_count >= self.config.max_redirects:
                logger.error(
                    "Exceeded %d redirects fetching %s", self.config.max_redirects, url
                )
                return StructuredError(
                    error_code=ErrorCode.TOO_MANY_REDIRECTS,
                    code=508,
                    title="Too Many Redirects",
                    description=[
                        f"Exceeded maximum redirect limit ({self.config.max_redirects}) fetching {url}"
                    ],
                )

            logger.info("Following redirect from %s to %s", current_url, outcome.location)
            state.redirect_count += 1
            state.attempt = 0
            current_url = outcome.location

    async def _fetch_with_retries(
        self, url: str, state: RequestAttemptState
    ) -> StructuredError | Success | _Redirect:
        """Request one URL, retrying transient failures."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=self._wait,
            retry=retry_if_exception_type(RetryableOutcome),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    state.attempt = attempt.retry_state.attempt_number - 1
                    logger.debug(
                        "Attempt %d/%d: requesting %s",
                        state.attempt + 1,
                        self.config.max_retries + 1,
                        url,
                    )
                    outcome = self._interpret(url, await self._send(url))
        except RetryableOutcome as e:
            logger.error(
                "%s for %s after %d attempts", e.error.title, url, state.attempt + 1
            )
            return e.error

        return outcome

    async def _send(self, url: str) -> httpx.Response | StructuredError:
        """GET ``url``; network failures raise RetryableOutcome."""
        try:
            return await self._client.get(url)
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            logger.error("Cannot request %s: %s", url, e)
            return StructuredError(
                error_code=ErrorCode.INTERNAL_ERROR,
                code=500,
                title="Internal Client Error",
                description=[f"The request to {url} could not be sent: {e}"],
            )
        except httpx.TransportError as e:
            raise RetryableOutcome(
                StructuredError(
                    error_code=ErrorCode.GATEWAY_TIMEOUT,
                    code=504,
                    title="Gateway Timeout",
                    description=[
                        f"Network error connecting to {url} after max retries: "
                        f"{type(e).__name__}: {e}"
                    ],
                )
            ) from e
        except Exception as e:
            logger.exception("Unexpected error requesting %s", url)
            return StructuredError(
                error_code=ErrorCode.INTERNAL_ERROR,
                code=500,
                title="Internal Client Error",
                description=[f"An unexpected error occurred while requesting {url}: {e}"],
            )

    def _interpret(
        self, url: str, response: httpx.Response | StructuredError
    ) -> StructuredError | Success | _Redirect:
        """Apply the status policy; retryable statuses raise RetryableOutcome."""
        if isinstance(response, StructuredError):
            return response

        status = response.status_code

        if 200 <= status < 300:
            return self._success(url, response)

        if 300 <= status < 400 and "location" in response.headers:
            return self._redirect(url, response)

        if status == 404:
            logger.info("RDAP Not Found (404) for %s", url)
            return StructuredError.from_rdap_body(
                _json_body(response), ErrorCode.NOT_FOUND
            ) or StructuredError(
                error_code=ErrorCode.NOT_FOUND,
                code=404,
                title="Not Found",
                description=["The RDAP server could not find the requested resource."],
            )

        if status == 429:
            raise RetryableOutcome(
                StructuredError.from_rdap_body(_json_body(response), ErrorCode.RATE_LIMITED)
                or StructuredError(
                    error_code=ErrorCode.RATE_LIMITED,
                    code=429,
                    title="Too Many Requests",
                    description=[f"Rate limited on {url} after max retries."],
                ),
                retry_after=parse_retry_after(response.headers.get("retry-after")),
            )

        if 400 <= status < 500:
            logger.error("Client error %d for %s", status, url)
            return StructuredError.from_rdap_body(
                _json_body(response), ErrorCode.CLIENT_ERROR
            ) or StructuredError(
                error_code=ErrorCode.CLIENT_ERROR,
                code=status,
                title=f"Client Error: {status}",
                description=[f"An error occurred while requesting {url}."],
            )

        if 500 <= status < 600:
            raise RetryableOutcome(
                StructuredError.from_rdap_body(_json_body(response), ErrorCode.SERVER_ERROR)
                or StructuredError(
                    error_code=ErrorCode.SERVER_ERROR,
                    code=status,
                    title=f"Server Error: {status}",
                    description=[f"Received server error from {url} after max retries."],
                )
            )

        logger.error("Unhandled HTTP status %d for %s", status, url)
        return StructuredError(
            error_code=ErrorCode.INTERNAL_ERROR,
            code=status,
            title=f"Unhandled HTTP Status: {status}",
            description=[f"Received an unexpected HTTP status code from {url}."],
        )

    def _success(self, url: str, response: httpx.Response) -> StructuredError | Success:
        content_type = response.headers.get("content-type", "")
        if RDAP_ACCEPT not in content_type:
            logger.warning(
                "Success status with unexpected Content-Type %r for %s", content_type, url
            )

        body = _json_body(response)
        kind = (
            OBJECT_CLASS_KINDS.get(body.get("objectClassName"))
            if isinstance(body, dict)
            else None
        )
        if kind is None:
            logger.error("Unexpected RDAP response shape from %s", url)
            return StructuredError(
                error_code=ErrorCode.UNEXPECTED_RESPONSE_SHAPE,
                code=500,
                title="Client Response Error",
                description=[
                    "Received unexpected object shape from RDAP server; expected a "
                    "domain or ip network object."
                ],
            )
        return Success(payload=body, object_kind=kind)

    def _redirect(self, url: str, response: httpx.Response) -> StructuredError | _Redirect:
        location = response.headers["location"]
        try:
            target = httpx.URL(url).join(location)
        except httpx.InvalidURL:
            target = None

        if target is None or target.scheme not in ("http", "https") or not target.host:
            logger.error("Invalid redirect URL %r received from %s", location, url)
            return StructuredError(
                error_code=ErrorCode.BAD_GATEWAY,
                code=502,
                title="Bad Gateway",
                description=[
                    f"Invalid redirect URL received from upstream RDAP server: {location}"
                ],
            )
        return _Redirect(str(target))

    def _wait(self, retry_state: RetryCallState) -> float:
        """Exponential backoff, or the server's Retry-After when larger."""
        backoff = self._backoff(retry_state)
        error = retry_state.outcome.exception() if retry_state.outcome else None
        retry_after = getattr(error, "retry_after", None)
        if retry_after is not None:
            return max(retry_after, backoff) + self._retry_after_jitter(retry_state)
        return backoff + self._jitter(retry_state)

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "%s; retrying in %.2fs (attempt %d)",
            error,
            delay,
            retry_state.attempt_number + 1,
        )


def _json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None
