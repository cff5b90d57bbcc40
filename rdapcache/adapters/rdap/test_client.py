"""
Tests for the RDAP request executor.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

import httpx
import pytest

from rdapcache.config.errors import ErrorCode
from rdapcache.domains.bootstrap.models import QueryKind
from rdapcache.domains.lookup.models import StructuredError, Success

from .client import RdapRequestExecutor, create_http_client, parse_retry_after
from .models import RDAP_ACCEPT, ExecutorConfig

DOMAIN_URL = "https://rdap.example/domain/example.com"
DOMAIN_BODY = {"objectClassName": "domain", "ldhName": "example.com"}


def rdap_json(status: int, body: dict, **headers: str) -> httpx.Response:
    return httpx.Response(
        status,
        json=body,
        headers={"content-type": RDAP_ACCEPT, **headers},
    )


@pytest.fixture
def delays() -> list[float]:
    """Delays requested by the executor between attempts."""
    return []


@pytest.fixture
def sleep(delays: list[float]) -> Callable[[float], Awaitable[None]]:
    async def record(delay: float) -> None:
        delays.append(delay)

    return record


@pytest.fixture
def config() -> ExecutorConfig:
    """Deterministic waits: no jitter."""
    return ExecutorConfig(
        backoff_base_seconds=1.0,
        backoff_jitter_seconds=0.0,
        retry_after_jitter_seconds=0.0,
    )


@pytest.fixture
def make_executor(
    config: ExecutorConfig, sleep: Callable[[float], Awaitable[None]]
) -> Callable[[Callable[[httpx.Request], httpx.Response]], RdapRequestExecutor]:
    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> RdapRequestExecutor:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return RdapRequestExecutor(client, config=config, sleep=sleep)

    return factory


# --- Success ---


async def test_success_returns_payload(make_executor, delays: list[float]) -> None:
    """2xx with a domain object is a success on the first attempt."""
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return rdap_json(200, DOMAIN_BODY)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, Success)
    assert result.object_kind == QueryKind.DOMAIN
    assert result.payload == DOMAIN_BODY
    assert calls == [DOMAIN_URL]
    assert delays == []


async def test_ip_network_object_is_ip_kind(make_executor) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return rdap_json(200, {"objectClassName": "ip network", "cidr": "8.8.8.0/24"})

    result = await make_executor(handler).execute("https://rdap.example/ip/8.8.8.8")

    assert isinstance(result, Success)
    assert result.object_kind == QueryKind.IP


async def test_unknown_object_class_is_unexpected_shape(make_executor) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return rdap_json(200, {"objectClassName": "entity"})

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.UNEXPECTED_RESPONSE_SHAPE
    assert result.http_status == 500


async def test_non_json_body_is_unexpected_shape(make_executor) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>hello</html>")

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.UNEXPECTED_RESPONSE_SHAPE


# --- Not found and client errors ---


async def test_404_is_not_retried(make_executor, delays: list[float]) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(404)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.NOT_FOUND
    assert result.code == 404
    assert result.title == "Not Found"
    assert calls == 1
    assert delays == []


async def test_404_passes_through_server_error_body(make_executor) -> None:
    body = {"errorCode": 404, "title": "No such domain", "description": ["gone"]}

    def handler(request: httpx.Request) -> httpx.Response:
        return rdap_json(404, body)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.to_envelope() == body


async def test_400_is_client_error(make_executor) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(400)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.CLIENT_ERROR
    assert result.http_status == 400
    assert calls == 1


# --- Retries ---


async def test_429_exhausts_retries(make_executor, delays: list[float]) -> None:
    """Persistent 429 gives three attempts then a rate-limit error."""
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(429)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.RATE_LIMITED
    assert result.http_status == 429
    assert calls == 3
    assert delays == [1.0, 2.0]


async def test_429_honors_retry_after(make_executor, delays: list[float]) -> None:
    queue = [httpx.Response(429, headers={"retry-after": "3"})]

    def handler(request: httpx.Request) -> httpx.Response:
        return queue.pop(0) if queue else rdap_json(200, DOMAIN_BODY)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, Success)
    assert delays == [3.0]


async def test_backoff_wins_over_smaller_retry_after(make_executor, delays: list[float]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, headers={"retry-after": "0"})

    await make_executor(handler).execute(DOMAIN_URL)

    assert delays == [1.0, 2.0]


async def test_5xx_retried_then_success(make_executor, delays: list[float]) -> None:
    queue = [httpx.Response(503), httpx.Response(502)]

    def handler(request: httpx.Request) -> httpx.Response:
        return queue.pop(0) if queue else rdap_json(200, DOMAIN_BODY)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, Success)
    assert delays == [1.0, 2.0]


async def test_5xx_exhausted_is_server_error(make_executor) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.SERVER_ERROR
    assert result.code == 503


async def test_network_error_is_gateway_timeout(make_executor, delays: list[float]) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.ConnectError("connection refused", request=request)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.GATEWAY_TIMEOUT
    assert result.http_status == 504
    assert calls == 3
    assert len(delays) == 2


async def test_timeout_then_success(make_executor) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise httpx.ReadTimeout("timed out", request=request)
        return rdap_json(200, DOMAIN_BODY)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, Success)
    assert calls == 2


async def test_unexpected_exception_is_internal_error(make_executor, delays: list[float]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("boom")

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.INTERNAL_ERROR
    assert result.http_status == 500
    assert delays == []


async def test_zero_retries_makes_single_attempt(
    sleep: Callable[[float], Awaitable[None]], delays: list[float]
) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(500)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    executor = RdapRequestExecutor(client, config=ExecutorConfig(max_retries=0), sleep=sleep)

    result = await executor.execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert calls == 1
    assert delays == []


# --- Redirects ---


async def test_redirect_followed(make_executor) -> None:
    target = "https://rdap.other.example/domain/example.com"
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if str(request.url) == DOMAIN_URL:
            return httpx.Response(302, headers={"location": target})
        return rdap_json(200, DOMAIN_BODY)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, Success)
    assert calls == [DOMAIN_URL, target]


async def test_relative_redirect_resolved_against_current_url(make_executor) -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        if len(calls) == 1:
            return httpx.Response(301, headers={"location": "/v2/domain/example.com"})
        return rdap_json(200, DOMAIN_BODY)

    await make_executor(handler).execute(DOMAIN_URL)

    assert calls[1] == "https://rdap.example/v2/domain/example.com"


async def test_endless_redirects_stop_after_limit(make_executor) -> None:
    """Five redirects are followed; the sixth response ends the request."""
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(302, headers={"location": f"https://rdap.example/hop/{calls}"})

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.TOO_MANY_REDIRECTS
    assert result.http_status == 508
    assert calls == 6


async def test_redirect_resets_attempt_count(make_executor, delays: list[float]) -> None:
    """Each redirect target gets its own full retry allowance."""
    target = "https://rdap.other.example/domain/example.com"
    first = iter([httpx.Response(503), httpx.Response(302, headers={"location": target})])
    second = [httpx.Response(503), httpx.Response(503)]

    def handler(request: httpx.Request) -> httpx.Response:
        if str(request.url) == DOMAIN_URL:
            return next(first)
        return second.pop(0) if second else rdap_json(200, DOMAIN_BODY)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, Success)
    assert delays == [1.0, 1.0, 2.0]


async def test_invalid_redirect_is_bad_gateway(make_executor) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"location": "ftp://rdap.example/domain/x"})

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.BAD_GATEWAY
    assert result.http_status == 502


async def test_3xx_without_location_is_error(make_executor) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(304)

    result = await make_executor(handler).execute(DOMAIN_URL)

    assert isinstance(result, StructuredError)
    assert result.error_code == ErrorCode.INTERNAL_ERROR
    assert result.code == 304
    assert result.http_status == 404


# --- Helpers ---


def test_parse_retry_after_seconds() -> None:
    assert parse_retry_after("120") == 120.0
    assert parse_retry_after(None) is None
    assert parse_retry_after("soon") is None


def test_parse_retry_after_http_date() -> None:
    now = datetime(2015, 10, 21, 7, 27, 0, tzinfo=timezone.utc)
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", now=now) == 60.0


def test_parse_retry_after_past_date_is_zero() -> None:
    now = datetime(2015, 10, 21, 8, 0, 0, tzinfo=timezone.utc)
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT", now=now) == 0.0


def test_create_http_client_headers() -> None:
    client = create_http_client(ExecutorConfig(user_agent="probe/1.0"))
    assert client.headers["accept"] == RDAP_ACCEPT
    assert client.headers["user-agent"] == "probe/1.0"
    assert client.follow_redirects is False
