"""Assertion-mode executor: one HTTP request, one status code check."""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

import aiohttp
from yarl import URL

from endy._internal.errors import RequestBuildError, TransportError
from endy._internal.logging import get_logger
from endy.engine.models import CaseResult, CaseStatus

if TYPE_CHECKING:
    from endy._internal.types import HeaderPairs
    from endy.engine.deadline import Deadline
    from endy.suite.models import TestCase

logger = get_logger("engine.api")

# RFC 9110 token characters.
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


@dataclass(frozen=True)
class PreparedRequest:
    """A validated request ready to be sent.

    Attributes:
        method: HTTP method.
        url: Parsed absolute URL.
        headers: Header pairs in declaration order.
        payload: Encoded body, or None when the case has no body.
    """

    method: str
    url: URL
    headers: HeaderPairs
    payload: bytes | None

    @property
    def body_text(self) -> str:
        """Return the payload as text for log records."""
        return self.payload.decode("utf-8") if self.payload else ""


def encode_body(body: str) -> bytes | None:
    """JSON-encode a literal body, or return None for an empty one.

    The body string itself is serialized, so ``abc`` is sent as ``"abc"``.

    Args:
        body: Literal body from the test case.

    Returns:
        UTF-8 encoded JSON, or None.
    """
    if not body:
        return None
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


def prepare_request(case: TestCase) -> PreparedRequest:
    """Validate a test case and build the request it describes.

    Args:
        case: The test case.

    Returns:
        The prepared request.

    Raises:
        RequestBuildError: If the method or URL is invalid.
    """
    if not _METHOD_RE.fullmatch(case.method):
        msg = f"invalid HTTP method {case.method!r}"
        raise RequestBuildError(msg, case=case)

    try:
        url = URL(case.url)
    except (TypeError, ValueError) as exc:
        msg = f"invalid URL {case.url!r}: {exc}"
        raise RequestBuildError(msg, case=case) from exc

    if url.scheme not in ("http", "https") or not url.host:
        msg = f"invalid URL {case.url!r}: expected an absolute http(s) URL"
        raise RequestBuildError(msg, case=case)

    return PreparedRequest(
        method=case.method,
        url=url,
        headers=case.header_pairs(),
        payload=encode_body(case.body),
    )


async def execute_api_test(
    case: TestCase,
    session: aiohttp.ClientSession,
    deadline: Deadline,
) -> CaseResult:
    """Send one request for *case* and compare the response status.

    A status mismatch is returned as an ``ASSERTION_FAILED`` result rather
    than raised, so the caller decides how to stop the run.

    Args:
        case: The test case to execute.
        session: Shared HTTP session.
        deadline: Run-wide deadline bounding the request.

    Returns:
        A PASSED or ASSERTION_FAILED CaseResult.

    Raises:
        RequestBuildError: If the request cannot be built.
        TransportError: If sending or reading fails.
        DeadlineExceededError: If the run deadline elapses.
    """
    try:
        request = prepare_request(case)
    except RequestBuildError as exc:
        logger.error("create http request", extra={"fields": {"url": case.url, "error": str(exc)}})
        raise

    start = time.monotonic()
    try:
        async with deadline.scope(case):
            status_code, response_body = await _send(session, request, case)
    except (RequestBuildError, TransportError) as exc:
        logger.error(
            "send http request",
            extra={"fields": {"url": case.url, "method": case.method, "error": str(exc)}},
        )
        raise
    latency_ms = (time.monotonic() - start) * 1000

    fields = {
        "url": case.url,
        "method": case.method,
        "body": request.body_text,
    }

    if status_code == case.expected_status:
        logger.info("Test passed", extra={"fields": fields})
        status = CaseStatus.PASSED
    else:
        logger.error(
            "Test failed",
            extra={
                "fields": {
                    **fields,
                    "expected_status": case.expected_status,
                    "status_code": status_code,
                    "response_body": response_body,
                }
            },
        )
        status = CaseStatus.ASSERTION_FAILED

    return CaseResult(
        case=case,
        status=status,
        sent_body=request.body_text,
        status_code=status_code,
        response_body=response_body,
        latency_ms=latency_ms,
    )


async def _send(
    session: aiohttp.ClientSession,
    request: PreparedRequest,
    case: TestCase,
) -> tuple[int, str]:
    """Send the request and read the full response body.

    Content-Type is sent only when the case declares it.
    """
    try:
        async with session.request(
            request.method,
            request.url,
            headers=request.headers,
            data=request.payload,
            skip_auto_headers=("Content-Type",),
        ) as resp:
            raw = await resp.read()
            return resp.status, raw.decode("utf-8", errors="replace")
    except aiohttp.InvalidURL as exc:
        msg = f"invalid URL {case.url!r}: {exc}"
        raise RequestBuildError(msg, case=case) from exc
    except aiohttp.ClientError as exc:
        msg = f"{type(exc).__name__}: {exc}"
        raise TransportError(msg, case=case) from exc
    except ValueError as exc:
        msg = f"create http request: {exc}"
        raise RequestBuildError(msg, case=case) from exc
