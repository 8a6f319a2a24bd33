"""Integration tests for the assertion-mode executor."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import aiohttp
import pytest

from endy._internal.errors import DeadlineExceededError, RequestBuildError, TransportError
from endy.engine.api import encode_body, execute_api_test, prepare_request
from endy.engine.deadline import Deadline
from endy.engine.models import CaseStatus
from endy.suite.models import HeaderSpec, TestCase

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from tests.conftest import Target


def _case(url: str, method: str = "GET", expected_status: int = 200, **kwargs: object) -> TestCase:
    return TestCase(url=url, method=method, expected_status=expected_status, **kwargs)  # type: ignore[arg-type]


@pytest.fixture
async def session() -> AsyncIterator[aiohttp.ClientSession]:
    async with aiohttp.ClientSession() as s:
        yield s


class TestEncodeBody:
    def test_empty_body_sends_nothing(self):
        assert encode_body("") is None

    def test_body_is_json_string(self):
        assert encode_body('say "hi"') == b'"say \\"hi\\""'

    def test_non_ascii_kept_as_utf8(self):
        assert encode_body("café") == '"café"'.encode()


class TestPrepareRequest:
    @pytest.mark.parametrize("method", ["GE T", "", "GET\r\n"])
    def test_invalid_method(self, method: str):
        with pytest.raises(RequestBuildError, match="invalid HTTP method"):
            prepare_request(_case("http://x/ok", method=method))

    @pytest.mark.parametrize("url", ["ftp://x/file", "/relative/path", "http://"])
    def test_invalid_url(self, url: str):
        with pytest.raises(RequestBuildError, match="invalid URL"):
            prepare_request(_case(url))

    def test_custom_method_token_allowed(self):
        assert prepare_request(_case("http://x/ok", method="PURGE")).method == "PURGE"


class TestExecuteApiTest:
    async def test_matching_status_passes(self, target: Target, session: aiohttp.ClientSession):
        case = _case(f"{target.url}/status/200")
        result = await execute_api_test(case, session, Deadline(5.0))

        assert result.status is CaseStatus.PASSED
        assert result.passed
        assert result.status_code == 200
        assert result.latency_ms > 0
        assert target.hits == ["GET /status/200"]

    async def test_non_200_expected_status(self, target: Target, session: aiohttp.ClientSession):
        case = _case(f"{target.url}/status/404", expected_status=404)
        result = await execute_api_test(case, session, Deadline(5.0))
        assert result.passed

    async def test_mismatch_returns_failed_result(
        self,
        target: Target,
        session: aiohttp.ClientSession,
    ):
        """A status mismatch is reported with the full response context."""
        case = _case(f"{target.url}/status/500", method="POST", body="payload")
        result = await execute_api_test(case, session, Deadline(5.0))

        assert result.status is CaseStatus.ASSERTION_FAILED
        assert result.status_code == 500
        assert result.response_body == "status 500"
        assert result.sent_body == '"payload"'

    async def test_body_sent_json_encoded(self, target: Target, session: aiohttp.ClientSession):
        case = _case(f"{target.url}/echo/body", method="POST", body="hello")
        result = await execute_api_test(case, session, Deadline(5.0))

        echoed = json.loads(result.response_body)
        assert echoed["method"] == "POST"
        assert echoed["body"] == '"hello"'

    async def test_no_body_sends_empty_payload(self, target: Target, session: aiohttp.ClientSession):
        case = _case(f"{target.url}/echo/empty", method="POST")
        result = await execute_api_test(case, session, Deadline(5.0))
        assert json.loads(result.response_body)["body"] == ""

    async def test_headers_sent_in_order(self, target: Target, session: aiohttp.ClientSession):
        headers = (HeaderSpec("X-Trace", "a"), HeaderSpec("X-Other", "b"), HeaderSpec("X-Trace", "c"))
        case = _case(f"{target.url}/echo/headers", headers=headers)
        result = await execute_api_test(case, session, Deadline(5.0))

        received = [tuple(h) for h in json.loads(result.response_body)["headers"]]
        custom = [h for h in received if h[0].startswith("X-")]
        assert custom == [("X-Trace", "a"), ("X-Other", "b"), ("X-Trace", "c")]

    async def test_body_sent_without_implicit_content_type(
        self,
        target: Target,
        session: aiohttp.ClientSession,
    ):
        case = _case(f"{target.url}/echo/plain", method="POST", body="hi")
        result = await execute_api_test(case, session, Deadline(5.0))

        names = [name.lower() for name, _ in json.loads(result.response_body)["headers"]]
        assert "content-type" not in names

    async def test_declared_content_type_sent(self, target: Target, session: aiohttp.ClientSession):
        headers = (HeaderSpec("Content-Type", "application/json"),)
        case = _case(f"{target.url}/echo/typed", method="POST", body="hi", headers=headers)
        result = await execute_api_test(case, session, Deadline(5.0))

        received = [tuple(h) for h in json.loads(result.response_body)["headers"]]
        content_types = [v for k, v in received if k.lower() == "content-type"]
        assert content_types == ["application/json"]

    async def test_invalid_request_sends_nothing(
        self,
        target: Target,
        session: aiohttp.ClientSession,
    ):
        case = _case(f"{target.url}/status/200", method="BAD METHOD")
        with pytest.raises(RequestBuildError):
            await execute_api_test(case, session, Deadline(5.0))
        assert target.hits == []

    async def test_connection_failure_raises_transport_error(
        self,
        session: aiohttp.ClientSession,
    ):
        case = _case("http://127.0.0.1:1/unreachable")
        with pytest.raises(TransportError) as exc_info:
            await execute_api_test(case, session, Deadline(5.0))
        assert exc_info.value.case is case

    @pytest.mark.timeout(10)
    async def test_deadline_aborts_request(self, target: Target, session: aiohttp.ClientSession):
        case = _case(f"{target.url}/delay?delay=2")
        with pytest.raises(DeadlineExceededError, match="deadline of 0.2s exceeded"):
            await execute_api_test(case, session, Deadline(0.2))
