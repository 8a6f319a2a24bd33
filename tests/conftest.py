"""Shared test fixtures for the Endy test suite."""

from __future__ import annotations

import asyncio
import socket
import stat
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
    from pathlib import Path


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@dataclass
class Target:
    """A running test server.

    Attributes:
        url: Base URL, e.g. ``http://127.0.0.1:54321``.
        hits: ``"METHOD /path"`` of every request received, in order.
    """

    url: str
    hits: list[str] = field(default_factory=list)


# =============================================================================
# Test HTTP server handlers
# =============================================================================


_HITS = web.AppKey("hits", list)


@web.middleware
async def _record_middleware(
    request: web.Request,
    handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
) -> web.StreamResponse:
    """Record every request in arrival order."""
    request.app[_HITS].append(f"{request.method} {request.path}")
    return await handler(request)


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "headers": [[k, v] for k, v in request.headers.items()],
            "body": body.decode("utf-8", errors="replace"),
        },
        status=200,
    )


async def _status_handler(request: web.Request) -> web.Response:
    """Return the status code given in the path: /status/404."""
    status = int(request.match_info["code"])
    return web.Response(text=f"status {status}", status=status)


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


async def _health_handler(request: web.Request) -> web.Response:
    """Simple health check endpoint."""
    return web.json_response({"status": "ok"})


def _create_app(hits: list[str]) -> web.Application:
    """Build the test server app with all routes."""
    app = web.Application(middlewares=[_record_middleware])
    app[_HITS] = hits
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    app.router.add_route("*", "/status/{code:\\d+}", _status_handler)
    app.router.add_get("/delay", _delay_handler)
    app.router.add_get("/health", _health_handler)
    return app


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def target() -> AsyncIterator[Target]:
    """Aiohttp test server on the test's own event loop."""
    server = Target(url="")
    app = _create_app(server.hits)
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    server.url = f"http://127.0.0.1:{port}"
    yield server
    await runner.cleanup()


@pytest.fixture
def sync_target() -> Iterator[Target]:
    """Test server running in a background thread for sync tests.

    Useful for tests where ``SuiteRunner.run()`` or the CLI owns the main
    thread's event loop.
    """
    port = _get_free_port()
    server = Target(url=f"http://127.0.0.1:{port}")
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_app(server.hits))
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield server

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


# =============================================================================
# Fake load generator
# =============================================================================


def _write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_bombardier(tmp_path: Path) -> Path:
    """Executable that prints its arguments one per line and exits 0."""
    return _write_script(
        tmp_path / "fake-bombardier",
        'echo "Bombarding with $# args"\nfor arg in "$@"; do printf "%s\\n" "$arg"; done\n',
    )


@pytest.fixture
def failing_bombardier(tmp_path: Path) -> Path:
    """Executable that prints an error and exits 3."""
    return _write_script(tmp_path / "failing-bombardier", 'echo "connection refused"\nexit 3\n')


@pytest.fixture
def slow_bombardier(tmp_path: Path) -> Path:
    """Executable that sleeps far longer than any test deadline."""
    return _write_script(tmp_path / "slow-bombardier", "exec sleep 30\n")


@pytest.fixture
def write_suite(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that writes YAML text to a suite file."""

    def _write(text: str, name: str = "config.yaml") -> Path:
        path = tmp_path / name
        path.write_text(text)
        return path

    return _write
