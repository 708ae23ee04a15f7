"""Shared test fixtures for the rwrk test suite."""

from __future__ import annotations

import asyncio
import contextlib
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from rwrk._internal.errors import BodyReadError, RequestBuildError, TransportError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterator


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
# Fake request executor
# =============================================================================


class FakeResponse:
    """In-memory Response. Fails draining after ``fail_after`` chunks if set."""

    def __init__(
        self,
        status: int = 200,
        chunks: list[bytes] | None = None,
        fail_after: int | None = None,
    ) -> None:
        self.status = status
        self._chunks = chunks if chunks is not None else [b"ok"]
        self._fail_after = fail_after
        self.released = False

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        for index, chunk in enumerate(self._chunks):
            if self._fail_after is not None and index >= self._fail_after:
                msg = "connection reset while reading body"
                raise BodyReadError(msg)
            yield chunk
        if self._fail_after is not None and self._fail_after >= len(self._chunks):
            msg = "connection reset while reading body"
            raise BodyReadError(msg)

    def release(self) -> None:
        self.released = True


@dataclass
class FakeExecutor:
    """Deterministic executor.

    ``respond`` maps ``(url, call_number)`` to a FakeResponse, or raises
    a RequestError. ``delay`` suspends each send before responding.
    """

    respond: Callable[[str, int], FakeResponse] = lambda _url, _n: FakeResponse()
    delay: float = 0.0
    urls: list[str] = field(default_factory=list)
    responses: list[FakeResponse] = field(default_factory=list)

    async def send(self, url: str) -> FakeResponse:
        call_number = len(self.urls)
        self.urls.append(url)
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)
        response = self.respond(url, call_number)
        self.responses.append(response)
        return response

    def factory(self) -> Callable[[object], contextlib.AbstractAsyncContextManager[FakeExecutor]]:
        """Return an executor factory usable by LoadRunner."""

        @contextlib.asynccontextmanager
        async def _factory(_config: object) -> AsyncIterator[FakeExecutor]:
            yield self

        return _factory


def body_of(size: int) -> Callable[[str, int], FakeResponse]:
    """Respond 200 with a ``size``-byte body split into two chunks."""
    half = size // 2

    def _respond(_url: str, _n: int) -> FakeResponse:
        return FakeResponse(200, [b"a" * half, b"b" * (size - half)])

    return _respond


def raise_build_error(_url: str, _n: int) -> FakeResponse:
    msg = "invalid target"
    raise RequestBuildError(msg)


def raise_transport_error(_url: str, _n: int) -> FakeResponse:
    msg = "connection refused"
    raise TransportError(msg)


@pytest.fixture
def fake_executor() -> FakeExecutor:
    """Executor answering 200 with a 2-byte body."""
    return FakeExecutor()


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# =============================================================================
# Local HTTP server handlers
# =============================================================================

SEEN_IDS = web.AppKey("seen_ids", list)


async def _item_handler(request: web.Request) -> web.Response:
    """Record the identifier and return a small body."""
    item_id = int(request.match_info["item_id"])
    request.app[SEEN_IDS].append(item_id)
    return web.Response(text=f"item-{item_id}")


async def _bytes_handler(request: web.Request) -> web.Response:
    """Return a body of ``?n=`` bytes."""
    size = int(request.query.get("n", "1024"))
    return web.Response(body=b"x" * size)


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.Response(text="delayed")


async def _error_handler(request: web.Request) -> web.Response:
    """Return a configurable error status (query param: ?status=500)."""
    status = int(request.query.get("status", "500"))
    return web.Response(text="error", status=status)


async def _truncated_handler(request: web.Request) -> web.StreamResponse:
    """Promise 1000 bytes, send 10, then drop the connection."""
    response = web.StreamResponse(status=200)
    response.content_length = 1000
    await response.prepare(request)
    await response.write(b"x" * 10)
    if request.transport is not None:
        request.transport.close()
    return response


async def _health_handler(request: web.Request) -> web.Response:
    """Simple health check endpoint."""
    return web.json_response({"status": "ok"})


def _create_app() -> web.Application:
    """Build the local server app with all test routes."""
    app = web.Application()
    app[SEEN_IDS] = []
    app.router.add_get("/items/{item_id}", _item_handler)
    app.router.add_get("/bytes", _bytes_handler)
    app.router.add_get("/delay", _delay_handler)
    app.router.add_get("/error", _error_handler)
    app.router.add_get("/truncated", _truncated_handler)
    app.router.add_get("/health", _health_handler)
    return app


@dataclass
class LocalServer:
    """A running local server and the identifiers it has seen."""

    url: str
    app: web.Application

    @property
    def seen_ids(self) -> list[int]:
        return self.app[SEEN_IDS]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
async def http_server() -> AsyncIterator[LocalServer]:
    """Aiohttp server on the test's event loop."""
    app = _create_app()
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield LocalServer(url=f"http://127.0.0.1:{port}", app=app)
    await runner.cleanup()


@pytest.fixture
def closed_port_url() -> str:
    """URL pointing at a port nothing listens on."""
    return f"http://127.0.0.1:{_get_free_port()}/"


@pytest.fixture
def sync_http_server() -> Iterator[LocalServer]:
    """Server running in a background thread for sync tests.

    Useful for CLI and blocking runner tests where ``asyncio.run`` owns
    the main thread's event loop.
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []
    app = _create_app()

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(app)
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

    yield LocalServer(url=f"http://127.0.0.1:{port}", app=app)

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)
