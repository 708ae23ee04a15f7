"""Request-executor abstraction and its aiohttp implementation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

import aiohttp
from yarl import URL

from rwrk._internal.errors import (
    BodyReadError,
    EngineError,
    RequestBuildError,
    TransportError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_CHUNK_SIZE = 64 * 1024


def is_success(status: int) -> bool:
    """Return True for a 2xx status code."""
    return 200 <= status < 300


class Response(Protocol):
    """A received response whose body is read incrementally."""

    status: int

    def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield body chunks. Raises BodyReadError if draining fails."""
        ...

    def release(self) -> None:
        """Return the underlying connection to the pool."""
        ...


class RequestExecutor(Protocol):
    """Issues a GET with an empty body against a fully-formed URL."""

    async def send(self, url: str) -> Response:
        """Send a request.

        Raises:
            RequestBuildError: If ``url`` is not a valid request target.
            TransportError: If the connection or exchange failed.
        """
        ...


@dataclass(frozen=True)
class PoolSettings:
    """Tuning for the shared connection pool.

    Attributes:
        max_idle_per_host: Maximum pooled connections per host.
        idle_timeout: Seconds an idle connection is kept alive.
        request_timeout: Total timeout for one request in seconds.
    """

    max_idle_per_host: int = 100
    idle_timeout: float = 90.0
    request_timeout: float = 30.0


def parse_target(url: str) -> URL:
    """Validate a request target.

    Args:
        url: Fully-formed URL string.

    Returns:
        The parsed URL.

    Raises:
        RequestBuildError: If the URL is malformed, relative, or not http(s).
    """
    try:
        target = URL(url)
        # The connector IDNA-encodes the host; fail here instead.
        if target.host:
            target.host.encode("idna")
    except (ValueError, TypeError) as exc:
        msg = f"Invalid target {url!r}: {exc}"
        raise RequestBuildError(msg) from exc

    if target.scheme not in ("http", "https") or not target.host:
        msg = f"Invalid target {url!r}: expected an absolute http(s) URL"
        raise RequestBuildError(msg)
    return target


class HttpResponse:
    """Adapter exposing an ``aiohttp.ClientResponse`` as a Response."""

    def __init__(self, response: aiohttp.ClientResponse) -> None:
        self._response = response
        self.status = response.status

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._response.content.iter_chunked(_CHUNK_SIZE):
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            msg = f"Body read failed: {type(exc).__name__}: {exc}"
            raise BodyReadError(msg) from exc

    def release(self) -> None:
        self._response.release()


class HttpExecutor:
    """Shared aiohttp-backed executor used by every worker.

    Owns one ``aiohttp.ClientSession`` whose connector carries the pool
    settings. Workers hold it as a read-only handle and never reconfigure
    it. Must be used as an async context manager.
    """

    def __init__(self, pool: PoolSettings | None = None) -> None:
        self.pool = pool or PoolSettings()
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> HttpExecutor:
        """Open the underlying aiohttp session."""
        connector = aiohttp.TCPConnector(
            limit=0,
            limit_per_host=self.pool.max_idle_per_host,
            keepalive_timeout=self.pool.idle_timeout,
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.pool.request_timeout),
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object | None,
    ) -> None:
        """Close the underlying aiohttp session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def send(self, url: str) -> Response:
        """Issue a GET for ``url`` and return once headers are received.

        Raises:
            EngineError: If the executor is used outside its context.
            RequestBuildError: If ``url`` is not a valid target.
            TransportError: If the connection or exchange failed.
        """
        if self._session is None:
            msg = "HttpExecutor must be used as an async context manager"
            raise EngineError(msg)

        target = parse_target(url)
        try:
            response = await self._session.get(target, allow_redirects=False)
        except (aiohttp.InvalidURL, ValueError) as exc:
            msg = f"Invalid target {url!r}: {exc}"
            raise RequestBuildError(msg) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
            msg = f"{type(exc).__name__}: {exc}"
            raise TransportError(msg) from exc
        return HttpResponse(response)
