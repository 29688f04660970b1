"""
HTTP transport for the Tollbit client.

The client only needs "GET url with headers, get status + body bytes".
Anything implementing Transport.get() can be injected (tests use fakes);
RequestsTransport is the default, built on requests.Session.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import requests
from requests.adapters import HTTPAdapter

from .config import DEFAULT_TIMEOUT
from .context import RequestContext
from .errors import RequestCancelledError, RequestTimeoutError, TransportError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 16 * 1024
MAX_BODY_SIZE = 32 * 1024 * 1024   # 32 MiB, licensed pages are far smaller


@dataclass(frozen=True)
class TransportResponse:
    """Status and raw body of one HTTP exchange."""
    status_code: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def text(self, limit: int = 500) -> str:
        return self.body[:limit].decode('utf-8', errors='replace')


class Transport(Protocol):
    """Capability the client depends on."""

    def get(self, url: str, headers: Dict[str, str], ctx: RequestContext) -> TransportResponse:
        ...


class RequestsTransport:
    """
    Default transport over requests.Session.

    The blocking round trip (connect, headers, body) runs on a worker thread
    while the caller waits for either the result or ctx.cancel(). A cancel
    returns RequestCancelledError at once; the abandoned worker closes its
    response and ends within the socket timeout.

    requests.Session is not guaranteed thread-safe, so share a
    RequestsTransport across threads only if you accept that, or give each
    thread its own client.

    An injected session is used as is: Accept header and proxy settings are
    only applied to sessions the transport creates itself.

    Usage:
        transport = RequestsTransport(timeout=10.0, proxy={"https": "http://host:3128"})
        client = TollbitClient(secret, org_id, "MyBot", transport=transport)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        proxy: Optional[dict] = None,
        pool_maxsize: int = 10,
    ):
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.trust_env = False  # Ignore system proxies (OS/env)
            session.headers.update({"Accept": "application/json"})
            adapter = HTTPAdapter(pool_maxsize=pool_maxsize)
            session.mount('http://', adapter)
            session.mount('https://', adapter)
            if proxy:
                session.proxies.update(proxy)
        elif proxy:
            logger.warning("proxy ignored: configure proxies on the injected session")
        self.session = session
        self._executor = ThreadPoolExecutor(
            max_workers=pool_maxsize, thread_name_prefix="tollbit-transport"
        )

    def close(self):
        self._executor.shutdown(wait=False)
        self.session.close()

    def _effective_timeout(self, ctx: RequestContext) -> float:
        remaining = ctx.remaining()
        if remaining is None:
            return self.timeout
        if remaining <= 0:
            raise RequestTimeoutError("Request deadline exceeded")
        return min(self.timeout, remaining)

    def get(self, url: str, headers: Dict[str, str], ctx: RequestContext) -> TransportResponse:
        """
        Execute a GET and read the whole body.

        Raises:
            RequestCancelledError: ctx cancelled before or during the request
            RequestTimeoutError: transport timeout or ctx deadline exceeded
            TransportError: any other network failure
        """
        ctx.raise_if_cancelled()
        timeout = self._effective_timeout(ctx)

        done = threading.Event()
        future = self._executor.submit(self._round_trip, url, headers, timeout, ctx)
        future.add_done_callback(lambda _: done.set())
        unregister = ctx.on_cancel(done.set)
        try:
            finished = done.wait(ctx.remaining())
        finally:
            unregister()

        if ctx.cancelled:
            logger.debug(f"GET {url} cancelled in flight")
            raise RequestCancelledError(f"Request to {url} cancelled")
        if not finished:
            raise RequestTimeoutError(f"Request deadline exceeded for {url}")
        return future.result()

    def _round_trip(self, url: str, headers: Dict[str, str], timeout: float,
                    ctx: RequestContext) -> TransportResponse:
        """Blocking GET + body read, run on a worker thread."""
        try:
            resp = self.session.get(url, headers=headers, timeout=timeout, stream=True)
        except requests.exceptions.Timeout as e:
            ctx.raise_if_cancelled()
            raise RequestTimeoutError(f"Timeout requesting {url} ({timeout:.1f}s)") from e
        except requests.exceptions.RequestException as e:
            ctx.raise_if_cancelled()
            raise TransportError(f"Request failed: {e}") from e

        # Closing the response from ctx.cancel() aborts a blocked body read
        unregister = ctx.on_cancel(resp.close)
        try:
            body = self._read_body(resp, ctx)
        except (requests.exceptions.RequestException, OSError, AttributeError, ValueError) as e:
            # Closed-connection errors after cancel surface as cancellation
            ctx.raise_if_cancelled()
            if isinstance(e, requests.exceptions.Timeout):
                raise RequestTimeoutError(f"Timeout reading {url}") from e
            raise TransportError(f"Failed reading response: {e}") from e
        finally:
            unregister()
            resp.close()

        logger.debug(f"GET {url} -> {resp.status_code} ({len(body)} bytes)")
        return TransportResponse(status_code=resp.status_code, body=body)

    def _read_body(self, resp: requests.Response, ctx: RequestContext) -> bytes:
        chunks = []
        size = 0
        for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
            ctx.raise_if_cancelled()
            if not chunk:
                continue
            size += len(chunk)
            if size > MAX_BODY_SIZE:
                raise TransportError(f"Response body exceeds {MAX_BODY_SIZE} bytes")
            chunks.append(chunk)
        ctx.raise_if_cancelled()
        return b"".join(chunks)
