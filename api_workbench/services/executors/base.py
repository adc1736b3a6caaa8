"""
Shared building blocks for protocol executors.

Every executor follows the same pipeline: build headers from the already
resolved request, apply authentication, send, and capture a normalized
`RequestResponse`. Failures never leave `execute`; they are turned into a
response with status 0 by `ResponseBuilder.with_exception`.
"""

import asyncio
import base64
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable

import httpx
from websockets.exceptions import InvalidHandshake, InvalidURI

from ...config import Settings, get_settings
from ...database import utc_now
from ...schemas.request import AuthType, Request, RequestBase
from ...schemas.response import RequestResponse, SentRequest, StreamEvent


logger = logging.getLogger(__name__)

USER_AGENT_HEADER = "User-Agent"
CONTENT_TYPE_HEADER = "Content-Type"
AUTHORIZATION_HEADER = "Authorization"


class CancellationToken:
    """
    Cooperative cancellation signal shared by a flow run and its executors.

    Cancellation is observed between flow steps, during step delays and
    inside streaming receive loops; an in-flight HTTP call is not interrupted.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancellation_requested(self) -> bool:
        return self._event.is_set()

    async def wait(self, timeout: float | None = None) -> bool:
        """Wait until cancelled. Returns False if ``timeout`` elapsed first."""
        if timeout is None:
            await self._event.wait()
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


class ReceiveTimeout(Exception):
    """No frame arrived within the inactivity timeout."""


class ReceiveCancelled(Exception):
    """Cancellation was requested while waiting for a frame."""


async def receive_or_cancel(
    awaitable: Awaitable[Any],
    cancellation_token: CancellationToken | None,
    timeout: float | None,
) -> Any:
    """
    Await ``awaitable`` unless the timeout elapses or cancellation is requested.

    Raises:
        ReceiveTimeout: nothing arrived within ``timeout`` seconds
        ReceiveCancelled: the token was cancelled first
    """
    if cancellation_token is not None and cancellation_token.is_cancellation_requested:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise ReceiveCancelled()

    receive_task = asyncio.ensure_future(awaitable)
    waiters = {receive_task}
    cancel_task = None
    if cancellation_token is not None:
        cancel_task = asyncio.ensure_future(cancellation_token.wait())
        waiters.add(cancel_task)

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        if cancel_task is not None and not cancel_task.done():
            cancel_task.cancel()

    if receive_task in done:
        return receive_task.result()

    receive_task.cancel()
    try:
        await receive_task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug("Receive ended with %r after being abandoned", e)

    if cancel_task is not None and cancel_task in done:
        raise ReceiveCancelled()
    raise ReceiveTimeout()


def describe_error(exc: Exception) -> str:
    """Short human description of a network or protocol failure."""
    detail = str(exc)
    if isinstance(exc, httpx.TimeoutException) or isinstance(exc, asyncio.TimeoutError):
        label = "Request timed out"
    elif isinstance(exc, httpx.ConnectError) or isinstance(exc, ConnectionError):
        label = "Failed to connect to server"
    elif isinstance(exc, (httpx.InvalidURL, httpx.UnsupportedProtocol, InvalidURI)):
        label = "Invalid URL"
    elif isinstance(exc, InvalidHandshake):
        label = "WebSocket handshake failed"
    else:
        return detail or type(exc).__name__
    return f"{label}: {detail}" if detail else label


def is_header_disabled(request: RequestBase, name: str) -> bool:
    lowered = name.lower()
    return any(disabled.lower() == lowered for disabled in request.disabled_headers)


def has_header(headers: dict[str, str], name: str) -> bool:
    lowered = name.lower()
    return any(key.lower() == lowered for key in headers)


def _set_header(headers: dict[str, str], name: str, value: str) -> None:
    """Set a header, replacing any existing header of the same name in other case."""
    lowered = name.lower()
    for key in [key for key in headers if key.lower() == lowered]:
        del headers[key]
    headers[name] = value


def authorization_value(request: RequestBase) -> str | None:
    """Authorization header value for the request's auth mode, if any."""
    if request.auth_type == AuthType.BASIC and request.basic_auth_username:
        credentials = f"{request.basic_auth_username}:{request.basic_auth_password or ''}"
        encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        return f"Basic {encoded}"
    if request.auth_type == AuthType.BEARER and request.bearer_token:
        return f"Bearer {request.bearer_token}"
    return None


def build_headers(request: RequestBase, user_agent: str) -> dict[str, str]:
    """
    Build the outgoing headers of a resolved request.

    The default User-Agent goes first so custom headers can override it.
    When an auth mode is configured, a custom Authorization header is
    ignored and the auth-derived one is sent instead.
    """
    headers: dict[str, str] = {}
    if not is_header_disabled(request, USER_AGENT_HEADER):
        headers[USER_AGENT_HEADER] = user_agent

    auth_configured = request.auth_type != AuthType.NONE
    auth_value = authorization_value(request)
    if auth_value is not None:
        headers[AUTHORIZATION_HEADER] = auth_value

    for name, value in request.headers.items():
        if name in request.disabled_headers:
            continue
        if auth_configured and name.lower() == AUTHORIZATION_HEADER.lower():
            continue
        _set_header(headers, name, value)

    return headers


class ResponseBuilder:
    """
    Accumulates a `RequestResponse` while an executor runs.

    Timing starts when the builder is created, which is pipeline entry.
    """

    def __init__(self, streaming: bool = False):
        self._started = time.perf_counter()
        self._stopped: float | None = None
        self.response = RequestResponse(is_streaming=streaming)

    @property
    def elapsed_ms(self) -> int:
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return int((end - self._started) * 1000)

    def stop_timing(self) -> "ResponseBuilder":
        if self._stopped is None:
            self._stopped = time.perf_counter()
        self.response.response_time_ms = self.elapsed_ms
        return self

    def with_sent_request(self, sent_request: SentRequest) -> "ResponseBuilder":
        self.response.sent_request = sent_request
        return self

    def with_status(self, status_code: int, status_message: str) -> "ResponseBuilder":
        self.response.status_code = status_code
        self.response.status_message = status_message
        return self

    def with_headers(self, headers: httpx.Headers | dict[str, str]) -> "ResponseBuilder":
        self.response.headers.update(dict(headers))
        return self

    def with_body(self, body: str, size: int | None = None) -> "ResponseBuilder":
        self.response.body = body
        self.response.size = len(body.encode("utf-8")) if size is None else size
        return self

    def add_event(self, data: str, event_type: str | None = None) -> "ResponseBuilder":
        self.response.stream_events.append(
            StreamEvent(timestamp=utc_now(), event_type=event_type, data=data)
        )
        return self

    def finalize_streaming(self) -> "ResponseBuilder":
        """Render the collected stream events as the response body."""
        lines = [
            f"[{event.timestamp.strftime('%H:%M:%S.%f')[:-3]}] {event.event_type}: {event.data}"
            for event in self.response.stream_events
        ]
        return self.with_body("".join(f"{line}\n" for line in lines))

    def with_exception(self, exc: Exception) -> "ResponseBuilder":
        self.stop_timing()
        self.response.status_code = 0
        self.response.status_message = f"Error: {describe_error(exc)}"
        self.response.body = str(exc) or type(exc).__name__
        self.response.size = len(self.response.body.encode("utf-8"))
        return self

    def build(self) -> RequestResponse:
        return self.response


class RequestExecutor(ABC):
    """
    Strategy that performs one network call for a family of requests.

    `execute` never raises for network, protocol or timeout failures.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    @abstractmethod
    def can_execute(self, request: Request) -> bool:
        ...

    @abstractmethod
    async def execute(
        self,
        request: Request,
        cancellation_token: CancellationToken | None = None,
    ) -> RequestResponse:
        ...


class HttpRequestExecutor(RequestExecutor):
    """Executor that talks HTTP through httpx."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(settings)
        self.transport = transport

    def client(self, streaming: bool = False) -> httpx.AsyncClient:
        """
        Create a client for a single call.

        Streaming calls have no read timeout; inactivity is enforced by the
        receive loop instead.
        """
        timeout = self.settings.request_timeout
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, read=None) if streaming else httpx.Timeout(timeout),
            follow_redirects=self.settings.follow_redirects,
            verify=self.settings.verify_ssl,
            transport=self.transport,
        )


def sent_request_from(http_request: httpx.Request, body: str | None, query_params: dict[str, str] | None = None) -> SentRequest:
    return SentRequest(
        url=str(http_request.url),
        method=http_request.method,
        headers=dict(http_request.headers),
        body=body,
        query_params=query_params or {},
    )
