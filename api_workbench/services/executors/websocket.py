"""
Raw WebSocket executor and the socket helpers shared with the GraphQL
subscription executor.

A session is reported as status 101 with every frame recorded as a stream
event; the response time spans the whole session. The socket is closed on
every exit path, and a failed close is recorded as a ``warning`` event.
"""

import logging

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed

from ...schemas.request import Request, WebSocketConnectionType, WebSocketRequest
from ...schemas.response import RequestResponse, SentRequest
from .base import (
    CancellationToken,
    ReceiveCancelled,
    ReceiveTimeout,
    RequestExecutor,
    ResponseBuilder,
    build_headers,
    receive_or_cancel,
)


logger = logging.getLogger(__name__)

WEBSOCKET_ESTABLISHED = (101, "WebSocket connection established")


def to_websocket_url(url: str) -> str:
    """
    Map http(s) URLs to ws(s); URLs without a scheme default to wss.

    Example:
        >>> to_websocket_url("http://localhost:8080/graphql")
        'ws://localhost:8080/graphql'
    """
    lowered = url.lower()
    if lowered.startswith(("ws://", "wss://")):
        return url
    if lowered.startswith("http://"):
        return "ws://" + url[len("http://"):]
    if lowered.startswith("https://"):
        return "wss://" + url[len("https://"):]
    return "wss://" + url


def frame_text(frame: str | bytes) -> str:
    if isinstance(frame, bytes):
        return frame.decode("utf-8", errors="replace")
    return frame


async def open_websocket(
    url: str,
    headers: dict[str, str],
    subprotocols: list[str] | None,
    open_timeout: float,
) -> ClientConnection:
    """Open a client connection; the User-Agent is taken from ``headers``."""
    return await connect(
        url,
        additional_headers=headers,
        subprotocols=subprotocols or None,
        user_agent_header=None,
        open_timeout=open_timeout,
    )


async def safe_close(websocket: ClientConnection | None, builder: ResponseBuilder) -> None:
    """Close the socket, recording a failure as a warning instead of raising."""
    if websocket is None:
        return
    try:
        await websocket.close()
    except Exception as e:
        logger.warning("Failed to close WebSocket cleanly: %s", e)
        builder.add_event(f"Warning: Failed to close WebSocket cleanly: {e}", "warning")


class WebSocketExecutor(RequestExecutor):
    """Executes standard `WebSocketRequest`s."""

    def can_execute(self, request: Request) -> bool:
        return (
            isinstance(request, WebSocketRequest)
            and request.connection_type == WebSocketConnectionType.STANDARD
        )

    async def execute(
        self,
        request: WebSocketRequest,
        cancellation_token: CancellationToken | None = None,
    ) -> RequestResponse:
        builder = ResponseBuilder(streaming=True)
        websocket = None
        failed = False
        try:
            url = to_websocket_url(request.url)
            headers = build_headers(request, self.settings.user_agent)
            builder.with_sent_request(SentRequest(url=url, method="WEBSOCKET", headers=headers, body=request.message))

            websocket = await open_websocket(url, headers, request.protocols, self.settings.request_timeout)
            builder.with_status(*WEBSOCKET_ESTABLISHED)
            if websocket.subprotocol:
                builder.with_headers({"Sec-WebSocket-Protocol": websocket.subprotocol})

            if request.message:
                await websocket.send(request.message)
                builder.add_event(request.message, "sent")

            await self._receive_frames(websocket, builder, cancellation_token)
        except Exception as e:
            logger.warning("WebSocket session with %s failed: %s", request.url, e)
            builder.with_exception(e)
            failed = True
        finally:
            await safe_close(websocket, builder)

        builder.stop_timing()
        if not failed:
            builder.finalize_streaming()
        return builder.build()

    async def _receive_frames(
        self,
        websocket: ClientConnection,
        builder: ResponseBuilder,
        cancellation_token: CancellationToken | None,
    ) -> None:
        while True:
            try:
                frame = await receive_or_cancel(
                    websocket.recv(), cancellation_token, self.settings.stream_inactivity_timeout
                )
            except ReceiveTimeout:
                builder.add_event("Timeout reached, closing connection", "timeout")
                return
            except ReceiveCancelled:
                builder.add_event("Cancelled by user", "cancelled")
                return
            except ConnectionClosed:
                builder.add_event("Connection closed by server", "close")
                return

            builder.add_event(frame_text(frame), "message")
