"""
GraphQL subscription executor over WebSocket.

Speaks ``graphql-transport-ws`` and falls back to the legacy ``graphql-ws``
message names when the server picks that subprotocol:

    connection_init -> connection_ack -> subscribe (start) -> next (data) ... complete
"""

import json
import logging
from typing import Any

from websockets.asyncio.client import ClientConnection
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ...schemas.request import (
    GraphQLOperationType,
    GraphQLRequest,
    Request,
    SubscriptionProtocol,
    WebSocketConnectionType,
    WebSocketRequest,
)
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
from .graphql import graphql_payload
from .websocket import WEBSOCKET_ESTABLISHED, frame_text, open_websocket, safe_close, to_websocket_url


logger = logging.getLogger(__name__)

SUBPROTOCOLS = ["graphql-transport-ws", "graphql-ws"]
LEGACY_SUBPROTOCOL = "graphql-ws"
SUBSCRIPTION_ID = "1"


def subscription_payload(request: GraphQLRequest | WebSocketRequest) -> dict[str, Any]:
    """
    Operation payload to subscribe with.

    A WebSocket request in GraphQL-subscription mode carries the operation
    as JSON in its message, either bare or inside a ``subscribe`` envelope.
    """
    if isinstance(request, GraphQLRequest):
        return graphql_payload(request)
    document = json.loads(request.message or "{}")
    if isinstance(document, dict) and isinstance(document.get("payload"), dict):
        return document["payload"]
    return document


class GraphQLWebSocketExecutor(RequestExecutor):
    """Runs a GraphQL subscription on a persistent WebSocket."""

    def can_execute(self, request: Request) -> bool:
        if isinstance(request, GraphQLRequest):
            return (
                request.operation_type == GraphQLOperationType.SUBSCRIPTION
                and request.subscription_protocol == SubscriptionProtocol.WEBSOCKET
            )
        return (
            isinstance(request, WebSocketRequest)
            and request.connection_type == WebSocketConnectionType.GRAPHQL_SUBSCRIPTION
        )

    async def execute(
        self,
        request: GraphQLRequest | WebSocketRequest,
        cancellation_token: CancellationToken | None = None,
    ) -> RequestResponse:
        builder = ResponseBuilder(streaming=True)
        websocket = None
        subscribed = False
        failed = False
        try:
            payload = subscription_payload(request)
            url = to_websocket_url(request.url)
            headers = build_headers(request, self.settings.user_agent)
            builder.with_sent_request(
                SentRequest(
                    url=url,
                    method="GRAPHQL_SUBSCRIPTION_WS",
                    headers=headers,
                    body=json.dumps(payload),
                )
            )

            websocket = await open_websocket(url, headers, SUBPROTOCOLS, self.settings.request_timeout)
            builder.with_status(*WEBSOCKET_ESTABLISHED)
            legacy = websocket.subprotocol == LEGACY_SUBPROTOCOL
            if websocket.subprotocol:
                builder.with_headers({"Sec-WebSocket-Protocol": websocket.subprotocol})

            await websocket.send(json.dumps({"type": "connection_init", "payload": {}}))
            builder.add_event("Sent: connection_init", "sent")

            if not await self._wait_for_ack(websocket, builder, cancellation_token):
                builder.with_status(0, "Error: Failed to receive connection_ack")
            else:
                await websocket.send(json.dumps({
                    "id": SUBSCRIPTION_ID,
                    "type": "start" if legacy else "subscribe",
                    "payload": payload,
                }))
                subscribed = True
                builder.add_event("Sent: subscribe with query", "sent")
                await self._receive_messages(websocket, builder, cancellation_token)
        except Exception as e:
            logger.warning("GraphQL WebSocket subscription to %s failed: %s", request.url, e)
            builder.with_exception(e)
            failed = True
        finally:
            if websocket is not None and subscribed and websocket.state is State.OPEN:
                try:
                    stop_type = "stop" if websocket.subprotocol == LEGACY_SUBPROTOCOL else "complete"
                    await websocket.send(json.dumps({"id": SUBSCRIPTION_ID, "type": stop_type}))
                except Exception as e:
                    builder.add_event(f"Warning: Failed to send complete message: {e}", "warning")
            await safe_close(websocket, builder)

        builder.stop_timing()
        if not failed:
            builder.finalize_streaming()
        return builder.build()

    async def _wait_for_ack(
        self,
        websocket: ClientConnection,
        builder: ResponseBuilder,
        cancellation_token: CancellationToken | None,
    ) -> bool:
        try:
            frame = await receive_or_cancel(
                websocket.recv(), cancellation_token, self.settings.connection_ack_timeout
            )
            message = json.loads(frame_text(frame))
        except (ReceiveTimeout, ReceiveCancelled, ConnectionClosed, json.JSONDecodeError) as e:
            logger.warning("No connection_ack received: %r", e)
            return False

        message_type = message.get("type") if isinstance(message, dict) else None
        builder.add_event(f"Received: {message_type}", "received")
        return message_type == "connection_ack"

    async def _receive_messages(
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

            text = frame_text(frame)
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                builder.add_event(text, "unknown")
                continue
            if not isinstance(message, dict):
                builder.add_event(text, "unknown")
                continue

            message_type = message.get("type")
            if message_type in ("next", "data"):
                builder.add_event(json.dumps(message.get("payload"), indent=2), "data")
            elif message_type == "error":
                builder.add_event(f"Error: {json.dumps(message.get('payload'), indent=2)}", "error")
                return
            elif message_type == "complete":
                builder.add_event("Subscription completed", "complete")
                return
            elif message_type == "ping":
                await websocket.send(json.dumps({"type": "pong"}))
            elif message_type == "ka":
                continue
            else:
                builder.add_event(text, message_type or "unknown")
