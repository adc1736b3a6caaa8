"""
GraphQL subscription executor over server-sent events.
"""

import json
import logging
from typing import AsyncIterator

from ...schemas.request import (
    GraphQLOperationType,
    GraphQLRequest,
    Request,
    SubscriptionProtocol,
)
from ...schemas.response import RequestResponse
from .base import (
    CONTENT_TYPE_HEADER,
    CancellationToken,
    HttpRequestExecutor,
    ReceiveCancelled,
    ReceiveTimeout,
    ResponseBuilder,
    build_headers,
    has_header,
    is_header_disabled,
    receive_or_cancel,
    sent_request_from,
)
from .graphql import graphql_payload


logger = logging.getLogger(__name__)


async def _next_line(lines: AsyncIterator[str]) -> str | None:
    try:
        return await anext(lines)
    except StopAsyncIteration:
        return None


class GraphQLSSEExecutor(HttpRequestExecutor):
    """Streams a GraphQL subscription delivered as ``text/event-stream``."""

    def can_execute(self, request: Request) -> bool:
        return (
            isinstance(request, GraphQLRequest)
            and request.operation_type == GraphQLOperationType.SUBSCRIPTION
            and request.subscription_protocol == SubscriptionProtocol.SSE
        )

    async def execute(
        self,
        request: GraphQLRequest,
        cancellation_token: CancellationToken | None = None,
    ) -> RequestResponse:
        builder = ResponseBuilder(streaming=True)
        try:
            body = json.dumps(graphql_payload(request))
            headers = build_headers(request, self.settings.user_agent)
            headers["Accept"] = "text/event-stream"
            if not is_header_disabled(request, CONTENT_TYPE_HEADER) and not has_header(headers, CONTENT_TYPE_HEADER):
                headers[CONTENT_TYPE_HEADER] = "application/json"

            async with self.client(streaming=True) as client:
                http_request = client.build_request("POST", request.url, headers=headers, content=body)
                sent = sent_request_from(http_request, body)
                sent.method = "GRAPHQL_SUBSCRIPTION_SSE"
                builder.with_sent_request(sent)

                response = await client.send(http_request, stream=True)
                try:
                    builder.with_status(response.status_code, response.reason_phrase or "")
                    builder.with_headers(response.headers)
                    if response.is_success:
                        await self._read_events(response.aiter_lines(), builder, cancellation_token)
                    else:
                        await response.aread()
                finally:
                    await response.aclose()

            builder.stop_timing()
            if response.is_success:
                builder.finalize_streaming()
            else:
                builder.with_body(response.text, size=len(response.content))
        except Exception as e:
            logger.warning("GraphQL SSE subscription to %s failed: %s", request.url, e)
            builder.with_exception(e)

        return builder.build()

    async def _read_events(
        self,
        lines: AsyncIterator[str],
        builder: ResponseBuilder,
        cancellation_token: CancellationToken | None,
    ) -> None:
        data_lines: list[str] = []
        event_type = "message"

        while True:
            try:
                line = await receive_or_cancel(
                    _next_line(lines), cancellation_token, self.settings.stream_inactivity_timeout
                )
            except ReceiveTimeout:
                self._flush(builder, data_lines, event_type)
                builder.add_event("Timeout reached, closing connection", "timeout")
                return
            except ReceiveCancelled:
                self._flush(builder, data_lines, event_type)
                builder.add_event("Cancelled by user", "cancelled")
                return

            if line is None:
                break

            if not line.strip():
                # A blank line dispatches the pending event
                self._flush(builder, data_lines, event_type)
                data_lines = []
                event_type = "message"
            elif line.startswith(":"):
                continue
            elif line.startswith("event:"):
                event_type = line[len("event:"):].strip()
            elif line.startswith("data:"):
                data_lines.append(line[len("data:"):].strip())

        self._flush(builder, data_lines, event_type)

    @staticmethod
    def _flush(builder: ResponseBuilder, data_lines: list[str], event_type: str) -> None:
        if data_lines:
            builder.add_event("\n".join(data_lines), event_type)
