"""
GraphQL-over-HTTP executor for queries and mutations.
"""

import json
import logging
from typing import Any

from ...schemas.request import GraphQLOperationType, GraphQLRequest, Request
from ...schemas.response import RequestResponse
from .base import (
    CONTENT_TYPE_HEADER,
    CancellationToken,
    HttpRequestExecutor,
    ResponseBuilder,
    build_headers,
    has_header,
    is_header_disabled,
    sent_request_from,
)


logger = logging.getLogger(__name__)


def graphql_payload(request: GraphQLRequest) -> dict[str, Any]:
    """
    The ``{query, variables, operationName}`` envelope of a request.

    Raises:
        json.JSONDecodeError: the variables text is not valid JSON
    """
    variables = request.variables
    return {
        "query": request.query,
        "variables": json.loads(variables) if variables and variables.strip() else None,
        "operationName": request.operation_name or None,
    }


class GraphQLExecutor(HttpRequestExecutor):
    """Executes GraphQL queries and mutations as a JSON POST."""

    def can_execute(self, request: Request) -> bool:
        return (
            isinstance(request, GraphQLRequest)
            and request.operation_type != GraphQLOperationType.SUBSCRIPTION
        )

    async def execute(
        self,
        request: GraphQLRequest,
        cancellation_token: CancellationToken | None = None,
    ) -> RequestResponse:
        builder = ResponseBuilder()
        try:
            body = json.dumps(graphql_payload(request))
            headers = build_headers(request, self.settings.user_agent)
            if not is_header_disabled(request, CONTENT_TYPE_HEADER) and not has_header(headers, CONTENT_TYPE_HEADER):
                headers[CONTENT_TYPE_HEADER] = "application/json"

            async with self.client() as client:
                http_request = client.build_request("POST", request.url, headers=headers, content=body)
                builder.with_sent_request(sent_request_from(http_request, body))
                response = await client.send(http_request)

            builder.stop_timing()
            builder.with_status(response.status_code, response.reason_phrase or "")
            builder.with_headers(response.headers)
            builder.with_body(response.text, size=len(response.content))
        except Exception as e:
            logger.warning("GraphQL request to %s failed: %s", request.url, e)
            builder.with_exception(e)

        return builder.build()
