"""
REST executor: one HTTP round-trip with httpx.
"""

import logging

from ...schemas.request import Request, RestRequest
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

# Content-Type sent for each body type when none is given explicitly
BODY_CONTENT_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "text": "text/plain",
    "html": "text/html",
    "javascript": "application/javascript",
}


def content_type_for(request: RestRequest) -> str | None:
    if request.content_type:
        return request.content_type
    return BODY_CONTENT_TYPES.get(request.body_type)


class RestExecutor(HttpRequestExecutor):
    """Executes `RestRequest`s."""

    def can_execute(self, request: Request) -> bool:
        return isinstance(request, RestRequest)

    async def execute(
        self,
        request: RestRequest,
        cancellation_token: CancellationToken | None = None,
    ) -> RequestResponse:
        builder = ResponseBuilder()
        try:
            headers = build_headers(request, self.settings.user_agent)
            params = {
                name: value
                for name, value in request.query_params.items()
                if name not in request.disabled_query_params
            }

            body = request.body if request.body and request.body_type != "none" else None
            if body is not None and not is_header_disabled(request, CONTENT_TYPE_HEADER):
                content_type = content_type_for(request)
                if content_type and not has_header(headers, CONTENT_TYPE_HEADER):
                    headers[CONTENT_TYPE_HEADER] = content_type

            async with self.client() as client:
                http_request = client.build_request(
                    method=request.method,
                    url=request.url,
                    headers=headers,
                    params=params or None,
                    content=body,
                )
                builder.with_sent_request(sent_request_from(http_request, body, params))
                response = await client.send(http_request)

            builder.stop_timing()
            builder.with_status(response.status_code, response.reason_phrase or "")
            builder.with_headers(response.headers)
            builder.with_body(response.text, size=len(response.content))
        except Exception as e:
            logger.warning("%s %s failed: %s", request.method, request.url, e)
            builder.with_exception(e)

        return builder.build()
