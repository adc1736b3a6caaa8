"""
Protocol executors: REST, GraphQL (HTTP, SSE, WebSocket) and raw WebSocket.
"""

from .base import (
    CancellationToken,
    RequestExecutor,
    HttpRequestExecutor,
    ResponseBuilder,
    build_headers,
)
from .rest import RestExecutor
from .graphql import GraphQLExecutor, graphql_payload
from .graphql_sse import GraphQLSSEExecutor
from .graphql_ws import GraphQLWebSocketExecutor
from .websocket import WebSocketExecutor, to_websocket_url
from .factory import ExecutorFactory, create_default_factory, executor_key

__all__ = [
    "CancellationToken",
    "RequestExecutor",
    "HttpRequestExecutor",
    "ResponseBuilder",
    "build_headers",
    "RestExecutor",
    "GraphQLExecutor",
    "graphql_payload",
    "GraphQLSSEExecutor",
    "GraphQLWebSocketExecutor",
    "WebSocketExecutor",
    "to_websocket_url",
    "ExecutorFactory",
    "create_default_factory",
    "executor_key",
]
