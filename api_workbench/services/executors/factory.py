"""
Executor selection.

The factory asks each registered executor, in registration order, whether
it can run a request, and caches the answer per request variant. A variant
nobody handles is a configuration error, not a failed request.
"""

import logging
from typing import Hashable, Iterable

import httpx

from ...config import Settings, get_settings
from ...exceptions import ExecutorNotFoundError
from ...schemas.request import GraphQLOperationType, GraphQLRequest, Request, RestRequest, WebSocketRequest
from .base import RequestExecutor
from .graphql import GraphQLExecutor
from .graphql_sse import GraphQLSSEExecutor
from .graphql_ws import GraphQLWebSocketExecutor
from .rest import RestExecutor
from .websocket import WebSocketExecutor


logger = logging.getLogger(__name__)


def executor_key(request: Request) -> Hashable:
    """Cache key: the variant plus the fields that change which executor runs it."""
    match request:
        case RestRequest():
            return ("rest",)
        case GraphQLRequest():
            if request.operation_type == GraphQLOperationType.SUBSCRIPTION:
                return ("graphql", request.operation_type.value, request.subscription_protocol.value)
            return ("graphql", "http")
        case WebSocketRequest():
            return ("websocket", request.connection_type.value)
    return (type(request).__name__,)


class ExecutorFactory:
    """Registry of executors with a per-variant lookup cache."""

    def __init__(self, executors: Iterable[RequestExecutor] = ()):
        self._executors: list[RequestExecutor] = list(executors)
        self._cache: dict[Hashable, RequestExecutor] = {}

    def register(self, executor: RequestExecutor) -> None:
        self._executors.append(executor)
        self._cache.clear()

    def get_executor(self, request: Request) -> RequestExecutor:
        """
        Return the executor for ``request``.

        Raises:
            ExecutorNotFoundError: no registered executor handles the variant
        """
        key = executor_key(request)
        executor = self._cache.get(key)
        if executor is not None:
            return executor

        for candidate in self._executors:
            if candidate.can_execute(request):
                self._cache[key] = candidate
                return candidate

        request_type = getattr(request, "request_type", type(request).__name__)
        logger.error("No executor registered for %s", key)
        raise ExecutorNotFoundError(request_type)


def create_default_factory(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ExecutorFactory:
    """Factory with every built-in executor, subscription executors first."""
    settings = settings or get_settings()
    return ExecutorFactory([
        GraphQLWebSocketExecutor(settings),
        GraphQLSSEExecutor(settings, transport),
        GraphQLExecutor(settings, transport),
        RestExecutor(settings, transport),
        WebSocketExecutor(settings),
    ])
