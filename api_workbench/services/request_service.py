"""
Request execution pipeline.

    select executor -> clone -> resolve -> execute -> extract -> persist -> history

The executor is selected before anything else so that a configuration
error surfaces before any I/O. Resolution always works on a clone; the
stored template is never modified.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from ..schemas.collection import Collection
from ..schemas.environment import Environment
from ..schemas.request import Request
from ..schemas.response import RequestResponse
from .executors.base import CancellationToken
from .executors.factory import ExecutorFactory
from .request_cloner import clone_request
from .request_resolution import resolve_request
from .response_extractor import extract_value
from .variable_resolver import set_variable_value
from .variable_store import VariableStore


logger = logging.getLogger(__name__)

DEFAULT_EXTRACTION_CONTENT_TYPE = "application/json"

HistoryRecorder = Callable[[Request, RequestResponse, Request], None]


@dataclass
class ExecutionContext:
    """
    Variable scope an execution resolves against and writes extractions into.

    A transient environment is never persisted.
    """
    environment: Environment
    collection: Collection | None = None
    transient: bool = False


@dataclass
class ExecutionOutcome:
    response: RequestResponse
    resolved_request: Request
    extracted_variables: dict[str, str] = field(default_factory=dict)


def transient_environment() -> Environment:
    return Environment(name="No Environment")


class RequestExecutionService:
    """
    Runs single requests through the full pipeline.

    Args:
        factory: Executor selection
        variable_store: Source of the active environment and collections, and
            where extracted values are persisted; optional for in-memory use
        history_recorder: Called with (resolved request, response, template)
            after every execution
    """

    def __init__(
        self,
        factory: ExecutorFactory,
        variable_store: VariableStore | None = None,
        history_recorder: HistoryRecorder | None = None,
    ):
        self.factory = factory
        self.variable_store = variable_store
        self.history_recorder = history_recorder

    def load_context(self, request: Request) -> ExecutionContext | None:
        """Active environment plus the request's collection, or None without an active environment."""
        if self.variable_store is None:
            return None
        environment = self.variable_store.get_active_environment()
        if environment is None:
            return None
        collection = None
        if request.collection_id is not None:
            collection = self.variable_store.load_collection(request.collection_id)
        return ExecutionContext(environment=environment, collection=collection)

    def apply_extractions(
        self,
        request: Request,
        response: RequestResponse,
        context: ExecutionContext,
    ) -> dict[str, str]:
        """
        Run every enabled extraction rule and write the values into the context.

        A rule that finds nothing is skipped; it does not fail the execution.
        """
        content_type = response.content_type or DEFAULT_EXTRACTION_CONTENT_TYPE
        extracted: dict[str, str] = {}
        for rule in request.response_extractions:
            if not rule.is_enabled or not rule.variable_name:
                continue
            value = extract_value(response.body, rule.pattern, content_type)
            if value is None:
                logger.debug("Extraction %r found no value for %s", rule.pattern, rule.variable_name)
                continue
            set_variable_value(
                rule.variable_name,
                value,
                context.environment,
                context.collection,
                save_to_collection=rule.save_to_collection,
            )
            extracted[rule.variable_name] = value
        return extracted

    def persist_context(self, request: Request, context: ExecutionContext) -> None:
        """Save the scopes touched by extraction rules."""
        if self.variable_store is None:
            return
        enabled = [rule for rule in request.response_extractions if rule.is_enabled and rule.variable_name]
        to_collection = context.collection is not None and any(rule.save_to_collection for rule in enabled)
        to_environment = any(not rule.save_to_collection or context.collection is None for rule in enabled)
        if to_collection:
            self.variable_store.save_collection(context.collection)
        if to_environment and not context.transient:
            self.variable_store.save_environment(context.environment)

    async def run(
        self,
        request: Request,
        context: ExecutionContext | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> ExecutionOutcome:
        """
        Execute a request and report the response with the extracted values.

        Raises:
            ExecutorNotFoundError: no executor handles the request variant
        """
        executor = self.factory.get_executor(request)

        if context is None:
            context = self.load_context(request)

        resolved = clone_request(request)
        if context is not None:
            resolve_request(resolved, context.environment, context.collection)
        else:
            context = ExecutionContext(environment=transient_environment(), transient=True)

        response = await executor.execute(resolved, cancellation_token)

        extracted = self.apply_extractions(request, response, context)
        if extracted:
            self.persist_context(request, context)

        if self.history_recorder is not None:
            self.history_recorder(resolved, response, request)

        return ExecutionOutcome(response=response, resolved_request=resolved, extracted_variables=extracted)

    async def execute_request(
        self,
        request: Request,
        context: ExecutionContext | None = None,
        cancellation_token: CancellationToken | None = None,
    ) -> RequestResponse:
        outcome = await self.run(request, context, cancellation_token)
        return outcome.response
