"""
Flow orchestration.

Steps run strictly in ``order``, one at a time: a step starts only after
the previous step's extractions have been written, so later steps can use
the values earlier steps produced.

Step states:  pending -> running -> success | failed_continued | failed | skipped
Flow states:  running -> completed | failed | cancelled

A failed step without ``continue_on_error`` halts the flow; the steps after
it are skipped. Cancellation is checked before each step, during step
delays and streaming receives, and after the last step; steps not reached
stay pending.
"""

import asyncio
import logging
import uuid

from ..database import utc_now
from ..exceptions import (
    BadRequestError,
    ConfigurationError,
    FlowStepReferenceError,
    ResourceNotFoundError,
)
from ..schemas.collection import Collection
from ..schemas.environment import Environment
from ..schemas.flow import (
    Flow,
    FlowExecutionResult,
    FlowExecutionStatus,
    FlowStep,
    FlowStepResult,
    FlowStepStatus,
)
from ..schemas.request import Request
from .executors.base import CancellationToken
from .repository import Repository
from .request_service import ExecutionContext, RequestExecutionService, transient_environment
from .variable_store import VariableStore


logger = logging.getLogger(__name__)


class FlowRunRegistry:
    """
    Cancellation tokens of the flow runs in progress, by run id.

    Lets a second caller cancel a run started elsewhere.
    """

    def __init__(self):
        self._runs: dict[str, CancellationToken] = {}

    def start(self, run_id: str | None = None) -> tuple[str, CancellationToken]:
        """
        Register a run and return its id and token.

        Raises:
            BadRequestError: a run with this id is still in progress
        """
        run_id = run_id or str(uuid.uuid4())
        if run_id in self._runs:
            raise BadRequestError(f"Flow run {run_id} is already running")
        token = CancellationToken()
        self._runs[run_id] = token
        return run_id, token

    def cancel(self, run_id: str) -> bool:
        token = self._runs.get(run_id)
        if token is None:
            return False
        token.cancel()
        return True

    def finish(self, run_id: str) -> None:
        self._runs.pop(run_id, None)

    def is_running(self, run_id: str) -> bool:
        return run_id in self._runs


flow_runs = FlowRunRegistry()


class FlowEngine:
    def __init__(
        self,
        flows: Repository[Flow],
        requests: Repository[Request],
        execution: RequestExecutionService,
        variable_store: VariableStore,
    ):
        self.flows = flows
        self.requests = requests
        self.execution = execution
        self.variable_store = variable_store

    def _load_requests(self, steps: list[FlowStep]) -> dict[uuid.UUID, Request]:
        """
        Load and check every request an enabled step references.

        Raises:
            FlowStepReferenceError: a step references an unknown request
            ExecutorNotFoundError: no executor handles a referenced request
        """
        requests: dict[uuid.UUID, Request] = {}
        for step in steps:
            request = self.requests.get_by_id(step.request_id)
            if request is not None:
                requests[step.request_id] = request
            if not step.is_enabled:
                continue
            if request is None:
                raise FlowStepReferenceError(step.order, step.request_id)
            self.execution.factory.get_executor(request)
        return requests

    def _resolve_environment(self, environment_id: uuid.UUID | None) -> tuple[Environment, bool]:
        if environment_id is not None:
            environment = self.variable_store.load_environment(environment_id)
            if environment is None:
                raise ResourceNotFoundError("Environment", environment_id)
            return environment, False
        environment = self.variable_store.get_active_environment()
        if environment is None:
            return transient_environment(), True
        return environment, False

    async def execute_flow(
        self,
        flow_id: uuid.UUID,
        cancellation_token: CancellationToken | None = None,
        environment_id: uuid.UUID | None = None,
        run_id: str | None = None,
    ) -> FlowExecutionResult:
        """
        Run a stored flow.

        Args:
            flow_id: Flow to run
            cancellation_token: Checked between steps and passed to executors
            environment_id: Environment to use instead of the active one
            run_id: Identifier echoed in the result

        Returns:
            The full per-step breakdown of the run

        Raises:
            ResourceNotFoundError: unknown flow or environment
            FlowStepReferenceError: a step references an unknown request
            ExecutorNotFoundError: a referenced request has no executor
        """
        flow = self.flows.get_by_id(flow_id)
        if flow is None:
            raise ResourceNotFoundError("Flow", flow_id)

        steps = sorted(flow.steps, key=lambda step: step.order)
        requests = self._load_requests(steps)
        environment, transient = self._resolve_environment(environment_id)
        collections: dict[uuid.UUID, Collection | None] = {}

        result = FlowExecutionResult(flow_id=flow.id, flow_name=flow.name, run_id=run_id)
        result.step_results = [
            FlowStepResult(
                step_id=step.id,
                request_id=step.request_id,
                request_name=requests[step.request_id].name if step.request_id in requests else "",
                order=step.order,
            )
            for step in steps
        ]
        logger.info("Flow %s (%s) started with %d steps", flow.name, flow.id, len(steps))

        halted = False
        for step, step_result in zip(steps, result.step_results):
            if not step.is_enabled or halted:
                step_result.status = FlowStepStatus.SKIPPED
                step_result.completed_at = step_result.started_at = utc_now()
                logger.info("Flow %s: step %d skipped", flow.name, step.order)
                continue

            if cancellation_token is not None and cancellation_token.is_cancellation_requested:
                return self._cancelled(result, flow)

            if step.delay_ms > 0:
                delay = step.delay_ms / 1000
                if cancellation_token is not None:
                    if await cancellation_token.wait(delay):
                        return self._cancelled(result, flow)
                else:
                    await asyncio.sleep(delay)

            request = requests[step.request_id]
            context = ExecutionContext(
                environment=environment,
                collection=self._collection_for(flow, request, collections),
                transient=transient,
            )
            await self._run_step(step, step_result, request, context, cancellation_token)

            if step_result.status == FlowStepStatus.FAILED:
                halted = True
                result.error_message = (
                    f"Step {step.order} ({step_result.request_name}) failed: {step_result.error_message}"
                )

        if cancellation_token is not None and cancellation_token.is_cancellation_requested:
            return self._cancelled(result, flow)

        result.status = FlowExecutionStatus.FAILED if halted else FlowExecutionStatus.COMPLETED
        result.completed_at = utc_now()
        logger.info(
            "Flow %s finished %s in %d ms", flow.name, result.status.value, result.total_duration_ms
        )
        return result

    def _collection_for(
        self,
        flow: Flow,
        request: Request,
        cache: dict[uuid.UUID, Collection | None],
    ) -> Collection | None:
        collection_id = flow.collection_id or request.collection_id
        if collection_id is None:
            return None
        if collection_id not in cache:
            cache[collection_id] = self.variable_store.load_collection(collection_id)
        return cache[collection_id]

    async def _run_step(
        self,
        step: FlowStep,
        step_result: FlowStepResult,
        request: Request,
        context: ExecutionContext,
        cancellation_token: CancellationToken | None,
    ) -> None:
        step_result.status = FlowStepStatus.RUNNING
        step_result.started_at = utc_now()
        try:
            outcome = await self.execution.run(request, context, cancellation_token)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.exception("Flow step %d raised", step.order)
            succeeded, error_message = False, str(e) or type(e).__name__
        else:
            step_result.response = outcome.response
            step_result.extracted_variables = outcome.extracted_variables
            succeeded = outcome.response.is_success
            error_message = None if succeeded else self._failure_message(outcome.response)

        step_result.completed_at = utc_now()
        if succeeded:
            step_result.status = FlowStepStatus.SUCCESS
            logger.info("Step %d (%s) succeeded", step.order, request.name)
            return

        step_result.error_message = error_message
        step_result.status = (
            FlowStepStatus.FAILED_CONTINUED if step.continue_on_error else FlowStepStatus.FAILED
        )
        logger.warning("Step %d (%s) %s: %s", step.order, request.name, step_result.status.value, error_message)

    @staticmethod
    def _failure_message(response) -> str:
        if response.status_code == 0:
            return response.status_message or "Request failed"
        return f"HTTP {response.status_code} {response.status_message}".strip()

    @staticmethod
    def _cancelled(result: FlowExecutionResult, flow: Flow) -> FlowExecutionResult:
        result.status = FlowExecutionStatus.CANCELLED
        result.error_message = "Flow execution was cancelled"
        result.completed_at = utc_now()
        logger.info("Flow %s cancelled", flow.name)
        return result
