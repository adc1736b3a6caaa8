"""
Flow management and execution API routes.

Provides CRUD operations for flows, a run endpoint returning the full
per-step result, and cancellation of a run in progress by its run id.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db, utc_now
from ..dependencies import get_executor_factory, get_variable_store
from ..exceptions import ResourceNotFoundError
from ..schemas.flow import (
    Flow,
    FlowCreate,
    FlowExecuteOptions,
    FlowExecutionResult,
    FlowStep,
    FlowStepCreate,
    FlowUpdate,
)
from ..services.executors import ExecutorFactory
from ..services.flow_engine import FlowEngine, flow_runs
from ..services.history_service import save_history
from ..services.repository import SqlRepository, collection_repository, flow_repository, request_repository
from ..services.request_service import RequestExecutionService
from ..services.variable_store import VariableStore


router = APIRouter(prefix="/api/flows", tags=["flows"])


def _get_or_404(repository: SqlRepository[Flow], flow_id: uuid.UUID) -> Flow:
    flow = repository.get_by_id(flow_id)
    if flow is None:
        raise ResourceNotFoundError("Flow", flow_id)
    return flow


def _build_steps(db: Session, steps: list[FlowStepCreate]) -> list[FlowStep]:
    """Steps without an explicit order take their list position."""
    requests = request_repository(db)
    built = []
    for position, step in enumerate(steps):
        if requests.get_by_id(step.request_id) is None:
            raise ResourceNotFoundError("Request", step.request_id)
        built.append(FlowStep(
            request_id=step.request_id,
            order=step.order if step.order is not None else position,
            is_enabled=step.is_enabled,
            continue_on_error=step.continue_on_error,
            delay_ms=step.delay_ms,
        ))
    return sorted(built, key=lambda s: s.order)


def _check_collection(db: Session, collection_id: uuid.UUID | None) -> None:
    if collection_id is not None and collection_repository(db).get_by_id(collection_id) is None:
        raise ResourceNotFoundError("Collection", collection_id)


@router.get("", response_model=list[Flow])
def list_flows(collection_id: uuid.UUID | None = None, db: Session = Depends(get_db)):
    """List flows, oldest first, optionally only those of one collection."""
    flows = flow_repository(db).get_all()
    if collection_id is not None:
        flows = [f for f in flows if f.collection_id == collection_id]
    return sorted(flows, key=lambda f: f.created_at)


@router.post("", response_model=Flow, status_code=status.HTTP_201_CREATED)
def create_flow(flow_data: FlowCreate, db: Session = Depends(get_db)):
    """Create a flow. Every step must reference an existing request."""
    _check_collection(db, flow_data.collection_id)
    flow = Flow(
        name=flow_data.name,
        description=flow_data.description,
        collection_id=flow_data.collection_id,
        steps=_build_steps(db, flow_data.steps),
    )
    return flow_repository(db).add(flow)


@router.get("/{flow_id}", response_model=Flow)
def get_flow(flow_id: uuid.UUID, db: Session = Depends(get_db)):
    """Get a single flow with its steps."""
    return _get_or_404(flow_repository(db), flow_id)


@router.put("/{flow_id}", response_model=Flow)
def update_flow(flow_id: uuid.UUID, flow_data: FlowUpdate, db: Session = Depends(get_db)):
    """Update a flow. Only provided fields are changed; ``steps`` replaces the step list."""
    repository = flow_repository(db)
    flow = _get_or_404(repository, flow_id)
    update_data = flow_data.model_dump(exclude_unset=True, exclude={"steps"})
    if "collection_id" in update_data:
        _check_collection(db, update_data["collection_id"])
    flow = flow.model_copy(update=update_data)
    if flow_data.steps is not None:
        flow.steps = _build_steps(db, flow_data.steps)
    flow.updated_at = utc_now()
    return repository.update(flow)


@router.delete("/{flow_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_flow(flow_id: uuid.UUID, db: Session = Depends(get_db)):
    """Delete a flow and its steps."""
    if not flow_repository(db).delete(flow_id):
        raise ResourceNotFoundError("Flow", flow_id)
    return None


@router.post("/{flow_id}/execute", response_model=FlowExecutionResult)
async def execute_flow(
    flow_id: uuid.UUID,
    options: FlowExecuteOptions | None = None,
    db: Session = Depends(get_db),
    store: VariableStore = Depends(get_variable_store),
    factory: ExecutorFactory = Depends(get_executor_factory),
):
    """
    Run a flow to completion and return the per-step breakdown.

    A caller-chosen ``run_id`` can be passed to cancel the run from another
    request via ``POST /api/flows/runs/{run_id}/cancel``.

    Raises:
        ResourceNotFoundError: 404 for an unknown flow or environment
        FlowStepReferenceError: 422 when a step references a missing request
        ExecutorNotFoundError: 422 when a step's request has no executor
        BadRequestError: 400 when ``run_id`` names a run still in progress
    """
    options = options or FlowExecuteOptions()
    execution = RequestExecutionService(
        factory,
        variable_store=store,
        history_recorder=lambda resolved, response, template: save_history(
            db=db, request=resolved, response=response, request_id=template.id
        ),
    )
    engine = FlowEngine(flow_repository(db), request_repository(db), execution, store)

    run_id, token = flow_runs.start(options.run_id)
    try:
        return await engine.execute_flow(
            flow_id,
            cancellation_token=token,
            environment_id=options.environment_id,
            run_id=run_id,
        )
    finally:
        flow_runs.finish(run_id)


@router.post("/runs/{run_id}/cancel")
def cancel_flow_run(run_id: str):
    """Request cancellation of a running flow."""
    if not flow_runs.cancel(run_id):
        raise ResourceNotFoundError("Flow run", run_id)
    return {"run_id": run_id, "cancelled": True}
