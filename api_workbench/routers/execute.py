"""
Request execution API routes.

Provides endpoints for executing saved and unsaved requests. Variables are
resolved against the chosen (or active) environment and the request's
collection; extraction rules run afterwards and every execution is
recorded in history.

Network and protocol failures are not HTTP errors here: they come back as
a response with status code 0 and the failure in ``status_message``.
"""

import logging
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_executor_factory, get_variable_store
from ..exceptions import ResourceNotFoundError
from ..schemas.execute import ExecuteAdHocRequest, ExecuteOptions
from ..schemas.request import Request
from ..schemas.response import RequestResponse
from ..services.executors import ExecutorFactory
from ..services.history_service import save_history
from ..services.repository import request_repository
from ..services.request_service import ExecutionContext, RequestExecutionService, transient_environment
from ..services.variable_store import VariableStore


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/execute", tags=["execute"])


def build_context(
    store: VariableStore,
    request: Request,
    options: ExecuteOptions,
) -> ExecutionContext | None:
    """
    Pick the variable scopes for one execution.

    Returns None when there is neither an environment nor a collection to
    resolve against; the request then runs as written.
    """
    if options.environment_id is not None:
        environment = store.load_environment(options.environment_id)
        if environment is None:
            raise ResourceNotFoundError("Environment", options.environment_id)
    else:
        environment = store.get_active_environment()

    collection = None
    collection_id = options.collection_id or request.collection_id
    if collection_id is not None:
        collection = store.load_collection(collection_id)
        if collection is None and options.collection_id is not None:
            raise ResourceNotFoundError("Collection", collection_id)

    if environment is None:
        if collection is None:
            return None
        return ExecutionContext(environment=transient_environment(), collection=collection, transient=True)
    return ExecutionContext(environment=environment, collection=collection)


async def _execute(
    request: Request,
    options: ExecuteOptions,
    request_id: uuid.UUID | None,
    db: Session,
    store: VariableStore,
    factory: ExecutorFactory,
) -> RequestResponse:
    service = RequestExecutionService(
        factory,
        variable_store=store,
        history_recorder=lambda resolved, response, template: save_history(
            db=db, request=resolved, response=response, request_id=request_id
        ),
    )
    context = build_context(store, request, options)
    response = await service.execute_request(request, context)
    logger.info(
        "Executed %s request %s: %s %s",
        request.request_type, request.name or request.url, response.status_code, response.status_message,
    )
    return response


@router.post("/{request_id}", response_model=RequestResponse)
async def execute_saved_request(
    request_id: uuid.UUID,
    options: ExecuteOptions | None = None,
    db: Session = Depends(get_db),
    store: VariableStore = Depends(get_variable_store),
    factory: ExecutorFactory = Depends(get_executor_factory),
):
    """
    Execute a saved request by ID.

    Args:
        request_id: The unique identifier of the saved request
        options: Optional environment and collection overrides

    Returns:
        The response, with status code 0 when the request could not be sent

    Raises:
        ResourceNotFoundError: 404 if the request or a chosen scope does not exist
        ExecutorNotFoundError: 422 if no executor handles the request
    """
    request = request_repository(db).get_by_id(request_id)
    if request is None:
        raise ResourceNotFoundError("Request", request_id)
    return await _execute(request, options or ExecuteOptions(), request_id, db, store, factory)


@router.post("", response_model=RequestResponse)
async def execute_adhoc_request(
    payload: ExecuteAdHocRequest,
    db: Session = Depends(get_db),
    store: VariableStore = Depends(get_variable_store),
    factory: ExecutorFactory = Depends(get_executor_factory),
):
    """Execute an unsaved request. Extracted values are still persisted."""
    return await _execute(payload.request, payload, None, db, store, factory)
