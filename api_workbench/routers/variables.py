"""
Variable preview and lookup API routes.

Lets a client see what a piece of text resolves to, and read or write a
single variable through the same precedence the executors use.
"""

import uuid

from fastapi import APIRouter, Depends

from ..dependencies import get_variable_store
from ..exceptions import ResourceNotFoundError
from ..schemas.collection import Collection
from ..schemas.environment import Environment
from ..schemas.execute import ResolvePreview, ResolveRequest, VariableLookup, VariableWrite
from ..services.request_service import transient_environment
from ..services.variable_resolver import (
    contains_variables,
    extract_variable_names,
    get_variable_value,
    resolve,
    set_variable_value,
)
from ..services.variable_store import VariableStore


router = APIRouter(prefix="/api/variables", tags=["variables"])


def _scopes(
    store: VariableStore,
    environment_id: uuid.UUID | None,
    collection_id: uuid.UUID | None,
) -> tuple[Environment | None, Collection | None]:
    if environment_id is not None:
        environment = store.load_environment(environment_id)
        if environment is None:
            raise ResourceNotFoundError("Environment", environment_id)
    else:
        environment = store.get_active_environment()

    collection = None
    if collection_id is not None:
        collection = store.load_collection(collection_id)
        if collection is None:
            raise ResourceNotFoundError("Collection", collection_id)
    return environment, collection


@router.post("/resolve", response_model=ResolvePreview)
def resolve_text(payload: ResolveRequest, store: VariableStore = Depends(get_variable_store)):
    """
    Resolve the placeholders in a piece of text.

    Unknown names are left in place. Dynamic variables are generated anew
    on every call.
    """
    environment, collection = _scopes(store, payload.environment_id, payload.collection_id)
    return ResolvePreview(
        resolved=resolve(payload.text, environment or transient_environment(), collection) or "",
        names=extract_variable_names(payload.text),
        contains_variables=contains_variables(payload.text),
    )


@router.get("/{name}", response_model=VariableLookup)
def get_variable(
    name: str,
    environment_id: uuid.UUID | None = None,
    collection_id: uuid.UUID | None = None,
    store: VariableStore = Depends(get_variable_store),
):
    """Look up one variable; ``value`` is null when no scope defines it."""
    environment, collection = _scopes(store, environment_id, collection_id)
    value = get_variable_value(name, environment or transient_environment(), collection)
    return VariableLookup(name=name, value=value)


@router.put("/{name}", response_model=VariableLookup)
def put_variable(name: str, payload: VariableWrite, store: VariableStore = Depends(get_variable_store)):
    """
    Write one variable into the collection or the environment scope.

    Raises:
        ResourceNotFoundError: 404 when the target scope does not exist
    """
    environment, collection = _scopes(store, payload.environment_id, payload.collection_id)
    to_collection = payload.save_to_collection and collection is not None
    if environment is None and not to_collection:
        raise ResourceNotFoundError("Environment", "active")

    set_variable_value(
        name,
        payload.value,
        environment or transient_environment(),
        collection,
        save_to_collection=payload.save_to_collection,
    )
    if to_collection:
        store.save_collection(collection)
    else:
        store.save_environment(environment)
    return VariableLookup(name=name, value=payload.value)
