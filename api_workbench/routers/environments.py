"""
Environment management API routes.

Provides CRUD operations for environments, single-variable writes and
activation. Secret values never leave the server: responses mask them.
"""

import uuid

from fastapi import APIRouter, Depends, status

from ..dependencies import get_variable_store
from ..exceptions import ResourceNotFoundError, ValidationError
from ..schemas.environment import (
    Environment,
    EnvironmentCreate,
    EnvironmentUpdate,
    EnvironmentResponse,
    VariableValue,
)
from ..schemas.variables import restore_masked_secrets
from ..services.data_generator import validate_dynamic_variable
from ..services.variable_store import VariableStore


router = APIRouter(prefix="/api/environments", tags=["environments"])


def _check_dynamic_variables(environment: Environment) -> None:
    for dynamic_variable in environment.dynamic_variables:
        if not validate_dynamic_variable(dynamic_variable):
            raise ValidationError(f"Invalid dynamic variable: '{dynamic_variable.name}'")


def _get_or_404(store: VariableStore, environment_id: uuid.UUID) -> Environment:
    environment = store.load_environment(environment_id)
    if environment is None:
        raise ResourceNotFoundError("Environment", environment_id)
    return environment


@router.get("", response_model=list[EnvironmentResponse])
def list_environments(store: VariableStore = Depends(get_variable_store)):
    """Get all environments, secrets masked."""
    environments = sorted(store.list_environments(), key=lambda e: e.created_at)
    return [EnvironmentResponse.masked(environment) for environment in environments]


@router.post("", response_model=EnvironmentResponse, status_code=status.HTTP_201_CREATED)
def create_environment(
    environment: EnvironmentCreate,
    store: VariableStore = Depends(get_variable_store)
):
    """
    Create a new environment.

    Creating an active environment deactivates every other one.
    """
    entity = Environment(**environment.model_dump())
    _check_dynamic_variables(entity)
    store.add_environment(entity)
    return EnvironmentResponse.masked(_get_or_404(store, entity.id))


@router.get("/active", response_model=EnvironmentResponse | None)
def get_active_environment(store: VariableStore = Depends(get_variable_store)):
    """Get the active environment, or null when none is active."""
    environment = store.get_active_environment()
    return EnvironmentResponse.masked(environment) if environment is not None else None


@router.get("/{environment_id}", response_model=EnvironmentResponse)
def get_environment(environment_id: uuid.UUID, store: VariableStore = Depends(get_variable_store)):
    """Get a single environment by ID."""
    return EnvironmentResponse.masked(_get_or_404(store, environment_id))


@router.put("/{environment_id}", response_model=EnvironmentResponse)
def update_environment(
    environment_id: uuid.UUID,
    environment: EnvironmentUpdate,
    store: VariableStore = Depends(get_variable_store)
):
    """
    Update an existing environment.

    Only provided fields are changed. A provided ``variables`` mapping
    replaces the old one; a secret sent back masked keeps its stored value.
    """
    entity = _get_or_404(store, environment_id)
    update_data = environment.model_dump(exclude_unset=True)
    updated = Environment.model_validate({**entity.model_dump(), **update_data})
    updated.variables = restore_masked_secrets(updated.variables, entity.variables, updated.secret_variable_names)
    _check_dynamic_variables(updated)
    store.save_environment(updated)
    return EnvironmentResponse.masked(_get_or_404(store, environment_id))


@router.delete("/{environment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_environment(environment_id: uuid.UUID, store: VariableStore = Depends(get_variable_store)):
    """Delete an environment together with its secrets."""
    if not store.delete_environment(environment_id):
        raise ResourceNotFoundError("Environment", environment_id)
    return None


@router.post("/{environment_id}/activate", response_model=EnvironmentResponse)
def activate_environment(environment_id: uuid.UUID, store: VariableStore = Depends(get_variable_store)):
    """Make this environment the active one, deactivating all others."""
    return EnvironmentResponse.masked(store.activate_environment(environment_id))


@router.put("/{environment_id}/variables/{name}", response_model=EnvironmentResponse)
def set_environment_variable(
    environment_id: uuid.UUID,
    name: str,
    variable: VariableValue,
    store: VariableStore = Depends(get_variable_store)
):
    """
    Set one variable. ``is_secret`` toggles secret storage when given and
    leaves it unchanged when omitted.
    """
    entity = _get_or_404(store, environment_id)
    entity.variables[name] = variable.value
    if variable.is_secret is True:
        entity.secret_variable_names.add(name)
    elif variable.is_secret is False:
        entity.secret_variable_names.discard(name)
    store.save_environment(entity)
    return EnvironmentResponse.masked(_get_or_404(store, environment_id))


@router.delete("/{environment_id}/variables/{name}", response_model=EnvironmentResponse)
def delete_environment_variable(
    environment_id: uuid.UUID,
    name: str,
    store: VariableStore = Depends(get_variable_store)
):
    """Remove one variable, plain or secret."""
    entity = _get_or_404(store, environment_id)
    if name not in entity.variables:
        raise ResourceNotFoundError("Variable", name)
    del entity.variables[name]
    entity.secret_variable_names.discard(name)
    store.save_environment(entity)
    return EnvironmentResponse.masked(_get_or_404(store, environment_id))
