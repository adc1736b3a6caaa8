"""
Collection management API routes.

Provides CRUD operations for collections and the collection tree.
Collections nest through ``parent_id``; moves that would create a cycle
are rejected.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import get_variable_store
from ..exceptions import BadRequestError, ResourceNotFoundError, ValidationError
from ..schemas.collection import (
    Collection,
    CollectionCreate,
    CollectionUpdate,
    CollectionTreeNode,
)
from ..schemas.environment import VariableValue
from ..schemas.variables import mask_secrets, restore_masked_secrets
from ..services.collection_tree import build_collection_tree, descendant_ids, detect_circular_reference
from ..services.data_generator import validate_dynamic_variable
from ..services.repository import request_repository
from ..services.variable_store import VariableStore


router = APIRouter(prefix="/api/collections", tags=["collections"])


def _masked(collection: Collection) -> Collection:
    return collection.model_copy(update={
        "variables": mask_secrets(collection.variables, collection.secret_variable_names)
    })


def _get_or_404(store: VariableStore, collection_id: uuid.UUID) -> Collection:
    collection = store.load_collection(collection_id)
    if collection is None:
        raise ResourceNotFoundError("Collection", collection_id)
    return collection


def _check(store: VariableStore, collection: Collection) -> None:
    for dynamic_variable in collection.dynamic_variables:
        if not validate_dynamic_variable(dynamic_variable):
            raise ValidationError(f"Invalid dynamic variable: '{dynamic_variable.name}'")
    if collection.parent_id is None:
        return
    if store.collections.get_by_id(collection.parent_id) is None:
        raise ResourceNotFoundError("Collection", collection.parent_id)
    if detect_circular_reference(collection.id, collection.parent_id, store.collections.get_all()):
        raise BadRequestError("Cannot move a collection into itself or one of its descendants")


@router.get("", response_model=list[Collection])
def list_collections(store: VariableStore = Depends(get_variable_store)):
    """Get all collections ordered by sort_order, secrets masked."""
    collections = sorted(store.collections.get_all(), key=lambda c: (c.sort_order, c.name))
    return [_masked(store.load_collection(collection.id)) for collection in collections]


@router.get("/tree", response_model=list[CollectionTreeNode])
def get_collection_tree(
    store: VariableStore = Depends(get_variable_store),
    db: Session = Depends(get_db)
):
    """
    Get the full collection tree with nested collections and requests.

    Returns root-level collections with recursively nested children and requests.
    """
    return build_collection_tree(store.collections.get_all(), request_repository(db).get_all())


@router.post("", response_model=Collection, status_code=status.HTTP_201_CREATED)
def create_collection(collection: CollectionCreate, store: VariableStore = Depends(get_variable_store)):
    """Create a new collection, placed after its existing siblings."""
    siblings = [c for c in store.collections.get_all() if c.parent_id == collection.parent_id]
    entity = Collection(
        **collection.model_dump(),
        sort_order=max((c.sort_order for c in siblings), default=-1) + 1,
    )
    _check(store, entity)
    store.add_collection(entity)
    return _masked(_get_or_404(store, entity.id))


@router.get("/{collection_id}", response_model=Collection)
def get_collection(collection_id: uuid.UUID, store: VariableStore = Depends(get_variable_store)):
    """Get a single collection by ID."""
    return _masked(_get_or_404(store, collection_id))


@router.put("/{collection_id}", response_model=Collection)
def update_collection(
    collection_id: uuid.UUID,
    collection: CollectionUpdate,
    store: VariableStore = Depends(get_variable_store)
):
    """
    Update an existing collection. Only provided fields are changed.

    Raises:
        BadRequestError: the new parent is the collection or one of its descendants
    """
    entity = _get_or_404(store, collection_id)
    updated = Collection.model_validate({**entity.model_dump(), **collection.model_dump(exclude_unset=True)})
    updated.variables = restore_masked_secrets(updated.variables, entity.variables, updated.secret_variable_names)
    _check(store, updated)
    store.save_collection(updated)
    return _masked(_get_or_404(store, collection_id))


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_collection(collection_id: uuid.UUID, store: VariableStore = Depends(get_variable_store)):
    """
    Delete a collection.

    Child collections go first, deepest first, each with its secrets.
    Requests inside them are removed by the database cascade.
    """
    _get_or_404(store, collection_id)
    for descendant_id in reversed(descendant_ids(collection_id, store.collections.get_all())):
        store.delete_collection(descendant_id)
    store.delete_collection(collection_id)
    return None


@router.put("/{collection_id}/variables/{name}", response_model=Collection)
def set_collection_variable(
    collection_id: uuid.UUID,
    name: str,
    variable: VariableValue,
    store: VariableStore = Depends(get_variable_store)
):
    """Set one collection variable, optionally toggling secret storage."""
    entity = _get_or_404(store, collection_id)
    entity.variables[name] = variable.value
    if variable.is_secret is True:
        entity.secret_variable_names.add(name)
    elif variable.is_secret is False:
        entity.secret_variable_names.discard(name)
    store.save_collection(entity)
    return _masked(_get_or_404(store, collection_id))
