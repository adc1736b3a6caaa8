"""
Request management API routes.

Provides CRUD operations for request templates of every variant, plus
cloning and conversion between variants.
"""

import uuid

from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..database import get_db, utc_now
from ..exceptions import ResourceNotFoundError
from ..schemas.request import ConvertRequest, Request, RequestType
from ..services.repository import SqlRepository, collection_repository, request_repository
from ..services.request_cloner import clone_request, convert_request


router = APIRouter(prefix="/api/requests", tags=["requests"])


class ReorderRequests(BaseModel):
    """Schema for reordering requests."""
    request_ids: list[uuid.UUID]


def _get_or_404(repository: SqlRepository[Request], request_id: uuid.UUID) -> Request:
    request = repository.get_by_id(request_id)
    if request is None:
        raise ResourceNotFoundError("Request", request_id)
    return request


def _check_collection(db: Session, request: Request) -> None:
    if request.collection_id is not None and collection_repository(db).get_by_id(request.collection_id) is None:
        raise ResourceNotFoundError("Collection", request.collection_id)


@router.post("/reorder", status_code=status.HTTP_200_OK)
def reorder_requests(reorder_data: ReorderRequests, db: Session = Depends(get_db)):
    """Reorder requests by updating their sort_order."""
    repository = request_repository(db)
    reordered = []
    for index, request_id in enumerate(reorder_data.request_ids):
        request = repository.get_by_id(request_id)
        if request is not None:
            request.sort_order = index
            reordered.append(request)
    repository.update_range(reordered)
    return {"message": "Requests reordered successfully"}


@router.post("", response_model=Request, status_code=status.HTTP_201_CREATED)
def create_request(request_data: Request = Body(...), db: Session = Depends(get_db)):
    """
    Create a new request template.

    The ``request_type`` field selects the variant. A fresh id is always
    assigned.
    """
    request = request_data.model_copy(update={"id": uuid.uuid4(), "created_at": utc_now()})
    _check_collection(db, request)
    return request_repository(db).add(request)


@router.get("", response_model=list[Request])
def list_requests(collection_id: uuid.UUID | None = None, db: Session = Depends(get_db)):
    """List saved requests, optionally only those of one collection."""
    requests = request_repository(db).get_all()
    if collection_id is not None:
        requests = [r for r in requests if r.collection_id == collection_id]
    return sorted(requests, key=lambda r: (r.sort_order, r.created_at))


@router.get("/{request_id}", response_model=Request)
def get_request(request_id: uuid.UUID, db: Session = Depends(get_db)):
    """Get a single request by ID."""
    return _get_or_404(request_repository(db), request_id)


@router.put("/{request_id}", response_model=Request)
def update_request(request_id: uuid.UUID, request_data: Request = Body(...), db: Session = Depends(get_db)):
    """
    Replace a request template.

    The body is a complete request; its variant may differ from the stored
    one. The id and creation time are kept.
    """
    repository = request_repository(db)
    existing = _get_or_404(repository, request_id)
    request = request_data.model_copy(update={"id": existing.id, "created_at": existing.created_at})
    _check_collection(db, request)
    return repository.update(request)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(request_id: uuid.UUID, db: Session = Depends(get_db)):
    """Delete a request. History records keep their data and lose the link."""
    if not request_repository(db).delete(request_id):
        raise ResourceNotFoundError("Request", request_id)
    return None


@router.post("/{request_id}/clone", response_model=Request, status_code=status.HTTP_201_CREATED)
def duplicate_request(request_id: uuid.UUID, db: Session = Depends(get_db)):
    """Save a copy of a request under a new id, named "<name> (copy)"."""
    repository = request_repository(db)
    copy = clone_request(_get_or_404(repository, request_id))
    copy.id = uuid.uuid4()
    copy.name = f"{copy.name} (copy)"
    copy.created_at = utc_now()
    return repository.add(copy)


@router.post("/{request_id}/convert/{target_type}", response_model=Request)
def convert_stored_request(
    request_id: uuid.UUID,
    target_type: RequestType,
    options: ConvertRequest | None = None,
    db: Session = Depends(get_db)
):
    """
    Convert a request to another variant.

    The converted request is returned; it is stored as a new request only
    when ``save`` is set.
    """
    repository = request_repository(db)
    converted = convert_request(_get_or_404(repository, request_id), target_type)
    if options is not None and options.save:
        if converted.id == request_id:
            converted.id = uuid.uuid4()
        return repository.add(converted)
    return converted
