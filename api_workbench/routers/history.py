"""
History record API routes.

Provides endpoints for viewing and managing request execution history.
History records are created automatically whenever a request runs.
"""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..exceptions import ResourceNotFoundError
from ..models.history import History
from ..schemas.history import HistoryResponse, HistoryListResponse


router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("", response_model=HistoryListResponse)
def list_history(
    skip: int = 0,
    limit: int = 100,
    request_id: uuid.UUID | None = None,
    db: Session = Depends(get_db)
):
    """
    Get history records, newest first.

    Args:
        skip: Number of records to skip (for pagination)
        limit: Maximum number of records to return
        request_id: Only records of this saved request

    Returns:
        HistoryListResponse with items and total count
    """
    query = db.query(History)
    if request_id is not None:
        query = query.filter(History.request_id == request_id)
    total = query.count()
    items = query.order_by(History.executed_at.desc()).offset(skip).limit(limit).all()
    return HistoryListResponse(items=items, total=total)


@router.get("/{history_id}", response_model=HistoryResponse)
def get_history(history_id: uuid.UUID, db: Session = Depends(get_db)):
    """Get a single history record by ID."""
    db_history = db.get(History, history_id)
    if db_history is None:
        raise ResourceNotFoundError("History record", history_id)
    return db_history


@router.delete("/{history_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_history(history_id: uuid.UUID, db: Session = Depends(get_db)):
    """Delete a single history record by ID."""
    db_history = db.get(History, history_id)
    if db_history is None:
        raise ResourceNotFoundError("History record", history_id)
    db.delete(db_history)
    db.commit()
    return None


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
def clear_all_history(db: Session = Depends(get_db)):
    """Clear all history records."""
    db.query(History).delete()
    db.commit()
    return None
