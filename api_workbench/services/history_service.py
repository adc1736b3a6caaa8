"""
History service for saving request execution records.

This service handles the creation of history records when requests are executed.
"""

import uuid

from sqlalchemy.orm import Session

from ..models.history import History
from ..schemas.request import Request, RestRequest
from ..schemas.response import RequestResponse


def _method_of(request: Request) -> str:
    if isinstance(request, RestRequest):
        return request.method
    if request.request_type == "websocket":
        return "WS"
    return "POST"


def save_history(
    db: Session,
    request: Request,
    response: RequestResponse,
    request_id: uuid.UUID | None = None
) -> History:
    """
    Save a request execution to history.

    The sent-request echo is preferred over the template so the record shows
    what actually went over the wire.

    Args:
        db: Database session
        request: The executed (resolved) request
        response: The response received
        request_id: Optional ID of the saved request (if executing a saved request)

    Returns:
        The created history record
    """
    sent = response.sent_request
    history = History(
        request_id=request_id,
        request_type=request.request_type,
        method=sent.method if sent and sent.method else _method_of(request),
        url=sent.url if sent and sent.url else request.url,
        request_headers=sent.headers if sent else dict(request.headers),
        request_body=sent.body if sent else None,
        status_code=response.status_code,
        status_message=response.status_message,
        response_headers=response.headers,
        response_body=response.body,
        response_time_ms=response.response_time_ms,
        response_size=response.size
    )
    db.add(history)
    db.commit()
    db.refresh(history)
    return history
