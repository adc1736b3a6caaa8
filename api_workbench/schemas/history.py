"""
Pydantic schemas for request execution history.

Defines schemas for returning history records.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class HistoryResponse(BaseModel):
    """Schema for a history record: what was sent and a response summary."""
    id: uuid.UUID
    request_id: uuid.UUID | None
    request_type: str
    method: str
    url: str
    request_headers: dict[str, str]
    request_body: str | None
    status_code: int
    status_message: str
    response_headers: dict[str, str]
    response_body: str | None
    response_time_ms: int
    response_size: int
    executed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoryListResponse(BaseModel):
    """Schema for paginated history list response."""
    items: list[HistoryResponse]
    total: int
