"""
History model for storing executed request records.

Each execution of a request creates a history entry containing what was
sent, a summary of the response, and timing information.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, JSON, Integer, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base, utc_now


class History(Base):
    """
    SQLAlchemy model for request execution history.

    Attributes:
        id: Unique identifier for the history entry
        request_id: Optional reference to the original saved request
        request_type: Variant tag of the executed request
        method: HTTP method used, or the streaming session kind
        url: Target URL (after variable resolution)
        request_headers: Headers sent with the request
        request_body: Body sent with the request
        status_code: Response status code, 0 when the call failed
        status_message: Response status text or error description
        response_headers: Headers received in the response
        response_body: Body received in the response
        response_time_ms: Request execution time in milliseconds
        response_size: Response body size in bytes
        executed_at: Timestamp when the request was executed
    """
    __tablename__ = "history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("requests.id", ondelete="SET NULL"),
        nullable=True
    )
    request_type: Mapped[str] = mapped_column(String(20), default="rest")
    method: Mapped[str] = mapped_column(String(30))
    url: Mapped[str] = mapped_column(Text)
    request_headers: Mapped[dict] = mapped_column(JSON, default=dict)
    request_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status_code: Mapped[int] = mapped_column(Integer)
    status_message: Mapped[str] = mapped_column(Text)
    response_headers: Mapped[dict] = mapped_column(JSON, default=dict)
    response_body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    response_time_ms: Mapped[int] = mapped_column(Integer)
    response_size: Mapped[int] = mapped_column(Integer)
    executed_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)
