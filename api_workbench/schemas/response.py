"""
Pydantic schemas for normalized executor responses.

Every executor, whatever the protocol, returns a `RequestResponse`. A
network or protocol failure is a response with ``status_code == 0``.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ..database import utc_now


class StreamEvent(BaseModel):
    """One frame or lifecycle event of a streaming execution."""
    timestamp: datetime = Field(default_factory=utc_now)
    event_type: str | None = None
    data: str = ""


class SentRequest(BaseModel):
    """Echo of what was actually put on the wire, kept for audit."""
    url: str = ""
    method: str = ""
    headers: dict[str, str] = {}
    body: str | None = None
    query_params: dict[str, str] = {}


class RequestResponse(BaseModel):
    """
    Normalized response envelope.

    Attributes:
        status_code: HTTP status, 101 for an established WebSocket session,
            0 when the call failed before a response was obtained
        status_message: Reason phrase or ``"Error: ..."`` description
        response_time_ms: Wall-clock time from pipeline entry to completion
        size: Body size in bytes
    """
    status_code: int = 0
    status_message: str = ""
    headers: dict[str, str] = {}
    body: str = ""
    size: int = 0
    response_time_ms: int = 0
    timestamp: datetime = Field(default_factory=utc_now)
    sent_request: SentRequest | None = None
    is_streaming: bool = False
    stream_events: list[StreamEvent] = []

    @property
    def content_type(self) -> str | None:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return None

    @property
    def is_success(self) -> bool:
        """2xx, or an established WebSocket session."""
        return 200 <= self.status_code <= 299 or self.status_code == 101
