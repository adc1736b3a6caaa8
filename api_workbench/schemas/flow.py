"""
Pydantic schemas for flows and flow execution results.

A flow is an ordered list of steps, each pointing at a stored request.
Executing a flow produces a `FlowExecutionResult` holding one
`FlowStepResult` per step, so a partial failure can be diagnosed without
re-running.
"""

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field

from ..database import utc_now
from .response import RequestResponse


class FlowStepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED_CONTINUED = "failed_continued"
    FAILED = "failed"
    SKIPPED = "skipped"


class FlowExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def _elapsed_ms(started_at: datetime, completed_at: datetime | None) -> int:
    if completed_at is None:
        return 0
    return max(0, int((completed_at - started_at).total_seconds() * 1000))


class FlowStep(BaseModel):
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    request_id: uuid.UUID
    order: int = 0
    is_enabled: bool = True
    continue_on_error: bool = False
    delay_ms: int = Field(default=0, ge=0)

    model_config = ConfigDict(from_attributes=True)


class Flow(BaseModel):
    """Ordered sequence of request-executing steps."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    description: str | None = None
    collection_id: uuid.UUID | None = None
    steps: list[FlowStep] = []
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(from_attributes=True)


class FlowStepCreate(BaseModel):
    request_id: uuid.UUID
    order: int | None = None
    is_enabled: bool = True
    continue_on_error: bool = False
    delay_ms: int = Field(default=0, ge=0)


class FlowCreate(BaseModel):
    """Schema for creating a flow. Steps without an order keep list position."""
    name: str
    description: str | None = None
    collection_id: uuid.UUID | None = None
    steps: list[FlowStepCreate] = []


class FlowUpdate(BaseModel):
    """Schema for updating a flow. A provided step list replaces the old one."""
    name: str | None = None
    description: str | None = None
    collection_id: uuid.UUID | None = None
    steps: list[FlowStepCreate] | None = None


class FlowStepResult(BaseModel):
    step_id: uuid.UUID
    request_id: uuid.UUID
    request_name: str = ""
    order: int = 0
    status: FlowStepStatus = FlowStepStatus.PENDING
    response: RequestResponse | None = None
    error_message: str | None = None
    extracted_variables: dict[str, str] = {}
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None

    @computed_field
    @property
    def duration_ms(self) -> int:
        return _elapsed_ms(self.started_at, self.completed_at)


class FlowExecutionResult(BaseModel):
    """Record of one flow run, built up step by step."""
    flow_id: uuid.UUID
    flow_name: str = ""
    run_id: str | None = None
    status: FlowExecutionStatus = FlowExecutionStatus.RUNNING
    step_results: list[FlowStepResult] = []
    error_message: str | None = None
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None

    @computed_field
    @property
    def total_duration_ms(self) -> int:
        return _elapsed_ms(self.started_at, self.completed_at)


class FlowExecuteOptions(BaseModel):
    """Options accepted when starting a flow run over the API."""
    environment_id: uuid.UUID | None = None
    run_id: str | None = None
