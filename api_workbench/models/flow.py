"""
Flow and FlowStep models for stored request sequences.

A step's ``request_id`` is not a foreign key; a step pointing at a deleted
request is reported when the flow is executed.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import String, Text, Boolean, Integer, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import Base, utc_now


class Flow(Base):
    """
    SQLAlchemy model for flows.

    Deleting a flow cascades to its steps.
    """
    __tablename__ = "flows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    collection_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("collections.id", ondelete="SET NULL"),
        nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)

    steps: Mapped[List["FlowStep"]] = relationship(
        "FlowStep",
        back_populates="flow",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FlowStep.order",
    )


class FlowStep(Base):
    """
    SQLAlchemy model for a single flow step.

    Attributes:
        request_id: The request executed by this step
        order: Position in the flow; steps run in ascending order
        is_enabled: Disabled steps are skipped
        continue_on_error: Whether a failure of this step lets the flow go on
        delay_ms: Pause before the step is executed
    """
    __tablename__ = "flow_steps"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    flow_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("flows.id", ondelete="CASCADE")
    )
    request_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    order: Mapped[int] = mapped_column(Integer, default=0)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    continue_on_error: Mapped[bool] = mapped_column(Boolean, default=False)
    delay_ms: Mapped[int] = mapped_column(Integer, default=0)

    flow: Mapped["Flow"] = relationship("Flow", back_populates="steps")
