"""
Collection model for organizing requests.

Collections nest through ``parent_id``. Deleting a collection cascades to
its sub-collections and requests.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, JSON, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base, utc_now


class Collection(Base):
    """
    SQLAlchemy model for collections.

    Attributes:
        id: Unique identifier for the collection
        parent_id: Optional reference to the parent collection
        name: Human-readable name for the collection
        variables: Non-secret variable values of the collection scope
        secret_variable_names: Names whose values are kept in the secret store
        dynamic_variables: Serialized dynamic-variable generator definitions
        sort_order: Order within sibling collections
    """
    __tablename__ = "collections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=True
    )
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    variables: Mapped[dict] = mapped_column(JSON, default=dict)
    secret_variable_names: Mapped[list] = mapped_column(JSON, default=list)
    dynamic_variables: Mapped[list] = mapped_column(JSON, default=list)
    sort_order: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
