"""
Request model for storing request templates of every variant.

Columns common to all variants are stored directly; the variant-specific
fields (method/body, query/operation, message/protocols) and the list
fields are kept in the ``payload`` JSON column, tagged by ``request_type``.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Text, JSON, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base, utc_now


class Request(Base):
    """
    SQLAlchemy model for request templates.

    Attributes:
        id: Unique identifier for the request
        request_type: Variant tag (rest, graphql, websocket)
        name: Human-readable name for the request
        url: Target URL, may contain {{variable}} placeholders
        payload: Remaining fields of the variant, as JSON
        collection_id: Optional reference to the owning collection
        sort_order: Order within the collection
    """
    __tablename__ = "requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_type: Mapped[str] = mapped_column(String(20))
    name: Mapped[str] = mapped_column(String(255), default="")
    url: Mapped[str] = mapped_column(Text, default="")
    payload: Mapped[dict] = mapped_column(JSON, default=dict)
    collection_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=True
    )
    sort_order: Mapped[int] = mapped_column(default=0)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
