"""
Secret model: variable values kept apart from their owning entity.

Keyed by (entity_type, entity_id, name) so secrets can be excluded from
anything that exports environments or collections.
"""

import uuid

from sqlalchemy import String, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class Secret(Base):
    __tablename__ = "secrets"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "name", name="uq_secret_owner_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(50))
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True)
    name: Mapped[str] = mapped_column(String(255))
    value: Mapped[str] = mapped_column(Text)
