"""
Environment model for storing deployment-target variable sets.

Only the non-secret variable values are stored here; secret values live
in the ``secrets`` table and are merged back in memory on load.
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, Boolean, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base, utc_now


class Environment(Base):
    """
    SQLAlchemy model for environments.

    Only one environment can be active at a time; the active one is used
    when an execution is not given an explicit environment.

    Attributes:
        id: Unique identifier for the environment
        name: Human-readable name for the environment
        variables: Non-secret variable values
        secret_variable_names: Names whose values are kept in the secret store
        dynamic_variables: Serialized dynamic-variable generator definitions
        is_active: Whether this environment is currently active
    """
    __tablename__ = "environments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    variables: Mapped[dict] = mapped_column(JSON, default=dict)
    secret_variable_names: Mapped[list] = mapped_column(JSON, default=list)
    dynamic_variables: Mapped[list] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)
