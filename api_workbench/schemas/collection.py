"""
Pydantic schemas for collections.

Collections form a tree through ``parent_id``. A collection's variable
scope is its own; nothing is inherited from ancestors.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..database import utc_now
from .variables import DynamicVariable


class Collection(BaseModel):
    """Hierarchical grouping of requests with its own variable scope."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    description: str | None = None
    parent_id: uuid.UUID | None = None
    variables: dict[str, str] = {}
    secret_variable_names: set[str] = set()
    dynamic_variables: list[DynamicVariable] = []
    sort_order: int = 0
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(from_attributes=True)


class CollectionCreate(BaseModel):
    """Schema for creating a new collection."""
    name: str
    description: str | None = None
    parent_id: uuid.UUID | None = None
    variables: dict[str, str] = {}
    secret_variable_names: set[str] = set()
    dynamic_variables: list[DynamicVariable] = []


class CollectionUpdate(BaseModel):
    """Schema for updating an existing collection. All fields are optional."""
    name: str | None = None
    description: str | None = None
    parent_id: uuid.UUID | None = None
    variables: dict[str, str] | None = None
    secret_variable_names: set[str] | None = None
    dynamic_variables: list[DynamicVariable] | None = None
    sort_order: int | None = None


class CollectionRequestSummary(BaseModel):
    """Request entry listed inside a collection tree node."""
    id: uuid.UUID
    name: str
    request_type: str
    url: str
    sort_order: int = 0


class CollectionTreeNode(BaseModel):
    """Recursive collection schema with ordered child collections and requests."""
    id: uuid.UUID
    name: str
    parent_id: uuid.UUID | None
    sort_order: int = 0
    children: list["CollectionTreeNode"] = []
    requests: list[CollectionRequestSummary] = []


CollectionTreeNode.model_rebuild()
