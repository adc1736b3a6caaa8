"""
Pydantic schemas for request execution and variable preview.
"""

import uuid

from pydantic import BaseModel

from .request import Request


class ExecuteOptions(BaseModel):
    """Schema for execution options."""
    environment_id: uuid.UUID | None = None
    collection_id: uuid.UUID | None = None


class ExecuteAdHocRequest(ExecuteOptions):
    """An unsaved request executed directly."""
    request: Request


class ResolveRequest(BaseModel):
    """Text to resolve against an environment and optional collection."""
    text: str
    environment_id: uuid.UUID | None = None
    collection_id: uuid.UUID | None = None


class ResolvePreview(BaseModel):
    resolved: str
    names: list[str]
    contains_variables: bool


class VariableLookup(BaseModel):
    name: str
    value: str | None


class VariableWrite(BaseModel):
    """Single-name write targeting the collection or the environment scope."""
    value: str
    environment_id: uuid.UUID | None = None
    collection_id: uuid.UUID | None = None
    save_to_collection: bool = False
