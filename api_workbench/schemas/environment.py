"""
Pydantic schemas for environments.

`Environment` is the in-memory entity the resolver works on: its
``variables`` mapping holds plain and secret values together, while the
stored record only ever holds the plain ones.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from ..database import utc_now
from .variables import DynamicVariable, mask_secrets


class Environment(BaseModel):
    """A named set of variables representing a deployment target."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str
    description: str | None = None
    variables: dict[str, str] = {}
    secret_variable_names: set[str] = set()
    dynamic_variables: list[DynamicVariable] = []
    is_active: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(from_attributes=True)


class EnvironmentCreate(BaseModel):
    """Schema for creating a new environment."""
    name: str
    description: str | None = None
    variables: dict[str, str] = {}
    secret_variable_names: set[str] = set()
    dynamic_variables: list[DynamicVariable] = []
    is_active: bool = False


class EnvironmentUpdate(BaseModel):
    """Schema for updating an existing environment. All fields are optional."""
    name: str | None = None
    description: str | None = None
    variables: dict[str, str] | None = None
    secret_variable_names: set[str] | None = None
    dynamic_variables: list[DynamicVariable] | None = None
    is_active: bool | None = None


class EnvironmentResponse(Environment):
    """
    Environment as returned over the API.

    Secret values are masked; only their names are exposed.
    """

    @classmethod
    def masked(cls, environment: Environment) -> "EnvironmentResponse":
        data = environment.model_dump()
        data["variables"] = mask_secrets(environment.variables, environment.secret_variable_names)
        return cls(**data)


class VariableValue(BaseModel):
    """Schema for writing a single variable."""
    value: str
    is_secret: bool | None = None
