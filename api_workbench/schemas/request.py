"""
Pydantic schemas for request templates.

Requests are a closed set of three variants (REST, GraphQL, WebSocket)
sharing one base. The ``request_type`` tag is stored alongside the variant
data and is what the cloner, converter and executor factory dispatch on.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..database import utc_now
from .variables import DynamicVariable


class RequestType(str, Enum):
    REST = "rest"
    GRAPHQL = "graphql"
    WEBSOCKET = "websocket"


class AuthType(str, Enum):
    NONE = "none"
    BASIC = "basic"
    BEARER = "bearer"


class GraphQLOperationType(str, Enum):
    QUERY = "query"
    MUTATION = "mutation"
    SUBSCRIPTION = "subscription"


class SubscriptionProtocol(str, Enum):
    WEBSOCKET = "websocket"
    SSE = "sse"


class WebSocketConnectionType(str, Enum):
    STANDARD = "standard"
    GRAPHQL_SUBSCRIPTION = "graphql_subscription"


# HTTP methods supported by the system
HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]

# Body types supported for REST requests
BodyType = Literal["none", "json", "xml", "text", "html", "javascript"]


class ResponseExtraction(BaseModel):
    """
    Rule that copies a value out of a response into a variable.

    Evaluated after every execution of the owning request, flows included.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str = ""
    pattern: str
    variable_name: str | None = None
    save_to_collection: bool = False
    is_enabled: bool = True


class RequestBase(BaseModel):
    """Fields shared by every request variant."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    name: str = ""
    description: str | None = None
    url: str = ""
    headers: dict[str, str] = {}
    disabled_headers: set[str] = set()
    dynamic_variables: list[DynamicVariable] = []
    auth_type: AuthType = AuthType.NONE
    basic_auth_username: str | None = None
    basic_auth_password: str | None = None
    bearer_token: str | None = None
    response_extractions: list[ResponseExtraction] = []
    collection_id: uuid.UUID | None = None
    sort_order: int = 0
    created_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(from_attributes=True)


class RestRequest(RequestBase):
    request_type: Literal["rest"] = "rest"
    method: HttpMethod = "GET"
    body: str | None = None
    content_type: str | None = None
    body_type: BodyType = "json"
    query_params: dict[str, str] = {}
    disabled_query_params: set[str] = set()


class GraphQLRequest(RequestBase):
    request_type: Literal["graphql"] = "graphql"
    query: str = ""
    variables: str | None = None
    operation_name: str | None = None
    operation_type: GraphQLOperationType = GraphQLOperationType.QUERY
    subscription_protocol: SubscriptionProtocol = SubscriptionProtocol.WEBSOCKET


class WebSocketRequest(RequestBase):
    request_type: Literal["websocket"] = "websocket"
    message: str | None = None
    protocols: list[str] = []
    connection_type: WebSocketConnectionType = WebSocketConnectionType.STANDARD


Request = Annotated[
    Union[RestRequest, GraphQLRequest, WebSocketRequest],
    Field(discriminator="request_type"),
]

request_adapter = TypeAdapter(Request)


class ConvertRequest(BaseModel):
    """Options for converting a stored request to another variant."""
    save: bool = False
