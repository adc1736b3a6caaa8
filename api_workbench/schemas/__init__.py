"""
Pydantic schemas package.

Exports the domain entities and the schemas used for API validation.
"""

from .variables import (
    DataGeneratorType,
    ConstraintType,
    ConstraintRule,
    DynamicVariable,
    SECRET_MASK,
    mask_secrets,
    restore_masked_secrets,
)

from .environment import (
    Environment,
    EnvironmentCreate,
    EnvironmentUpdate,
    EnvironmentResponse,
    VariableValue,
)

from .collection import (
    Collection,
    CollectionCreate,
    CollectionUpdate,
    CollectionRequestSummary,
    CollectionTreeNode,
)

from .request import (
    RequestType,
    AuthType,
    GraphQLOperationType,
    SubscriptionProtocol,
    WebSocketConnectionType,
    HttpMethod,
    BodyType,
    ResponseExtraction,
    RequestBase,
    RestRequest,
    GraphQLRequest,
    WebSocketRequest,
    Request,
    request_adapter,
    ConvertRequest,
)

from .response import (
    StreamEvent,
    SentRequest,
    RequestResponse,
)

from .flow import (
    FlowStepStatus,
    FlowExecutionStatus,
    FlowStep,
    Flow,
    FlowStepCreate,
    FlowCreate,
    FlowUpdate,
    FlowStepResult,
    FlowExecutionResult,
    FlowExecuteOptions,
)

from .history import (
    HistoryResponse,
    HistoryListResponse,
)

from .execute import (
    ExecuteOptions,
    ExecuteAdHocRequest,
    ResolveRequest,
    ResolvePreview,
    VariableLookup,
    VariableWrite,
)

__all__ = [
    # Dynamic variable schemas
    "DataGeneratorType",
    "ConstraintType",
    "ConstraintRule",
    "DynamicVariable",
    "SECRET_MASK",
    "mask_secrets",
    "restore_masked_secrets",
    # Environment schemas
    "Environment",
    "EnvironmentCreate",
    "EnvironmentUpdate",
    "EnvironmentResponse",
    "VariableValue",
    # Collection schemas
    "Collection",
    "CollectionCreate",
    "CollectionUpdate",
    "CollectionRequestSummary",
    "CollectionTreeNode",
    # Request schemas
    "RequestType",
    "AuthType",
    "GraphQLOperationType",
    "SubscriptionProtocol",
    "WebSocketConnectionType",
    "HttpMethod",
    "BodyType",
    "ResponseExtraction",
    "RequestBase",
    "RestRequest",
    "GraphQLRequest",
    "WebSocketRequest",
    "Request",
    "request_adapter",
    "ConvertRequest",
    # Response schemas
    "StreamEvent",
    "SentRequest",
    "RequestResponse",
    # Flow schemas
    "FlowStepStatus",
    "FlowExecutionStatus",
    "FlowStep",
    "Flow",
    "FlowStepCreate",
    "FlowCreate",
    "FlowUpdate",
    "FlowStepResult",
    "FlowExecutionResult",
    "FlowExecuteOptions",
    # History schemas
    "HistoryResponse",
    "HistoryListResponse",
    # Execute schemas
    "ExecuteOptions",
    "ExecuteAdHocRequest",
    "ResolveRequest",
    "ResolvePreview",
    "VariableLookup",
    "VariableWrite",
]
