"""
Cloning and conversion of request templates.

`clone_request` is the first step of every execution path: variables are
resolved on the clone, never on the stored template. `convert_request`
translates a request into another variant on a best-effort basis.
"""

import json
import uuid
from typing import Any

from ..database import utc_now
from ..schemas.request import (
    GraphQLOperationType,
    GraphQLRequest,
    Request,
    RequestType,
    RestRequest,
    WebSocketConnectionType,
    WebSocketRequest,
)


def clone_request(request: Request) -> Request:
    """
    Deep-copy a request so that no mutable container is shared.

    The clone keeps the same id; it is the same request, only detached.
    """
    match request:
        case RestRequest() | GraphQLRequest() | WebSocketRequest():
            return request.model_copy(deep=True)
    raise TypeError(f"Request type {type(request).__name__} is not supported for cloning")


def _convert_url_scheme(url: str, plain: str, secure: str) -> str:
    """Swap an http(s)/ws(s) scheme for ``plain``/``secure``."""
    if not url or not url.strip():
        return url
    lowered = url.lower()
    for prefix, scheme in (("https://", secure), ("http://", plain), ("wss://", secure), ("ws://", plain)):
        if lowered.startswith(prefix):
            return f"{scheme}://{url[len(prefix):]}"
    return url


def _parse_json_object(text: str | None) -> dict[str, Any] | None:
    if not text or not text.strip():
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _variables_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else json.dumps(value, indent=2)


def _base_fields(source: Request, target_type: RequestType) -> dict[str, Any]:
    copied = source.model_copy(deep=True)
    return {
        "id": uuid.uuid4(),
        "name": f"{source.name} ({target_type.value})",
        "description": copied.description,
        "headers": copied.headers,
        "disabled_headers": copied.disabled_headers,
        "dynamic_variables": copied.dynamic_variables,
        "auth_type": copied.auth_type,
        "basic_auth_username": copied.basic_auth_username,
        "basic_auth_password": copied.basic_auth_password,
        "bearer_token": copied.bearer_token,
        "response_extractions": copied.response_extractions,
        "collection_id": copied.collection_id,
        "sort_order": copied.sort_order,
        "created_at": utc_now(),
    }


def _to_rest(source: Request) -> RestRequest:
    fields = _base_fields(source, RequestType.REST)
    fields["url"] = _convert_url_scheme(source.url, "http", "https")

    if isinstance(source, GraphQLRequest) and source.query.strip():
        envelope = {
            "query": source.query,
            "variables": _parse_json_object(source.variables),
            "operationName": source.operation_name,
        }
        fields.update(method="POST", body=json.dumps(envelope, indent=2), body_type="json")
    elif isinstance(source, WebSocketRequest) and source.message and source.message.strip():
        stripped = source.message.lstrip()
        body_type = "json" if stripped.startswith(("{", "[")) else "text"
        fields.update(method="POST", body=source.message, body_type=body_type)

    return RestRequest(**fields)


def _to_graphql(source: Request) -> GraphQLRequest:
    fields = _base_fields(source, RequestType.GRAPHQL)
    fields["url"] = _convert_url_scheme(source.url, "http", "https")

    if isinstance(source, RestRequest):
        document = _parse_json_object(source.body)
        if document is not None:
            query = document.get("query")
            fields["query"] = query if isinstance(query, str) else ""
            fields["variables"] = _variables_text(document.get("variables"))
            operation_name = document.get("operationName")
            fields["operation_name"] = operation_name if isinstance(operation_name, str) else None
    elif isinstance(source, WebSocketRequest):
        document = _parse_json_object(source.message)
        if document is not None:
            # A subscribe envelope carries the operation in its payload
            if isinstance(document.get("payload"), dict):
                document = document["payload"]
            query = document.get("query")
            if isinstance(query, str):
                fields["query"] = query
                fields["operation_type"] = GraphQLOperationType.SUBSCRIPTION
            fields["variables"] = _variables_text(document.get("variables"))

    return GraphQLRequest(**fields)


def _to_websocket(source: Request) -> WebSocketRequest:
    fields = _base_fields(source, RequestType.WEBSOCKET)
    fields["url"] = _convert_url_scheme(source.url, "ws", "wss")

    if isinstance(source, RestRequest) and source.body and source.body.strip():
        fields["message"] = source.body
    elif isinstance(source, GraphQLRequest) and source.query.strip():
        envelope = {
            "type": "subscribe",
            "payload": {
                "query": source.query,
                "variables": _parse_json_object(source.variables),
                "operationName": source.operation_name,
            },
        }
        fields.update(
            message=json.dumps(envelope, indent=2),
            connection_type=WebSocketConnectionType.GRAPHQL_SUBSCRIPTION,
            protocols=["graphql-transport-ws"],
        )

    return WebSocketRequest(**fields)


def convert_request(request: Request, target_type: RequestType | str) -> Request:
    """
    Translate a request into another variant.

    Headers, auth, extraction rules and the collection link are kept; the
    result gets a new id. Converting to the same variant returns a clone.
    Malformed embedded JSON leaves the translated payload empty.

    Args:
        request: Source request
        target_type: Variant to produce

    Returns:
        A new request of the target variant
    """
    target_type = RequestType(target_type)
    if request.request_type == target_type.value:
        return clone_request(request)

    match target_type:
        case RequestType.REST:
            return _to_rest(request)
        case RequestType.GRAPHQL:
            return _to_graphql(request)
        case RequestType.WEBSOCKET:
            return _to_websocket(request)
