"""
Resolve every templated field of a request in place.

Only ever called on a clone (see `request_cloner.clone_request`).
"""

from ..schemas.collection import Collection
from ..schemas.environment import Environment
from ..schemas.request import GraphQLRequest, Request, RestRequest, WebSocketRequest
from .variable_resolver import resolve, resolve_dict


def resolve_request(
    request: Request,
    environment: Environment,
    collection: Collection | None = None,
) -> Request:
    """
    Resolve URL, headers, auth fields and the variant payload of ``request``.

    Returns the same object for convenience.
    """
    def _resolve(text):
        return resolve(text, environment, collection, request)

    request.url = _resolve(request.url)
    request.headers = resolve_dict(request.headers, environment, collection, request)
    request.basic_auth_username = _resolve(request.basic_auth_username)
    request.basic_auth_password = _resolve(request.basic_auth_password)
    request.bearer_token = _resolve(request.bearer_token)

    match request:
        case RestRequest():
            request.body = _resolve(request.body)
            request.query_params = resolve_dict(request.query_params, environment, collection, request)
        case GraphQLRequest():
            request.query = _resolve(request.query)
            request.variables = _resolve(request.variables)
            request.operation_name = _resolve(request.operation_name)
        case WebSocketRequest():
            request.message = _resolve(request.message)
            request.protocols = [_resolve(protocol) for protocol in request.protocols]

    return request
