"""
Variable resolution service for replacing {{ variable }} placeholders.

Placeholders are looked up in a layered scope, first match wins:

1. collection variables
2. environment variables
3. collection dynamic variables (generated on each lookup)
4. environment dynamic variables
5. request dynamic variables

Unknown names are left in place, so resolving is total and never raises.
Secret values are expected to be merged into the ``variables`` mappings
already (see `secret_store.merge_secrets`).
"""

import re
from typing import Iterable

from ..schemas.collection import Collection
from ..schemas.environment import Environment
from ..schemas.request import RequestBase
from ..schemas.variables import DynamicVariable
from .data_generator import generate_value


# Pattern to match {{ variable_name }} placeholders, surrounding whitespace allowed
VARIABLE_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def contains_variables(text: str | None) -> bool:
    """
    Check whether a string holds at least one placeholder.

    Example:
        >>> contains_variables("{{ host }}/users")
        True
    """
    if not text:
        return False
    return VARIABLE_PATTERN.search(text) is not None


def extract_variable_names(text: str | None) -> list[str]:
    """
    Extract the distinct variable names of a template, in order of appearance.

    Example:
        >>> extract_variable_names("{{a}} {{ b }} {{a}}")
        ['a', 'b']
    """
    if not text:
        return []
    return list(dict.fromkeys(VARIABLE_PATTERN.findall(text)))


def _find_dynamic(dynamic_variables: Iterable[DynamicVariable], name: str) -> DynamicVariable | None:
    for dynamic_variable in dynamic_variables:
        if dynamic_variable.name == name:
            return dynamic_variable
    return None


def get_variable_value(
    name: str,
    environment: Environment,
    collection: Collection | None = None,
    request: RequestBase | None = None,
) -> str | None:
    """
    Look up a single variable using the resolution precedence.

    Args:
        name: Variable name without braces
        environment: Environment scope, secrets already merged
        collection: Optional collection scope, which shadows the environment
        request: Optional request whose dynamic variables are consulted last

    Returns:
        The value, or None when no scope defines the name
    """
    if collection is not None and name in collection.variables:
        return collection.variables[name]
    if name in environment.variables:
        return environment.variables[name]

    scopes: list[Iterable[DynamicVariable]] = []
    if collection is not None:
        scopes.append(collection.dynamic_variables)
    scopes.append(environment.dynamic_variables)
    if request is not None:
        scopes.append(request.dynamic_variables)

    for dynamic_variables in scopes:
        dynamic_variable = _find_dynamic(dynamic_variables, name)
        if dynamic_variable is not None:
            return generate_value(dynamic_variable)

    return None


def set_variable_value(
    name: str,
    value: str,
    environment: Environment,
    collection: Collection | None = None,
    save_to_collection: bool = False,
) -> None:
    """
    Write a single variable into the collection or the environment scope.

    The collection is targeted only when ``save_to_collection`` is set and a
    collection is given; otherwise the value lands in the environment.
    """
    if save_to_collection and collection is not None:
        collection.variables[name] = value
    else:
        environment.variables[name] = value


def resolve(
    text: str | None,
    environment: Environment,
    collection: Collection | None = None,
    request: RequestBase | None = None,
) -> str | None:
    """
    Replace every placeholder in ``text`` with its value.

    Example:
        >>> env = Environment(name="dev", variables={"host": "localhost"})
        >>> resolve("http://{{ host }}/{{missing}}", env)
        'http://localhost/{{missing}}'
    """
    if not text:
        return text

    def replace_match(match: re.Match) -> str:
        value = get_variable_value(match.group(1), environment, collection, request)
        return match.group(0) if value is None else value  # Keep original placeholder

    return VARIABLE_PATTERN.sub(replace_match, text)


def resolve_dict(
    data: dict[str, str],
    environment: Environment,
    collection: Collection | None = None,
    request: RequestBase | None = None,
) -> dict[str, str]:
    """Resolve both keys and values of a mapping."""
    return {
        resolve(key, environment, collection, request): resolve(value, environment, collection, request)
        for key, value in data.items()
    }
