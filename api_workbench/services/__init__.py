# Services package

from .variable_resolver import (
    contains_variables,
    extract_variable_names,
    get_variable_value,
    set_variable_value,
    resolve,
    resolve_dict,
)
from .data_generator import generate_value, validate_dynamic_variable
from .request_cloner import clone_request, convert_request
from .request_resolution import resolve_request
from .response_extractor import extract_value
from .executors import CancellationToken, ExecutorFactory, create_default_factory
from .repository import InMemoryRepository, Repository, SqlRepository
from .secret_store import InMemorySecretStore, SqlSecretStore, merge_secrets, separate_secrets
from .variable_store import VariableStore, sql_variable_store
from .request_service import ExecutionContext, RequestExecutionService
from .flow_engine import FlowEngine, FlowRunRegistry, flow_runs
from .collection_tree import build_collection_tree, detect_circular_reference
from .history_service import save_history

__all__ = [
    "contains_variables",
    "extract_variable_names",
    "get_variable_value",
    "set_variable_value",
    "resolve",
    "resolve_dict",
    "generate_value",
    "validate_dynamic_variable",
    "clone_request",
    "convert_request",
    "resolve_request",
    "extract_value",
    "CancellationToken",
    "ExecutorFactory",
    "create_default_factory",
    "InMemoryRepository",
    "Repository",
    "SqlRepository",
    "InMemorySecretStore",
    "SqlSecretStore",
    "merge_secrets",
    "separate_secrets",
    "VariableStore",
    "sql_variable_store",
    "ExecutionContext",
    "RequestExecutionService",
    "FlowEngine",
    "FlowRunRegistry",
    "flow_runs",
    "build_collection_tree",
    "detect_circular_reference",
    "save_history",
]
