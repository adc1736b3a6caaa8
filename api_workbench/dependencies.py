"""
FastAPI dependencies shared by the routers.

Tests override `get_executor_factory` to run executors against a mock
transport.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .services.executors import ExecutorFactory, create_default_factory
from .services.variable_store import VariableStore, sql_variable_store


@lru_cache
def _default_factory() -> ExecutorFactory:
    return create_default_factory()


def get_executor_factory() -> ExecutorFactory:
    return _default_factory()


def get_variable_store(db: Session = Depends(get_db)) -> VariableStore:
    return sql_variable_store(db)
