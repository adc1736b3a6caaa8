"""
Models package for the API Workbench.

Exports all SQLAlchemy models for database operations.
"""

from .environment import Environment
from .collection import Collection
from .request import Request
from .flow import Flow, FlowStep
from .secret import Secret
from .history import History

__all__ = [
    "Environment",
    "Collection",
    "Request",
    "Flow",
    "FlowStep",
    "Secret",
    "History",
]
