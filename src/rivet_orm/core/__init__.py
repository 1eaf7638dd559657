"""Core Rivet functionality: errors, inflection helpers, configuration."""

from .errors import (
    ActiveRecordError,
    DeleteFailedError,
    ExecutionError,
    InvalidOperatorError,
    InvalidRelationshipError,
    InvalidValueError,
    MethodNotFoundError,
    QueryBuilderError,
    RecordNotFoundError,
    RivetError,
    SaveFailedError,
)
from .manifest import RivetConfig, load_config

__all__ = [
    "ActiveRecordError",
    "DeleteFailedError",
    "ExecutionError",
    "InvalidOperatorError",
    "InvalidRelationshipError",
    "InvalidValueError",
    "MethodNotFoundError",
    "QueryBuilderError",
    "RecordNotFoundError",
    "RivetError",
    "RivetConfig",
    "SaveFailedError",
    "load_config",
]
