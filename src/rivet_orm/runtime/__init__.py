"""
Rivet Runtime

Query building, statement execution and the record layer.

This module provides:
- QueryBuilder / TableQuery (parameterized SELECT and terminal calls)
- DatabaseManager (SQLite statement execution)
- Record (ActiveRecord persistence, relationships, validation)
- EagerLoader (batched relationship loading)
- NPlusOneDetector (lazy-access diagnostics)

Example usage:
    >>> from rivet_orm.runtime import DatabaseManager, ModelRegistry, Record
    >>>
    >>> registry = ModelRegistry(executor=DatabaseManager(db_path=":memory:"))
    >>>
    >>> class User(Record, registry=registry):
    ...     @classmethod
    ...     def configure(cls):
    ...         cls.has_many("posts")
    >>>
    >>> users = User.query().includes("posts").where({"age": {"gte": 18}}).get()
"""

from rivet_orm.runtime.database import DatabaseManager, ExecutionResult, StatementExecutor
from rivet_orm.runtime.logging import get_logger, setup_logging
from rivet_orm.runtime.model_registry import (
    ModelMetadata,
    ModelRegistry,
    configure,
    default_registry,
)
from rivet_orm.runtime.n_plus_one import NPlusOneDetector
from rivet_orm.runtime.query_builder import (
    CompiledQuery,
    FilterOperator,
    QueryBuilder,
    build_delete,
    build_insert,
    build_update,
)
from rivet_orm.runtime.record import ActiveRecord, Record, RecordQuery, RelationQuery
from rivet_orm.runtime.relation_loader import EagerLoader
from rivet_orm.runtime.table_query import TableQuery

__all__ = [
    "ActiveRecord",
    "CompiledQuery",
    "DatabaseManager",
    "EagerLoader",
    "ExecutionResult",
    "FilterOperator",
    "ModelMetadata",
    "ModelRegistry",
    "NPlusOneDetector",
    "QueryBuilder",
    "Record",
    "RecordQuery",
    "RelationQuery",
    "StatementExecutor",
    "TableQuery",
    "build_delete",
    "build_insert",
    "build_update",
    "configure",
    "default_registry",
    "get_logger",
    "setup_logging",
]
