"""
Rivet ORM

Object-relational core: a parameterized query builder, an ActiveRecord
persistence layer, batched eager loading and N+1 query diagnostics.
"""

__version__ = "0.1.0"

from rivet_orm.runtime import (
    ActiveRecord,
    DatabaseManager,
    ModelRegistry,
    QueryBuilder,
    Record,
    TableQuery,
    configure,
)
from rivet_orm.specs import LoadStrategy

__all__ = [
    "ActiveRecord",
    "DatabaseManager",
    "LoadStrategy",
    "ModelRegistry",
    "QueryBuilder",
    "Record",
    "TableQuery",
    "configure",
]
