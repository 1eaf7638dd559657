"""
Record specification types.

This module exports relationship and hook specification types.
"""

from rivet_orm.specs.hooks import (
    CallableHook,
    CallbackEvent,
    CallbackSpec,
    Hook,
    MethodHook,
    ValidatorSpec,
    as_hook,
)
from rivet_orm.specs.relation import LoadStrategy, RelationKind, RelationSpec

__all__ = [
    "CallableHook",
    "CallbackEvent",
    "CallbackSpec",
    "Hook",
    "LoadStrategy",
    "MethodHook",
    "RelationKind",
    "RelationSpec",
    "ValidatorSpec",
    "as_hook",
]
