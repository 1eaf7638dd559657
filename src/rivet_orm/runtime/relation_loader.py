"""
Eager loading of record relationships.

Resolves relationship paths ("posts", "posts.comments") for a batch of
already-fetched records. Each path segment costs one query regardless of
how many owners are in the batch, so a fixed set of includes never grows
into one query per record.

Two strategies:
    JOIN     - one SELECT joining owner and related tables, restricted to the
               owners' keys (default for belongs_to / has_one)
    SEPARATE - one SELECT on the related table with an IN list of keys
               (default for has_many)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rivet_orm.core.errors import InvalidRelationshipError
from rivet_orm.runtime.logging import get_eager_logger, log_with_context
from rivet_orm.runtime.query_builder import QueryBuilder
from rivet_orm.specs.relation import LoadStrategy, RelationKind, RelationSpec

if TYPE_CHECKING:
    from rivet_orm.runtime.model_registry import ModelRegistry
    from rivet_orm.runtime.record import Record

logger = get_eager_logger()

OWNER_ALIAS = "_owner"
RELATED_ALIAS = "_related"
OWNER_KEY_COLUMN = "__rivet_owner_key"

EagerPath = str | tuple[str, LoadStrategy | None]


@dataclass
class PathNode:
    """One segment of a merged include tree."""

    name: str
    strategy: LoadStrategy | None = None
    children: dict[str, PathNode] = field(default_factory=dict)


def parse_paths(paths: Iterable[EagerPath]) -> dict[str, PathNode]:
    """
    Merge dot-separated paths into a tree.

    "posts" and "posts.comments" share the "posts" node, so the shared
    prefix is loaded once.
    """
    roots: dict[str, PathNode] = {}
    for entry in paths:
        path, strategy = (entry, None) if isinstance(entry, str) else entry
        if strategy == LoadStrategy.AUTO:
            strategy = None

        segments = [segment.strip() for segment in path.split(".")]
        if not path or any(not segment for segment in segments):
            raise InvalidRelationshipError(f"Invalid relationship path '{path}'")

        level = roots
        for segment in segments:
            node = level.get(segment)
            if node is None:
                node = PathNode(name=segment, strategy=strategy)
                level[segment] = node
            elif strategy is not None:
                node.strategy = strategy
            level = node.children
    return roots


def _key(value: Any) -> str:
    return str(value)


def _distinct_keys(values: Iterable[Any]) -> list[Any]:
    """Non-null values, de-duplicated by string form, first occurrence kept."""
    seen: set[str] = set()
    keys: list[Any] = []
    for value in values:
        if value is None or _key(value) in seen:
            continue
        seen.add(_key(value))
        keys.append(value)
    return keys


def _unique(records: Iterable[Record]) -> list[Record]:
    seen: set[int] = set()
    result: list[Record] = []
    for record in records:
        if id(record) not in seen:
            seen.add(id(record))
            result.append(record)
    return result


class EagerLoader:
    """
    Loads relationship paths onto batches of records.

    Args:
        registry: Registry used to resolve related record types
    """

    def __init__(self, registry: ModelRegistry):
        self.registry = registry

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self, model: type[Record], paths: Iterable[EagerPath]) -> dict[str, PathNode]:
        """
        Check that every segment of every path names a declared relationship.

        Raises:
            InvalidRelationshipError: On the first unknown segment or related type
        """
        roots = parse_paths(paths)
        self._validate_level(model, roots, "")
        return roots

    def _validate_level(self, model: type[Record], nodes: dict[str, PathNode], prefix: str) -> None:
        relations = self.registry.metadata(model).relations
        for name, node in nodes.items():
            spec = relations.get(name)
            if spec is None:
                raise InvalidRelationshipError(
                    f"{model.__name__} has no relationship '{name}'",
                    detail=f"in path '{prefix}{name}'",
                )
            related_model = self.registry.get(spec.related_type_name)
            if node.children:
                self._validate_level(related_model, node.children, f"{prefix}{name}.")

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load(self, owners: Iterable[Record], paths: Iterable[EagerPath]) -> None:
        """
        Eager-load paths onto owners.

        Owners whose relationship is already loaded are skipped. Every other
        owner ends with the relationship loaded, as [] or None when nothing
        matched.
        """
        batch = _unique(owners)
        if not batch:
            return

        model = type(batch[0])
        roots = self.validate(model, paths)
        self._load_level(model, batch, roots)

    def _load_level(self, model: type[Record], owners: list[Record], nodes: dict[str, PathNode]) -> None:
        relations = self.registry.metadata(model).relations

        for name, node in nodes.items():
            spec = relations[name]
            related_model = self.registry.get(spec.related_type_name)

            pending = [owner for owner in owners if not owner.relation_loaded(name)]
            if pending:
                self._load_relation(model, pending, spec, related_model, node.strategy)

            if node.children:
                children: list[Record] = []
                for owner in owners:
                    value = owner.related(name)
                    if isinstance(value, list):
                        children.extend(value)
                    elif value is not None:
                        children.append(value)
                if children:
                    self._load_level(related_model, _unique(children), node.children)

    def select_strategy(self, spec: RelationSpec, requested: LoadStrategy | None = None) -> LoadStrategy:
        """Requested strategy, else the relationship kind's default."""
        if requested is None or requested == LoadStrategy.AUTO:
            return spec.default_strategy
        return requested

    def _load_relation(
        self,
        model: type[Record],
        owners: list[Record],
        spec: RelationSpec,
        related_model: type[Record],
        requested: LoadStrategy | None,
    ) -> None:
        strategy = self.select_strategy(spec, requested)

        for owner in owners:
            owner._mark_relation_loading(spec.name)

        try:
            if strategy == LoadStrategy.JOIN:
                joinable: list[Record] = []
                rest: list[Record] = []
                for owner in owners:
                    (joinable if self._joinable(model, spec, owner) else rest).append(owner)
                grouped = self._load_joined(model, joinable, spec, related_model) if joinable else []
                if rest:
                    grouped += self._load_separate(model, rest, spec, related_model)
            else:
                grouped = self._load_separate(model, owners, spec, related_model)
        except Exception:
            for owner in owners:
                owner._forget_relation(spec.name)
            raise

        matched = 0
        for owner, related in grouped:
            if spec.is_to_many:
                owner.set_relation(spec.name, related)
            else:
                owner.set_relation(spec.name, related[0] if related else None)
            matched += len(related)

        log_with_context(
            logger,
            logging.DEBUG,
            f"Eager loaded {model.__name__}.{spec.name}",
            model=model.__name__,
            relation=spec.name,
            strategy=strategy.value,
            owners=len(owners),
            related=matched,
        )

    def _joinable(self, model: type[Record], spec: RelationSpec, owner: Record) -> bool:
        """
        Whether the owner's stored row matches its in-memory key columns.

        JOIN reads keys from the owner table, so unsaved owners and owners
        with unsaved key changes are loaded with SEPARATE instead.
        """
        if not owner.is_persisted or owner.is_dirty(self.registry.metadata(model).primary_key):
            return False
        return not owner.is_dirty(self._owner_column(model, spec))

    def _owner_column(self, model: type[Record], spec: RelationSpec) -> str:
        """Owner column whose value identifies the related rows."""
        if spec.kind == RelationKind.BELONGS_TO:
            return spec.foreign_key
        return self.registry.metadata(model).primary_key

    def _load_separate(
        self,
        model: type[Record],
        owners: list[Record],
        spec: RelationSpec,
        related_model: type[Record],
    ) -> list[tuple[Record, list[Record]]]:
        """One IN query on the related table, partitioned by key."""
        owner_column = self._owner_column(model, spec)
        if spec.kind == RelationKind.BELONGS_TO:
            related_column = self.registry.metadata(related_model).primary_key
        else:
            related_column = spec.foreign_key

        keys = _distinct_keys(owner.get(owner_column) for owner in owners)
        related_map: dict[str, list[Record]] = {}

        if keys:
            records = (
                related_model.query(datasource=owners[0].datasource)
                .where({related_column: {"in": keys}})
                .get()
            )
            for record in records:
                related_map.setdefault(_key(record.get(related_column)), []).append(record)

        return [
            (owner, list(related_map.get(_key(owner.get(owner_column)), [])))
            if owner.get(owner_column) is not None
            else (owner, [])
            for owner in owners
        ]

    def _load_joined(
        self,
        model: type[Record],
        owners: list[Record],
        spec: RelationSpec,
        related_model: type[Record],
    ) -> list[tuple[Record, list[Record]]]:
        """One SELECT joining owner rows to related rows, keyed by owner key."""
        meta = self.registry.metadata(model)
        related_meta = self.registry.metadata(related_model)
        owner_pk = meta.primary_key
        datasource = owners[0].datasource

        keys = _distinct_keys(owner.primary_key_value for owner in owners)
        related_map: dict[str, list[Record]] = {}

        if keys:
            if spec.kind == RelationKind.BELONGS_TO:
                condition = f"{OWNER_ALIAS}.{spec.foreign_key} = {RELATED_ALIAS}.{related_meta.primary_key}"
            else:
                condition = f"{RELATED_ALIAS}.{spec.foreign_key} = {OWNER_ALIAS}.{owner_pk}"

            compiled = (
                QueryBuilder(table_name=f"{meta.table_name} AS {OWNER_ALIAS}")
                .select(f"{OWNER_ALIAS}.{owner_pk} AS {OWNER_KEY_COLUMN}", f"{RELATED_ALIAS}.*")
                .join(f"{related_meta.table_name} AS {RELATED_ALIAS}", condition)
                .where({f"{OWNER_ALIAS}.{owner_pk}": {"in": keys}})
                .to_sql()
            )
            rows = self.registry.require_executor().execute(compiled.sql, compiled.bindings, datasource).rows

            # The same related row reached from several owners is one instance
            instances: dict[str, Record] = {}
            for row in rows:
                owner_key = _key(row.pop(OWNER_KEY_COLUMN))
                related_key = row.get(related_meta.primary_key)

                record = instances.get(_key(related_key)) if related_key is not None else None
                if record is None:
                    record = related_model._hydrate(row, datasource)
                    if related_key is not None:
                        instances[_key(related_key)] = record
                related_map.setdefault(owner_key, []).append(record)

        return [
            (owner, list(related_map.get(_key(owner.primary_key_value), [])))
            if owner.primary_key_value is not None
            else (owner, [])
            for owner in owners
        ]
