"""
ActiveRecord-style persistence layer.

A Record binds an attribute bag to a table row. Per-type conventions
(table name, primary key, relationships, validators, callbacks) live in the
ModelRegistry and are shared by every instance of the type.

Example:
    class User(Record):
        @classmethod
        def configure(cls):
            cls.has_many("posts")
            cls.validates_presence_of("email")

    class Post(Record):
        @classmethod
        def configure(cls):
            cls.belongs_to("user")

    user = User.create(name="Ada", email="ada@example.com")
    for user in User.query().includes("posts").where({"age": {"gte": 18}}).get():
        print(user.name, len(user.posts))
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from rivet_orm.core.errors import (
    DeleteFailedError,
    ExecutionError,
    InvalidRelationshipError,
    MethodNotFoundError,
    RecordNotFoundError,
    SaveFailedError,
)
from rivet_orm.core.manifest import DEFAULT_DATASOURCE
from rivet_orm.core.strings import singularize, to_class_name
from rivet_orm.runtime.logging import get_orm_logger, log_with_context
from rivet_orm.runtime.model_registry import ModelMetadata, ModelRegistry, default_registry
from rivet_orm.runtime.query_builder import build_delete, build_insert, build_update
from rivet_orm.runtime.table_query import TableQuery
from rivet_orm.runtime.validation import PRESENCE, run_callbacks, run_validators
from rivet_orm.specs.hooks import CallbackEvent, CallbackSpec, ValidatorSpec, as_hook
from rivet_orm.specs.relation import LoadStrategy, RelationKind, RelationSpec

logger = get_orm_logger()

_RELATION_OPTION_KEYS = {
    "foreign_key": "foreign_key",
    "foreignKey": "foreign_key",
    "related_type_name": "related_type_name",
    "relatedTypeName": "related_type_name",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Relationship Slots
# =============================================================================


class SlotState(str, Enum):
    """Load state of one relationship on one instance (absent = not requested)."""

    LOADING = "loading"
    LOADED = "loaded"


@dataclass
class RelationSlot:
    """Cached relationship value; ``None`` is a valid loaded value."""

    state: SlotState
    value: Any = None

    @property
    def is_loaded(self) -> bool:
        return self.state == SlotState.LOADED


# =============================================================================
# Queries
# =============================================================================


class RecordQuery(TableQuery):
    """
    Table query that returns hydrated records.

    Terminal ``get()``/``first()`` hydrate rows into instances of the model and
    then eager-load any paths requested with ``includes()``.
    """

    def __init__(self, model: type[Record], datasource: str | None = None):
        meta = model.metadata()
        super().__init__(
            meta.table_name,
            model.registry.require_executor(),
            datasource or model.default_datasource,
        )
        self.model = model
        self.eager_paths: list[tuple[str, LoadStrategy | None]] = []

    def includes(
        self,
        *paths: str | Iterable[str],
        strategy: LoadStrategy | str | None = None,
    ) -> RecordQuery:
        """
        Request eager loading of relationship paths ("posts", "posts.comments").

        Paths are validated immediately, before any query runs.

        Args:
            *paths: Dot-separated relationship paths
            strategy: Force JOIN or SEPARATE for every segment of these paths
        """
        flat: list[str] = []
        for path in paths:
            if isinstance(path, str):
                flat.append(path)
            else:
                flat.extend(path)

        forced = LoadStrategy(strategy) if strategy is not None else None
        if forced == LoadStrategy.AUTO:
            forced = None

        self.model.registry.eager_loader.validate(self.model, flat)
        self.eager_paths.extend((path, forced) for path in flat)
        return self

    def _hydrate_all(self, rows: list[dict[str, Any]]) -> list[Record]:
        return [self.model._hydrate(row, self.datasource) for row in rows]

    def _eager_load(self, records: list[Record]) -> None:
        if records and self.eager_paths:
            self.model.registry.eager_loader.load(records, self.eager_paths)

    def get(self) -> list[Record]:  # type: ignore[override]
        """Run the query and return hydrated records."""
        records = self._hydrate_all(self._fetch_rows())
        self._eager_load(records)
        return records

    def first(self) -> Record | None:  # type: ignore[override]
        """Run the query with LIMIT 1 for this call and return a record or None."""
        records = self._hydrate_all(self._fetch_rows(limit=1))
        if not records:
            return None
        self._eager_load(records)
        return records[0]

    def find(self, key: Any) -> Record | None:
        """Add a primary-key condition and return the matching record."""
        return self.where({self.model.metadata().primary_key: key}).first()


class RelationQuery(RecordQuery):
    """
    Query for a relationship of one owner instance.

    Fully chainable (where/order_by/limit) before a terminal call. Terminal
    calls count as lazy access and are reported to the N+1 detector.
    """

    def __init__(self, owner: Record, relation: RelationSpec, related_model: type[Record]):
        super().__init__(related_model, datasource=owner.datasource)
        self.owner = owner
        self.relation = relation

        if relation.kind == RelationKind.BELONGS_TO:
            related_key = related_model.metadata().primary_key
            self.where({related_key: owner.get(relation.foreign_key)})
        else:
            self.where({relation.foreign_key: owner.primary_key_value})

    def _note_lazy_access(self) -> None:
        self.model.registry.detector.record_access(self.owner, self.relation.name)

    def get(self) -> list[Record]:  # type: ignore[override]
        self._note_lazy_access()
        return super().get()

    def first(self) -> Record | None:  # type: ignore[override]
        self._note_lazy_access()
        return super().first()

    def count(self) -> int:
        self._note_lazy_access()
        return super().count()

    def exists(self) -> bool:
        self._note_lazy_access()
        return super().exists()


# =============================================================================
# Record
# =============================================================================


class Record:
    """
    Base class for persisted record types.

    Class attributes (all optional):
        table_name: Table override (default: lower-cased plural of the class name)
        primary_key: Primary key column (default: "id")
        default_datasource: Data source name (default: "default")

    Subclasses register themselves with ``registry`` (inherited, or passed as
    a class keyword) and may declare relationships, validators and callbacks
    in a ``configure()`` classmethod, which runs once per type.
    Intermediate base classes pass ``abstract=True`` to skip registration.

    Columns named like a Record member (``errors``, ``attributes``, ``save``)
    are read with ``get()`` or ``record[name]``. Assigning ``record.name``
    writes such a column once it is in the attribute bag.
    """

    MethodNotFound = MethodNotFoundError
    SaveFailed = SaveFailedError
    DeleteFailed = DeleteFailedError
    RecordNotFound = RecordNotFoundError
    InvalidRelationship = InvalidRelationshipError

    registry: ClassVar[ModelRegistry] = default_registry
    table_name: ClassVar[str | None] = None
    primary_key: ClassVar[str] = "id"
    default_datasource: ClassVar[str] = DEFAULT_DATASOURCE

    def __init_subclass__(
        cls,
        registry: ModelRegistry | None = None,
        abstract: bool = False,
        **kwargs: Any,
    ):
        super().__init_subclass__(**kwargs)
        if registry is not None:
            cls.registry = registry
        if not abstract:
            cls.registry.register(cls)

    def __init__(
        self,
        attributes: Mapping[str, Any] | None = None,
        /,
        *,
        datasource: str | None = None,
        **values: Any,
    ):
        self._attributes: dict[str, Any] = {}
        self._original: dict[str, Any] = {}
        self._persisted = False
        self._relations: dict[str, RelationSlot] = {}
        self._errors: dict[str, list[str]] = {}
        self._datasource = datasource or type(self).default_datasource
        type(self).metadata()
        self.fill(attributes, **values)

    # -------------------------------------------------------------------------
    # Type-level conventions
    # -------------------------------------------------------------------------

    @classmethod
    def configure(cls) -> None:
        """Declare relationships, validators and callbacks (runs once per type)."""

    @classmethod
    def metadata(cls) -> ModelMetadata:
        """Shared per-type metadata (created once)."""
        return cls.registry.metadata(cls)

    @classmethod
    def get_table_name(cls) -> str:
        return cls.metadata().table_name

    @classmethod
    def get_key_name(cls) -> str:
        return cls.metadata().primary_key

    @classmethod
    def relationships(cls) -> dict[str, RelationSpec]:
        return dict(cls.metadata().relations)

    # -------------------------------------------------------------------------
    # Relationship DSL
    # -------------------------------------------------------------------------

    @classmethod
    def _declare_relation(
        cls,
        kind: RelationKind,
        name: str,
        options: Mapping[str, Any] | None,
        overrides: dict[str, str | None],
    ) -> RelationSpec:
        meta = cls.metadata()

        resolved: dict[str, str | None] = {"foreign_key": None, "related_type_name": None}
        for key, value in (options or {}).items():
            if key not in _RELATION_OPTION_KEYS:
                raise TypeError(f"Unknown relationship option '{key}'")
            resolved[_RELATION_OPTION_KEYS[key]] = value
        resolved.update({k: v for k, v in overrides.items() if v is not None})

        if kind == RelationKind.BELONGS_TO:
            default_fk = f"{singularize(name)}_id"
            default_type = to_class_name(name)
        elif kind == RelationKind.HAS_MANY:
            default_fk = f"{singularize(meta.table_name)}_id"
            default_type = to_class_name(singularize(name))
        else:
            default_fk = f"{singularize(meta.table_name)}_id"
            default_type = to_class_name(name)

        return meta.add_relation(
            RelationSpec(
                name=name,
                kind=kind,
                foreign_key=resolved["foreign_key"] or default_fk,
                related_type_name=resolved["related_type_name"] or default_type,
            )
        )

    @classmethod
    def has_many(
        cls,
        name: str,
        options: Mapping[str, Any] | None = None,
        *,
        foreign_key: str | None = None,
        related_type_name: str | None = None,
    ) -> RelationSpec:
        """Declare a one-to-many relationship (FK lives on the related table)."""
        return cls._declare_relation(
            RelationKind.HAS_MANY,
            name,
            options,
            {"foreign_key": foreign_key, "related_type_name": related_type_name},
        )

    @classmethod
    def belongs_to(
        cls,
        name: str,
        options: Mapping[str, Any] | None = None,
        *,
        foreign_key: str | None = None,
        related_type_name: str | None = None,
    ) -> RelationSpec:
        """Declare an inverse relationship (FK lives on this table)."""
        return cls._declare_relation(
            RelationKind.BELONGS_TO,
            name,
            options,
            {"foreign_key": foreign_key, "related_type_name": related_type_name},
        )

    @classmethod
    def has_one(
        cls,
        name: str,
        options: Mapping[str, Any] | None = None,
        *,
        foreign_key: str | None = None,
        related_type_name: str | None = None,
    ) -> RelationSpec:
        """Declare a one-to-one relationship (FK lives on the related table)."""
        return cls._declare_relation(
            RelationKind.HAS_ONE,
            name,
            options,
            {"foreign_key": foreign_key, "related_type_name": related_type_name},
        )

    # -------------------------------------------------------------------------
    # Validators and callbacks
    # -------------------------------------------------------------------------

    @classmethod
    def validates(cls, field: str, rule: Any, message: str | None = None) -> None:
        """Register a validation rule given as a method name or a callable."""
        cls.metadata().validators.append(
            ValidatorSpec(field=field, hook=as_hook(rule), message=message)
        )

    @classmethod
    def validates_presence_of(cls, *fields: str) -> None:
        for field in fields:
            cls.metadata().validators.append(ValidatorSpec(field=field, hook=PRESENCE))

    @classmethod
    def on(cls, event: CallbackEvent | str, hook: Any) -> None:
        """Register a lifecycle callback given as a method name or a callable."""
        cls.metadata().callbacks.append(CallbackSpec(event=CallbackEvent(event), hook=as_hook(hook)))

    def _run_callbacks(self, event: CallbackEvent) -> bool:
        hooks = type(self).metadata().hooks_for(event)
        if not hooks:
            return True
        proceed = run_callbacks(self, hooks, halt_on_false=event.is_before)
        if not proceed:
            log_with_context(
                logger,
                logging.INFO,
                f"{type(self).__name__} {event.value} callback halted the operation",
                model=type(self).__name__,
                event=event.value,
            )
        return proceed

    # -------------------------------------------------------------------------
    # Class-level queries
    # -------------------------------------------------------------------------

    @classmethod
    def query(cls, datasource: str | None = None) -> RecordQuery:
        """Start a new query against this type's table."""
        return RecordQuery(cls, datasource)

    @classmethod
    def where(cls, conditions: Mapping[str, Any] | None = None, **kwargs: Any) -> RecordQuery:
        return cls.query().where(conditions, **kwargs)

    @classmethod
    def includes(cls, *paths: str, strategy: LoadStrategy | str | None = None) -> RecordQuery:
        return cls.query().includes(*paths, strategy=strategy)

    @classmethod
    def all(cls) -> list[Record]:
        return cls.query().get()

    @classmethod
    def find(cls, key: Any) -> Record | None:
        """Fetch one record by primary key (None if absent)."""
        return cls.query().find(key)

    @classmethod
    def find_or_fail(cls, key: Any) -> Record:
        """Fetch one record by primary key or raise RecordNotFound."""
        record = cls.find(key)
        if record is None:
            raise RecordNotFoundError(f"{cls.__name__} with {cls.get_key_name()}={key!r} not found")
        return record

    @classmethod
    def create(cls, attributes: Mapping[str, Any] | None = None, /, **values: Any) -> Record:
        """Build and save a record; check ``errors`` if validation failed."""
        record = cls(attributes, **values)
        record.save()
        return record

    @classmethod
    def _hydrate(cls, row: Mapping[str, Any], datasource: str | None = None) -> Record:
        """Build an instance from a fetched row; the row becomes the clean snapshot."""
        record = cls(datasource=datasource)
        record._attributes = dict(row)
        record._original = dict(row)
        record._persisted = record.primary_key_value is not None
        return record

    # -------------------------------------------------------------------------
    # Attribute bag
    # -------------------------------------------------------------------------

    @property
    def attributes(self) -> dict[str, Any]:
        return dict(self._attributes)

    @property
    def original(self) -> dict[str, Any]:
        return dict(self._original)

    @property
    def is_persisted(self) -> bool:
        return self._persisted

    @property
    def primary_key_value(self) -> Any:
        return self._attributes.get(type(self).metadata().primary_key)

    @property
    def datasource(self) -> str:
        return self._datasource

    @property
    def errors(self) -> dict[str, list[str]]:
        return {field: list(messages) for field, messages in self._errors.items()}

    def get(self, name: str, default: Any = None) -> Any:
        """Read an attribute (``default`` when unset)."""
        return self._attributes.get(name, default)

    def set(self, name: str, value: Any) -> Record:
        """Write an attribute."""
        self._attributes[name] = value
        return self

    def fill(self, values: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Record:
        """Write several attributes at once."""
        for name, value in {**(values or {}), **kwargs}.items():
            self.set(name, value)
        return self

    def __getitem__(self, name: str) -> Any:
        return self._attributes[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return name in self._attributes

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails: relationship, then attribute,
        # then get_<field>/set_<field> call shapes.
        if name.startswith("_"):
            raise AttributeError(name)

        cls = type(self)
        if name in cls.metadata().relations:
            return self.related(name)

        attributes = self.__dict__.get("_attributes", {})
        if name in attributes:
            return attributes[name]

        if name.startswith("get_") and len(name) > 4:
            field = name[4:]
            return lambda: self.get(field)

        if name.startswith("set_") and len(name) > 4:
            field = name[4:]
            return lambda value: self.set(field, value)

        raise MethodNotFoundError(
            f"{cls.__name__} has no attribute, accessor or relationship '{name}'"
        )

    def __setattr__(self, name: str, value: Any) -> None:
        cls = type(self)
        if name.startswith("_"):
            object.__setattr__(self, name, value)
        elif name in cls.metadata().relations:
            self.set_relation(name, value)
        elif name in self._attributes or not hasattr(cls, name):
            self.set(name, value)
        elif getattr(inspect.getattr_static(cls, name), "fset", None) is not None:
            object.__setattr__(self, name, value)
        else:
            raise AttributeError(
                f"'{name}' is a {cls.__name__} member; use set('{name}', value) for a column of that name"
            )

    def __repr__(self) -> str:
        state = "persisted" if self._persisted else "new"
        key = type(self).metadata().primary_key
        return f"<{type(self).__name__} {key}={self.primary_key_value!r} {state}>"

    def to_dict(self, include_relations: bool = True) -> dict[str, Any]:
        """Attributes plus (optionally) loaded relationships, recursively."""
        data = dict(self._attributes)
        if include_relations:
            for name, slot in self._relations.items():
                if not slot.is_loaded:
                    continue
                if isinstance(slot.value, list):
                    data[name] = [item.to_dict() for item in slot.value]
                elif slot.value is not None:
                    data[name] = slot.value.to_dict()
                else:
                    data[name] = None
        return data

    # -------------------------------------------------------------------------
    # Dirty tracking
    # -------------------------------------------------------------------------

    def get_dirty(self) -> dict[str, Any]:
        """Attributes that differ from the last persisted/hydrated snapshot."""
        dirty: dict[str, Any] = {}
        for name, value in self._attributes.items():
            if name not in self._original:
                dirty[name] = value
                continue
            before = self._original[name]
            if (before is None) != (value is None) or before != value:
                dirty[name] = value
        return dirty

    def is_dirty(self, field: str | None = None) -> bool:
        dirty = self.get_dirty()
        return field in dirty if field is not None else bool(dirty)

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> dict[str, list[str]]:
        """Run all validators; returns (and keeps) the field-keyed error mapping."""
        self._errors = run_validators(self, type(self).metadata().validators)
        return self.errors

    def is_valid(self) -> bool:
        return not self.validate()

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _executor(self):
        return type(self).registry.require_executor()

    def save(self) -> bool:
        """
        Insert or update this record.

        Returns:
            True on success; False when validation fails or a before_*
            callback cancels (the record is left untouched for correction)

        Raises:
            SaveFailedError: If the statement fails to execute
        """
        if self.validate():
            log_with_context(
                logger,
                logging.DEBUG,
                f"{type(self).__name__} failed validation",
                model=type(self).__name__,
                errors=self._errors,
            )
            return False

        creating = not self._persisted or self.primary_key_value is None

        if not self._run_callbacks(CallbackEvent.BEFORE_SAVE):
            return False
        if not self._run_callbacks(
            CallbackEvent.BEFORE_CREATE if creating else CallbackEvent.BEFORE_UPDATE
        ):
            return False

        if creating:
            self._perform_insert()
            self._run_callbacks(CallbackEvent.AFTER_CREATE)
        else:
            self._perform_update()
            self._run_callbacks(CallbackEvent.AFTER_UPDATE)

        self._run_callbacks(CallbackEvent.AFTER_SAVE)
        return True

    def _perform_insert(self) -> None:
        cls = type(self)
        meta = cls.metadata()
        pk = meta.primary_key

        values = dict(self._attributes)
        if values.get(pk) is None:
            values.pop(pk, None)

        now = _utcnow()
        stamped = {
            column: now
            for column in cls.registry.timestamp_columns(cls, self._datasource)
            if values.get(column) is None
        }
        values.update(stamped)

        compiled = build_insert(meta.table_name, values)
        try:
            result = self._executor().execute(compiled.sql, compiled.bindings, self._datasource)
        except ExecutionError as e:
            log_with_context(
                logger,
                logging.ERROR,
                f"Failed to insert {cls.__name__}",
                model=cls.__name__,
                error=e.detail or str(e),
            )
            raise SaveFailedError(f"Failed to insert {cls.__name__}", detail=e.detail or str(e)) from e

        self._attributes.update(stamped)
        if self._attributes.get(pk) is None and result.last_insert_id is not None:
            self._attributes[pk] = result.last_insert_id
        self._persisted = self._attributes.get(pk) is not None
        self._original = dict(self._attributes)

        log_with_context(
            logger,
            logging.DEBUG,
            f"Inserted {cls.__name__}",
            model=cls.__name__,
            key=self.primary_key_value,
        )

    def _perform_update(self) -> None:
        cls = type(self)
        meta = cls.metadata()
        pk = meta.primary_key

        dirty = self.get_dirty()
        if not dirty:
            log_with_context(
                logger,
                logging.DEBUG,
                f"{cls.__name__} unchanged; skipping UPDATE",
                model=cls.__name__,
                key=self.primary_key_value,
            )
            return

        values = dict(dirty)
        if "updated_at" in cls.registry.timestamp_columns(cls, self._datasource) and "updated_at" not in dirty:
            values["updated_at"] = _utcnow()

        # A changed primary key is matched on its previous value
        key_value = self._original.get(pk, self.primary_key_value)
        compiled = build_update(meta.table_name, values, pk, key_value)
        try:
            result = self._executor().execute(compiled.sql, compiled.bindings, self._datasource)
        except ExecutionError as e:
            log_with_context(
                logger,
                logging.ERROR,
                f"Failed to update {cls.__name__}",
                model=cls.__name__,
                key=key_value,
                error=e.detail or str(e),
            )
            raise SaveFailedError(f"Failed to update {cls.__name__}", detail=e.detail or str(e)) from e

        if result.rowcount == 0:
            log_with_context(
                logger,
                logging.WARNING,
                f"UPDATE of {cls.__name__} matched no rows",
                model=cls.__name__,
                key=key_value,
            )

        self._attributes.update(values)
        self._original = dict(self._attributes)

    def delete(self) -> bool:
        """
        Delete this record's row.

        Returns:
            True on success, False if a before_delete callback cancelled

        Raises:
            DeleteFailedError: If the record is unsaved or keyless, or the
                statement fails
        """
        cls = type(self)
        meta = cls.metadata()
        key_value = self.primary_key_value

        if key_value is None or not self._persisted:
            raise DeleteFailedError(f"Cannot delete {cls.__name__}: record is not persisted")

        if not self._run_callbacks(CallbackEvent.BEFORE_DELETE):
            return False

        compiled = build_delete(meta.table_name, meta.primary_key, key_value)
        try:
            self._executor().execute(compiled.sql, compiled.bindings, self._datasource)
        except ExecutionError as e:
            log_with_context(
                logger,
                logging.ERROR,
                f"Failed to delete {cls.__name__}",
                model=cls.__name__,
                key=key_value,
                error=e.detail or str(e),
            )
            raise DeleteFailedError(f"Failed to delete {cls.__name__}", detail=e.detail or str(e)) from e

        self._persisted = False
        self._run_callbacks(CallbackEvent.AFTER_DELETE)
        return True

    def reload(self) -> Record:
        """Re-fetch attributes by primary key, discarding changes and cached relationships."""
        cls = type(self)
        meta = cls.metadata()
        key_value = self.primary_key_value

        if key_value is None:
            raise RecordNotFoundError(f"Cannot reload {cls.__name__} without a primary key")

        row = (
            TableQuery(meta.table_name, self._executor(), self._datasource)
            .where({meta.primary_key: key_value})
            .first()
        )
        if row is None:
            raise RecordNotFoundError(
                f"{cls.__name__} with {meta.primary_key}={key_value!r} no longer exists"
            )

        self._attributes = dict(row)
        self._original = dict(row)
        self._persisted = True
        self._relations = {}
        return self

    # -------------------------------------------------------------------------
    # Relationships
    # -------------------------------------------------------------------------

    def related(self, name: str) -> Any:
        """
        Resolve a relationship.

        Returns the cached value when the relationship was eager-loaded on this
        instance (no query); otherwise a chainable RelationQuery.
        """
        cls = type(self)
        spec = cls.metadata().relations.get(name)
        if spec is None:
            raise InvalidRelationshipError(f"{cls.__name__} has no relationship '{name}'")

        slot = self._relations.get(name)
        if slot is not None and slot.is_loaded:
            return slot.value

        return RelationQuery(self, spec, cls.registry.get(spec.related_type_name))

    def relation_loaded(self, name: str) -> bool:
        slot = self._relations.get(name)
        return slot is not None and slot.is_loaded

    def set_relation(self, name: str, value: Any) -> Record:
        """Mark a relationship loaded with ``value`` (a record, list, or None)."""
        if name not in type(self).metadata().relations:
            raise InvalidRelationshipError(f"{type(self).__name__} has no relationship '{name}'")
        self._relations[name] = RelationSlot(SlotState.LOADED, value)
        return self

    def _mark_relation_loading(self, name: str) -> None:
        self._relations[name] = RelationSlot(SlotState.LOADING)

    def _forget_relation(self, name: str) -> None:
        self._relations.pop(name, None)

    def load(self, *paths: str, strategy: LoadStrategy | str | None = None) -> Record:
        """Eager-load relationship paths onto this already-fetched record."""
        forced = LoadStrategy(strategy) if strategy is not None else None
        type(self).registry.eager_loader.load([self], [(path, forced) for path in paths])
        return self


ActiveRecord = Record
