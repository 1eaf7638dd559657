"""
Type-keyed registry of record types.

Holds the per-type metadata shared by every instance of a record class:
table name, primary key, relationships, validators, callbacks and detected
timestamp columns. Metadata is created once per type by an idempotent
initializer and treated as read-only afterwards.

Also acts as the type-construction collaborator: given a related type name
and a data source, it produces a new record instance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from rivet_orm.core.errors import InvalidRelationshipError
from rivet_orm.core.manifest import DEFAULT_DATASOURCE, RivetConfig
from rivet_orm.core.strings import to_table_name
from rivet_orm.runtime.logging import get_orm_logger, log_with_context, setup_logging
from rivet_orm.runtime.n_plus_one import NPlusOneDetector
from rivet_orm.specs.hooks import CallbackEvent, CallbackSpec, Hook, ValidatorSpec
from rivet_orm.specs.relation import RelationSpec

if TYPE_CHECKING:
    from rivet_orm.runtime.database import StatementExecutor
    from rivet_orm.runtime.record import Record
    from rivet_orm.runtime.relation_loader import EagerLoader

logger = get_orm_logger()

TIMESTAMP_COLUMNS = ("created_at", "updated_at")


@dataclass
class ModelMetadata:
    """Per-type metadata shared by all instances of one record class."""

    model: type[Record]
    table_name: str
    primary_key: str
    relations: dict[str, RelationSpec] = field(default_factory=dict)
    validators: list[ValidatorSpec] = field(default_factory=list)
    callbacks: list[CallbackSpec] = field(default_factory=list)
    timestamp_columns: frozenset[str] | None = None  # None until introspected

    def add_relation(self, spec: RelationSpec) -> RelationSpec:
        """Register a relationship once; later registrations of the name keep the first."""
        existing = self.relations.get(spec.name)
        if existing is not None:
            return existing
        self.relations[spec.name] = spec
        return spec

    def hooks_for(self, event: CallbackEvent) -> list[Hook]:
        return [cb.hook for cb in self.callbacks if cb.event == event]


class ModelRegistry:
    """
    Registry of record types and their metadata.

    Example:
        registry = ModelRegistry(executor=DatabaseManager(db_path=":memory:"))

        class User(Record, registry=registry):
            @classmethod
            def configure(cls):
                cls.has_many("posts")
    """

    def __init__(
        self,
        executor: StatementExecutor | None = None,
        detector: NPlusOneDetector | None = None,
    ):
        self.executor = executor
        self.detector = detector or NPlusOneDetector(enabled=False)
        self._models: dict[str, type[Record]] = {}
        self._metadata: dict[type, ModelMetadata] = {}
        self._eager_loader: EagerLoader | None = None

    @classmethod
    def from_config(cls, config: RivetConfig) -> ModelRegistry:
        """Build a registry wired to the configured data sources and diagnostics."""
        from rivet_orm.runtime.database import DatabaseManager

        return cls(
            executor=DatabaseManager(datasources=config.database.datasources),
            detector=NPlusOneDetector(
                enabled=config.n_plus_one_enabled,
                threshold=config.diagnostics.n_plus_one_threshold,
            ),
        )

    # -------------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------------

    def register(self, model: type[Record]) -> None:
        """Register a record class under its class name."""
        name = model.__name__
        if name in self._models and self._models[name] is not model:
            log_with_context(logger, logging.DEBUG, "Record type re-registered", model=name)
            self._metadata.pop(self._models[name], None)
        self._models[name] = model

    def get(self, type_name: str) -> type[Record]:
        """Look up a registered record class by name."""
        try:
            return self._models[type_name]
        except KeyError:
            raise InvalidRelationshipError(f"Unknown record type '{type_name}'") from None

    def has(self, type_name: str) -> bool:
        return type_name in self._models

    def create(
        self,
        type_name: str,
        datasource: str | None = None,
        attributes: dict[str, Any] | None = None,
    ) -> Record:
        """Construct a new, unsaved instance of a registered type."""
        return self.get(type_name)(attributes, datasource=datasource)

    @property
    def models(self) -> dict[str, type[Record]]:
        return dict(self._models)

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def metadata(self, model: type[Record]) -> ModelMetadata:
        """
        Get (creating once) the metadata for a record class.

        The first call resolves conventions and then runs the class's
        ``configure()`` hook, which may declare relationships, validators
        and callbacks.
        """
        meta = self._metadata.get(model)
        if meta is not None:
            return meta

        meta = ModelMetadata(
            model=model,
            table_name=model.__dict__.get("table_name") or to_table_name(model.__name__),
            primary_key=getattr(model, "primary_key", None) or "id",
        )
        # Stored before configure() so declarations inside it find the entry
        self._metadata[model] = meta

        configure = getattr(model, "configure", None)
        if configure is not None:
            configure()

        log_with_context(
            logger,
            logging.DEBUG,
            "Record type initialized",
            model=model.__name__,
            table=meta.table_name,
            primary_key=meta.primary_key,
            relations=sorted(meta.relations),
        )
        return meta

    def timestamp_columns(self, model: type[Record], datasource: str = DEFAULT_DATASOURCE) -> frozenset[str]:
        """
        Detect created_at/updated_at columns once per type.

        Any introspection failure counts as "absent".
        """
        meta = self.metadata(model)
        if meta.timestamp_columns is not None:
            return meta.timestamp_columns

        detected: frozenset[str] = frozenset()
        if self.executor is not None:
            try:
                columns = set(self.executor.table_columns(meta.table_name, datasource))
                detected = frozenset(c for c in TIMESTAMP_COLUMNS if c in columns)
            except Exception as e:
                log_with_context(
                    logger,
                    logging.DEBUG,
                    "Timestamp introspection failed; assuming no timestamp columns",
                    model=model.__name__,
                    error=str(e),
                )
        meta.timestamp_columns = detected
        return detected

    # -------------------------------------------------------------------------
    # Collaborators
    # -------------------------------------------------------------------------

    @property
    def eager_loader(self) -> EagerLoader:
        if self._eager_loader is None:
            from rivet_orm.runtime.relation_loader import EagerLoader

            self._eager_loader = EagerLoader(self)
        return self._eager_loader

    def require_executor(self) -> StatementExecutor:
        if self.executor is None:
            raise RuntimeError("ModelRegistry has no executor; call configure() first")
        return self.executor


default_registry = ModelRegistry()


def configure(config: RivetConfig, registry: ModelRegistry | None = None) -> ModelRegistry:
    """
    Apply a configuration.

    Sets up logging and wires the configured executor and N+1 detector into
    a registry (default: the global one).
    """
    setup_logging(config.logging.log_dir, config.logging.level, console=config.logging.console)
    registry = registry or default_registry
    configured = ModelRegistry.from_config(config)
    registry.executor = configured.executor
    registry.detector = configured.detector
    return registry
