"""
N+1 query detection.

Observes lazy (non-eager) relationship access. When the same relationship
is lazily resolved on several distinct instances of one record type, that is
the classic "query inside a loop" shape, and the pattern is flagged with a
warning suggesting ``includes()``.

Diagnostic only: the detector never raises and never changes what queries
run. It is meant to be enabled in development.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from rivet_orm.runtime.logging import get_diagnostics_logger, log_with_context

logger = get_diagnostics_logger()


@dataclass
class LazyAccessPattern:
    """Lazy accesses of one relationship on one record type."""

    model: str
    relation: str
    owner_keys: set[str] = field(default_factory=set)
    keyless_owners: list[Callable[[], Any]] = field(default_factory=list)
    keyless_count: int = 0
    access_count: int = 0
    flagged: bool = False

    @property
    def distinct_owners(self) -> int:
        return len(self.owner_keys) + self.keyless_count

    def add_owner(self, owner: Any) -> None:
        """Count an owner once, by primary key or else by identity."""
        key_value = getattr(owner, "primary_key_value", None)
        if key_value is not None:
            self.owner_keys.add(str(key_value))
            return

        # Compared against live references; id() values are reused after collection
        self.keyless_owners = [ref for ref in self.keyless_owners if ref() is not None]
        if any(ref() is owner for ref in self.keyless_owners):
            return
        self.keyless_owners.append(_reference(owner))
        self.keyless_count += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "relation": self.relation,
            "distinct_owners": self.distinct_owners,
            "access_count": self.access_count,
            "flagged": self.flagged,
        }


class NPlusOneDetector:
    """
    Flags repeated per-instance lazy relationship access.

    Args:
        enabled: Record and flag accesses (development mode)
        threshold: Distinct owner instances that make a pattern suspicious
    """

    def __init__(self, enabled: bool = False, threshold: int = 2):
        self.enabled = enabled
        self.threshold = max(2, threshold)
        self._patterns: dict[tuple[str, str], LazyAccessPattern] = {}
        self.warnings: list[LazyAccessPattern] = []

    def record_access(self, owner: Any, relation: str) -> bool:
        """
        Note a lazy relationship access.

        Args:
            owner: Record instance the relationship was resolved on
            relation: Relationship name

        Returns:
            True if this access caused the pattern to be flagged
        """
        if not self.enabled:
            return False

        model = type(owner).__name__
        key = (model, relation)
        pattern = self._patterns.get(key)
        if pattern is None:
            pattern = LazyAccessPattern(model=model, relation=relation)
            self._patterns[key] = pattern

        pattern.access_count += 1
        pattern.add_owner(owner)

        if pattern.flagged or pattern.distinct_owners < self.threshold:
            return False

        pattern.flagged = True
        self.warnings.append(pattern)
        log_with_context(
            logger,
            logging.WARNING,
            f"Possible N+1 query: {model}.{relation} loaded lazily for "
            f"{pattern.distinct_owners} records; consider includes('{relation}')",
            model=model,
            relation=relation,
            distinct_owners=pattern.distinct_owners,
        )
        return True

    def summary(self) -> list[dict[str, Any]]:
        """All observed patterns, most accessed first."""
        return [
            p.to_dict()
            for p in sorted(self._patterns.values(), key=lambda p: p.access_count, reverse=True)
        ]

    def reset(self) -> None:
        """Forget all observations (e.g. at the start of a request)."""
        self._patterns.clear()
        self.warnings.clear()


def _reference(owner: Any) -> Callable[[], Any]:
    """Weak reference to the owner, or a strong one for types without weakref support."""
    try:
        return weakref.ref(owner)
    except TypeError:
        return lambda: owner
