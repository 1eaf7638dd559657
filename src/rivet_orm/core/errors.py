"""
Error types for the Rivet query builder and record layer.

Structural errors are exceptions. Business-rule validation failures are not:
they are collected into a field-keyed mapping by ``Record.validate()``.
"""

from __future__ import annotations


class RivetError(Exception):
    """Base exception for all Rivet errors."""

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with the underlying detail if available."""
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


# =============================================================================
# Query Builder Errors
# =============================================================================


class QueryBuilderError(RivetError):
    """Base class for errors raised while building a statement."""

    pass


class InvalidOperatorError(QueryBuilderError):
    """
    Raised when a WHERE operator mapping cannot be interpreted.

    Examples:
    - Unknown operator key ({"age": {"bigger": 3}})
    - Mapping with zero or several keys ({"age": {"gt": 1, "lt": 9}})
    """

    pass


class InvalidValueError(QueryBuilderError, ValueError):
    """
    Raised when a builder argument has the wrong shape.

    Examples:
    - Negative or non-integer limit/offset
    - Non-sequence value for in / notIn
    - between with anything other than two values
    - Column names that are not SQL identifiers
    """

    pass


# =============================================================================
# Record Errors
# =============================================================================


class ActiveRecordError(RivetError):
    """Base class for record layer errors."""

    pass


class MethodNotFoundError(ActiveRecordError, AttributeError):
    """Raised when a dynamic access matches no attribute, accessor or relationship."""

    pass


class SaveFailedError(ActiveRecordError):
    """Raised when an INSERT or UPDATE fails to execute."""

    pass


class DeleteFailedError(ActiveRecordError):
    """Raised when a record cannot be deleted (unsaved, keyless, or driver failure)."""

    pass


class RecordNotFoundError(ActiveRecordError, LookupError):
    """Raised when a record cannot be re-fetched by primary key."""

    pass


class InvalidRelationshipError(ActiveRecordError):
    """Raised when traversal or eager loading names an unregistered relationship."""

    pass


# =============================================================================
# Execution Errors
# =============================================================================


class ExecutionError(RivetError):
    """Raised by the statement executor when the database rejects a statement."""

    def __init__(self, message: str, detail: str | None = None, sql: str | None = None):
        self.sql = sql
        super().__init__(message, detail)
