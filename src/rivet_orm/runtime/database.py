"""
SQLite statement execution for the Rivet record layer.

Implements the statement-execution collaborator: a SQL string with ``?``
placeholders, an ordered parameter list and a data-source name go in; row
mappings, an affected-row count and (for inserts) the generated key come out.
Also answers schema introspection queries.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol
from uuid import UUID

from rivet_orm.core.errors import ExecutionError
from rivet_orm.core.manifest import DEFAULT_DATASOURCE
from rivet_orm.runtime.logging import get_sql_logger, log_with_context

logger = get_sql_logger()

QueryListener = Callable[[str, list[Any], str], None]


# =============================================================================
# Execution Interface
# =============================================================================


@dataclass
class ExecutionResult:
    """Outcome of one executed statement."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    rowcount: int = 0
    last_insert_id: Any | None = None


class StatementExecutor(Protocol):
    """What the query and record layers need from a database."""

    def execute(
        self,
        sql: str,
        bindings: Sequence[Any] = (),
        datasource: str = DEFAULT_DATASOURCE,
    ) -> ExecutionResult: ...

    def table_columns(self, table_name: str, datasource: str = DEFAULT_DATASOURCE) -> list[str]: ...


# =============================================================================
# SQLite Type Mapping
# =============================================================================


def _python_to_sqlite(value: Any) -> Any:
    """Convert Python value to SQLite-compatible value."""
    if value is None:
        return None
    elif isinstance(value, UUID):
        return str(value)
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, Decimal):
        return float(value)
    elif isinstance(value, bool):
        return 1 if value else 0
    elif isinstance(value, (dict, list)):
        return json.dumps(value)
    else:
        return value


# =============================================================================
# Database Manager
# =============================================================================


class DatabaseManager:
    """
    Manages SQLite connections for one or more named data sources.

    Each data source keeps one persistent connection (so ``:memory:``
    databases survive between statements). Every statement runs in its own
    transaction: committed on success, rolled back on failure.
    """

    def __init__(
        self,
        datasources: Mapping[str, str | Path] | None = None,
        db_path: str | Path | None = None,
    ):
        """
        Initialize the database manager.

        Args:
            datasources: Mapping of data-source name to SQLite path
            db_path: Shorthand for a single "default" data source
        """
        sources: dict[str, str] = {k: str(v) for k, v in (datasources or {}).items()}
        if db_path is not None:
            sources[DEFAULT_DATASOURCE] = str(db_path)
        if not sources:
            sources[DEFAULT_DATASOURCE] = ".rivet/data.db"

        self.datasources = sources
        self._connections: dict[str, sqlite3.Connection] = {}
        self._listeners: list[QueryListener] = []

    def _ensure_directory(self, path: str) -> None:
        """Ensure the database directory exists."""
        if path != ":memory:" and not path.startswith("file:"):
            Path(path).parent.mkdir(parents=True, exist_ok=True)

    def _resolve(self, datasource: str) -> str:
        try:
            return self.datasources[datasource]
        except KeyError:
            raise ExecutionError(f"Unknown data source '{datasource}'") from None

    def get_connection(self, datasource: str = DEFAULT_DATASOURCE) -> sqlite3.Connection:
        """
        Get the persistent connection for a data source.

        Returns:
            SQLite connection (reuses existing if available)
        """
        conn = self._connections.get(datasource)
        if conn is None:
            path = self._resolve(datasource)
            self._ensure_directory(path)
            conn = sqlite3.connect(path, uri=path.startswith("file:"))
            conn.row_factory = sqlite3.Row
            self._connections[datasource] = conn
        return conn

    @contextmanager
    def connection(self, datasource: str = DEFAULT_DATASOURCE) -> Iterator[sqlite3.Connection]:
        """
        Get a database connection context manager.

        Commits when the block succeeds, rolls back when it raises.
        """
        conn = self.get_connection(datasource)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def close(self) -> None:
        """Close all persistent connections."""
        for conn in self._connections.values():
            conn.close()
        self._connections.clear()

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, listener: QueryListener) -> None:
        """Register a callable invoked as (sql, bindings, datasource) before each statement."""
        self._listeners.append(listener)

    def remove_listener(self, listener: QueryListener) -> None:
        """Unregister a listener added with add_listener."""
        self._listeners.remove(listener)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(
        self,
        sql: str,
        bindings: Sequence[Any] = (),
        datasource: str = DEFAULT_DATASOURCE,
    ) -> ExecutionResult:
        """
        Execute one statement.

        Args:
            sql: SQL with ``?`` placeholders
            bindings: Positional parameters
            datasource: Named data source

        Returns:
            ExecutionResult with rows (for SELECT), rowcount and last insert id

        Raises:
            ExecutionError: If SQLite rejects the statement
        """
        params = [_python_to_sqlite(value) for value in bindings]

        for listener in self._listeners:
            listener(sql, list(bindings), datasource)

        started = time.perf_counter()
        try:
            with self.connection(datasource) as conn:
                cursor = conn.execute(sql, params)
                rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []
                result = ExecutionResult(
                    rows=rows,
                    rowcount=cursor.rowcount,
                    last_insert_id=cursor.lastrowid,
                )
        except sqlite3.Error as e:
            log_with_context(
                logger,
                logging.ERROR,
                "Statement failed",
                sql=sql,
                datasource=datasource,
                error=str(e),
            )
            raise ExecutionError("Statement failed", detail=str(e), sql=sql) from e

        log_with_context(
            logger,
            logging.DEBUG,
            "Executed statement",
            sql=sql,
            bindings=len(params),
            rows=len(result.rows),
            datasource=datasource,
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )
        return result

    def execute_script(self, script: str, datasource: str = DEFAULT_DATASOURCE) -> None:
        """Execute a multi-statement script (fixtures, test schemas)."""
        try:
            self.get_connection(datasource).executescript(script)
        except sqlite3.Error as e:
            raise ExecutionError("Script failed", detail=str(e)) from e

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    def table_exists(self, table_name: str, datasource: str = DEFAULT_DATASOURCE) -> bool:
        """Check if a table exists."""
        result = self.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            [table_name],
            datasource,
        )
        return bool(result.rows)

    def table_columns(self, table_name: str, datasource: str = DEFAULT_DATASOURCE) -> list[str]:
        """Get column names for a table (empty when the table does not exist)."""
        conn = self.get_connection(datasource)
        try:
            cursor = conn.execute(
                "SELECT name FROM pragma_table_info(?)",
                (table_name,),
            )
            return [row[0] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise ExecutionError("Introspection failed", detail=str(e)) from e
