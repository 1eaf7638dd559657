"""
Table-bound queries.

A TableQuery is a QueryBuilder that knows its table, its executor and its
data source, and adds the terminal calls that run the statement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rivet_orm.core.manifest import DEFAULT_DATASOURCE
from rivet_orm.runtime.query_builder import CompiledQuery, QueryBuilder, validate_sql_identifier

if TYPE_CHECKING:
    from rivet_orm.runtime.database import ExecutionResult, StatementExecutor

COUNT_ALIAS = "aggregate"


class TableQuery(QueryBuilder):
    """
    Query bound to one table and one data source.

    Example:
        adults = TableQuery("users", db).where({"age": {"gte": 18}}).get()
        total = TableQuery("users", db).count()
    """

    def __init__(
        self,
        table_name: str,
        executor: StatementExecutor,
        datasource: str = DEFAULT_DATASOURCE,
    ):
        super().__init__(table_name=validate_sql_identifier(table_name, "table name"))
        self.executor = executor
        self.datasource = datasource

    def _execute(self, compiled: CompiledQuery) -> ExecutionResult:
        return self.executor.execute(compiled.sql, compiled.bindings, self.datasource)

    def _fetch_rows(self, limit: int | None = None) -> list[dict[str, Any]]:
        return self._execute(self._compile(limit=limit)).rows

    def get(self) -> list[dict[str, Any]]:
        """Run the query and return all rows."""
        return self._fetch_rows()

    def first(self) -> dict[str, Any] | None:
        """Run the query with LIMIT 1 for this call and return the row or None."""
        rows = self._fetch_rows(limit=1)
        return rows[0] if rows else None

    def count(self) -> int:
        """Run a COUNT(*) over the current conditions."""
        result = self._execute(self._compile(columns=[f"COUNT(*) AS {COUNT_ALIAS}"]))
        if not result.rows:
            return 0
        return int(result.rows[0][COUNT_ALIAS] or 0)

    def exists(self) -> bool:
        """Check whether any row matches."""
        return bool(self._fetch_rows(limit=1))
