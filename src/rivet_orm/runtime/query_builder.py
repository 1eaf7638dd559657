"""
Query builder for parameterized SQL.

Accumulates clause fragments from fluent calls and assembles a single
statement with ``?`` placeholders. Values are never inlined.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from rivet_orm.core.errors import InvalidOperatorError, InvalidValueError, QueryBuilderError

# Valid SQL identifier, optionally table-qualified (users.id)
_VALID_IDENTIFIER_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$")


def validate_sql_identifier(name: str, context: str = "identifier") -> str:
    """
    Validate that a string is a safe (optionally qualified) SQL identifier.

    Args:
        name: The identifier to validate
        context: Description of what's being validated (for error messages)

    Returns:
        The validated name

    Raises:
        InvalidValueError: If the name contains invalid characters
    """
    if not isinstance(name, str) or not name:
        raise InvalidValueError(f"SQL {context} cannot be empty")
    if not _VALID_IDENTIFIER_PATTERN.match(name):
        raise InvalidValueError(
            f"Invalid SQL {context} '{name}': must contain only letters, digits, "
            "and underscores, and cannot start with a digit"
        )
    return name


class CompiledQuery(NamedTuple):
    """A finished statement and its positional bindings."""

    sql: str
    bindings: list[Any]


class FilterOperator(str, Enum):
    """Supported WHERE operators."""

    EQ = "eq"  # Equal (scalar values)
    NE = "ne"  # Not equal
    GT = "gt"  # Greater than
    GTE = "gte"  # Greater than or equal
    LT = "lt"  # Less than
    LTE = "lte"  # Less than or equal
    LIKE = "like"  # Pattern match
    IN = "in"  # In list
    NOT_IN = "not_in"  # Not in list
    BETWEEN = "between"  # Between two values
    IS_NULL = "is_null"  # Is null
    NOT_NULL = "not_null"  # Is not null

    @classmethod
    def parse(cls, key: str) -> FilterOperator:
        """Resolve an operator key, accepting camelCase aliases (notIn, isNull)."""
        if not isinstance(key, str):
            raise InvalidOperatorError(f"Operator must be a string, got {type(key).__name__}")
        normalized = _OPERATOR_ALIASES.get(key, key)
        try:
            return cls(normalized)
        except ValueError:
            raise InvalidOperatorError(f"Unknown operator '{key}'") from None


_OPERATOR_ALIASES = {
    "notIn": "not_in",
    "isNull": "is_null",
    "notNull": "not_null",
}

# Operator mapping to SQL
OPERATOR_SQL: dict[FilterOperator, str] = {
    FilterOperator.EQ: "{field} = ?",
    FilterOperator.NE: "{field} != ?",
    FilterOperator.GT: "{field} > ?",
    FilterOperator.GTE: "{field} >= ?",
    FilterOperator.LT: "{field} < ?",
    FilterOperator.LTE: "{field} <= ?",
    FilterOperator.LIKE: "{field} LIKE ?",
    FilterOperator.IN: "{field} IN ({placeholders})",
    FilterOperator.NOT_IN: "{field} NOT IN ({placeholders})",
    FilterOperator.BETWEEN: "{field} BETWEEN ? AND ?",
    FilterOperator.IS_NULL: "{field} IS NULL",
    FilterOperator.NOT_NULL: "{field} IS NOT NULL",
}


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


@dataclass
class FilterCondition:
    """A single WHERE condition on one column."""

    field: str
    operator: FilterOperator
    value: Any

    @classmethod
    def parse(cls, key: str, value: Any) -> FilterCondition:
        """
        Parse a where-mapping entry into a FilterCondition.

        Examples:
            - ("status", "active") -> FilterCondition(field="status", op=EQ, value="active")
            - ("age", {"gte": 18}) -> FilterCondition(field="age", op=GTE, value=18)
            - ("role", {"in": ["admin", "mod"]}) -> FilterCondition(field="role", op=IN, ...)
        """
        validate_sql_identifier(key, "column name")

        if not isinstance(value, Mapping):
            return cls(field=key, operator=FilterOperator.EQ, value=value)

        if len(value) != 1:
            raise InvalidOperatorError(
                f"Operator mapping for '{key}' must contain exactly one operator, "
                f"got {len(value)}"
            )

        ((op_key, operand),) = value.items()
        return cls(field=key, operator=FilterOperator.parse(op_key), value=operand)

    def to_sql(self) -> tuple[str, list[Any]]:
        """
        Convert condition to SQL fragment and parameters.

        Returns:
            Tuple of (sql_fragment, parameters)
        """
        field_ref = self.field

        if self.operator in (FilterOperator.IS_NULL, FilterOperator.NOT_NULL):
            # A falsy operand flips the test: {"isNull": False} means IS NOT NULL
            wants_null = (self.operator == FilterOperator.IS_NULL) == bool(self.value)
            op = FilterOperator.IS_NULL if wants_null else FilterOperator.NOT_NULL
            return OPERATOR_SQL[op].format(field=field_ref), []

        elif self.operator in (FilterOperator.IN, FilterOperator.NOT_IN):
            if not _is_sequence(self.value):
                raise InvalidValueError(
                    f"'{self.operator.value}' on '{self.field}' requires a list of values"
                )
            values = list(self.value)
            if not values:
                # IN () is not valid SQL; an empty set matches nothing / everything
                return ("1 = 0" if self.operator == FilterOperator.IN else "1 = 1"), []
            placeholders = ", ".join("?" * len(values))
            sql = OPERATOR_SQL[self.operator].format(field=field_ref, placeholders=placeholders)
            return sql, values

        elif self.operator == FilterOperator.BETWEEN:
            if not _is_sequence(self.value) or isinstance(self.value, (set, frozenset)):
                raise InvalidValueError(f"'between' on '{self.field}' requires a list of two values")
            values = list(self.value)
            if len(values) != 2:
                raise InvalidValueError(
                    f"'between' on '{self.field}' requires exactly two values, got {len(values)}"
                )
            return OPERATOR_SQL[self.operator].format(field=field_ref), values

        else:
            # Standard binary operator
            return OPERATOR_SQL[self.operator].format(field=field_ref), [self.value]


@dataclass
class WhereClause:
    """A WHERE fragment and the bindings it owns, in placeholder order."""

    sql: str
    bindings: list[Any] = field(default_factory=list)


@dataclass
class JoinClause:
    """A JOIN descriptor."""

    kind: str  # "INNER" | "LEFT" | "RIGHT"
    table: str
    condition: str

    def to_sql(self) -> str:
        return f"{self.kind} JOIN {self.table} ON {self.condition}"


def _check_count(n: Any, what: str) -> int:
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise InvalidValueError(f"{what} must be a non-negative integer, got {n!r}")
    return n


def _flatten_columns(columns: tuple[Any, ...]) -> list[str]:
    flat: list[str] = []
    for column in columns:
        if isinstance(column, str):
            flat.append(column)
        elif isinstance(column, Iterable):
            flat.extend(str(c) for c in column)
        else:
            raise InvalidValueError(f"Column must be a string, got {type(column).__name__}")
    return flat


@dataclass
class QueryBuilder:
    """
    Builds one parameterized SELECT statement from fluent calls.

    Example:
        builder = QueryBuilder(table_name="users")
        builder.where({"age": {"gte": 18}, "role": {"in": ["admin", "mod"]}})
        builder.order_by("created_at", "DESC").limit(20)

        sql, bindings = builder.to_sql()

    A limit or offset of 0 means "unset" and the clause is omitted.
    """

    InvalidOperator = InvalidOperatorError
    InvalidValue = InvalidValueError

    table_name: str | None = None
    columns: list[str] = field(default_factory=list)
    wheres: list[WhereClause] = field(default_factory=list)
    joins: list[JoinClause] = field(default_factory=list)
    orders: list[str] = field(default_factory=list)
    groups: list[str] = field(default_factory=list)
    havings: list[WhereClause] = field(default_factory=list)
    limit_value: int = 0
    offset_value: int = 0

    # -------------------------------------------------------------------------
    # Clause accumulation
    # -------------------------------------------------------------------------

    def from_table(self, table_name: str) -> QueryBuilder:
        """Set the FROM table."""
        self.table_name = table_name
        return self

    def select(self, *columns: str | Iterable[str]) -> QueryBuilder:
        """Append selected columns (default is *)."""
        self.columns.extend(_flatten_columns(columns))
        return self

    def where(self, conditions: Mapping[str, Any] | None = None, **kwargs: Any) -> QueryBuilder:
        """
        Add AND-joined conditions.

        Scalar values compare with equality; single-key mappings name an
        operator: gte, gt, lte, lt, ne, like, in, notIn, between, isNull, notNull.
        """
        merged: dict[str, Any] = {**(conditions or {}), **kwargs}
        for key, value in merged.items():
            sql, bindings = FilterCondition.parse(key, value).to_sql()
            self.wheres.append(WhereClause(sql, bindings))
        return self

    def where_raw(self, sql: str, bindings: Iterable[Any] | None = None) -> QueryBuilder:
        """Add a raw parenthesized condition with its own bindings."""
        self.wheres.append(WhereClause(f"({sql})", list(bindings or [])))
        return self

    def join(self, table: str, condition: str) -> QueryBuilder:
        """Add an INNER JOIN."""
        self.joins.append(JoinClause("INNER", table, condition))
        return self

    def left_join(self, table: str, condition: str) -> QueryBuilder:
        """Add a LEFT JOIN."""
        self.joins.append(JoinClause("LEFT", table, condition))
        return self

    def right_join(self, table: str, condition: str) -> QueryBuilder:
        """Add a RIGHT JOIN."""
        self.joins.append(JoinClause("RIGHT", table, condition))
        return self

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        """Add an ORDER BY term."""
        validate_sql_identifier(column, "order column")
        normalized = str(direction).upper()
        if normalized not in ("ASC", "DESC"):
            raise InvalidValueError(f"Sort direction must be ASC or DESC, got {direction!r}")
        self.orders.append(f"{column} {normalized}")
        return self

    def group_by(self, *columns: str | Iterable[str]) -> QueryBuilder:
        """Add GROUP BY columns."""
        self.groups.extend(_flatten_columns(columns))
        return self

    def having(self, sql: str, bindings: Iterable[Any] | None = None) -> QueryBuilder:
        """Add a parenthesized, AND-joined HAVING condition."""
        self.havings.append(WhereClause(f"({sql})", list(bindings or [])))
        return self

    def limit(self, n: int) -> QueryBuilder:
        """Set LIMIT (0 = no limit)."""
        self.limit_value = _check_count(n, "limit")
        return self

    def offset(self, n: int) -> QueryBuilder:
        """Set OFFSET (0 = no offset)."""
        self.offset_value = _check_count(n, "offset")
        return self

    # -------------------------------------------------------------------------
    # Assembly
    # -------------------------------------------------------------------------

    @property
    def bindings(self) -> list[Any]:
        """WHERE bindings in placeholder order."""
        return [value for clause in self.wheres for value in clause.bindings]

    def build_where_clause(self) -> tuple[str, list[Any]]:
        """
        Build the WHERE clause from accumulated fragments.

        Returns:
            Tuple of (where_clause, parameters)
        """
        if not self.wheres:
            return "", []
        fragments = " AND ".join(clause.sql for clause in self.wheres)
        return f"WHERE {fragments}", self.bindings

    def to_sql(self) -> CompiledQuery:
        """Assemble the statement from the current state."""
        return self._compile()

    def _compile(
        self,
        columns: list[str] | None = None,
        limit: int | None = None,
    ) -> CompiledQuery:
        """
        Assemble SQL, optionally overriding columns or limit for this call only.

        Clause order: SELECT, FROM, JOIN, WHERE, GROUP BY, HAVING, ORDER BY,
        LIMIT, OFFSET.
        """
        if not self.table_name:
            raise QueryBuilderError("Cannot build a SELECT without a table")

        selected = columns if columns is not None else self.columns
        effective_limit = self.limit_value if limit is None else limit

        params: list[Any] = []
        parts = [f"SELECT {', '.join(selected) if selected else '*'}", f"FROM {self.table_name}"]

        parts.extend(join.to_sql() for join in self.joins)

        where_clause, where_params = self.build_where_clause()
        if where_clause:
            parts.append(where_clause)
            params.extend(where_params)

        if self.groups:
            parts.append(f"GROUP BY {', '.join(self.groups)}")

        if self.havings:
            parts.append(f"HAVING {' AND '.join(clause.sql for clause in self.havings)}")
            for clause in self.havings:
                params.extend(clause.bindings)

        if self.orders:
            parts.append(f"ORDER BY {', '.join(self.orders)}")

        if effective_limit:
            parts.append("LIMIT ?")
            params.append(effective_limit)

        if self.offset_value:
            parts.append("OFFSET ?")
            params.append(self.offset_value)

        return CompiledQuery(" ".join(parts), params)


# =============================================================================
# Write Statements
# =============================================================================


def build_insert(table_name: str, values: Mapping[str, Any]) -> CompiledQuery:
    """Build an INSERT for one row (DEFAULT VALUES when ``values`` is empty)."""
    if not values:
        return CompiledQuery(f"INSERT INTO {table_name} DEFAULT VALUES", [])

    columns = [validate_sql_identifier(column, "column name") for column in values]
    placeholders = ", ".join("?" * len(columns))
    sql = f"INSERT INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})"
    return CompiledQuery(sql, list(values.values()))


def build_update(
    table_name: str,
    values: Mapping[str, Any],
    key: str,
    key_value: Any,
) -> CompiledQuery:
    """Build an UPDATE of ``values`` for the row whose ``key`` equals ``key_value``."""
    if not values:
        raise QueryBuilderError("UPDATE requires at least one column")

    set_clause = ", ".join(
        f"{validate_sql_identifier(column, 'column name')} = ?" for column in values
    )
    sql = f"UPDATE {table_name} SET {set_clause} WHERE {validate_sql_identifier(key, 'key')} = ?"
    return CompiledQuery(sql, [*values.values(), key_value])


def build_delete(table_name: str, key: str, key_value: Any) -> CompiledQuery:
    """Build a DELETE for the row whose ``key`` equals ``key_value``."""
    sql = f"DELETE FROM {table_name} WHERE {validate_sql_identifier(key, 'key')} = ?"
    return CompiledQuery(sql, [key_value])
