"""
Entry Query Builder

A mutable query object that filters append constraints and orderings to,
compiled once into parameterized SQL.
All values are passed as asyncpg positional parameters ($1, $2, ...), never interpolated.

Supports:
- Idempotent joins (a relation required by several filters is joined once)
- IN / NOT IN as = ANY($n) / != ALL($n)
- OR groups of conditions, ANDed with everything else
- Semi-join constraints (col IN (SELECT ...)) that never duplicate rows
- Ordering with prepend, plus positional ordering by an explicit id sequence
- LIMIT / OFFSET, always rendered last
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

logger = logging.getLogger(__name__)

# Operators that take a single value parameter
VALUE_OPERATORS = {"=", "!=", "<", "<=", ">", ">="}

DIRECTIONS = ("asc", "desc")

# Orders added by these filters never replace the default order
SUPPLEMENTARY_ORDER_SOURCES = ("sticky",)


def escape_like(value: Any) -> str:
    """Escape LIKE wildcards so the value matches as a literal substring."""
    return str(value).replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class Condition:
    """A single constraint against one column."""
    column: str
    operator: str  # =, !=, <, <=, >, >=, in, not in, like, is null, is not null
    value: Any = None


@dataclass
class ConditionGroup:
    """Conditions combined with OR."""
    conditions: list[Condition]


@dataclass
class SubqueryCondition:
    """
    column [NOT] IN (subquery). The subquery contains one {param}
    placeholder that receives the value list.
    """
    column: str
    subquery: str
    values: Optional[list] = None
    negate: bool = False


Constraint = Union[Condition, ConditionGroup, SubqueryCondition]


@dataclass
class Order:
    """ORDER BY column direction. source records which filter added it."""
    column: str
    direction: str = "asc"
    source: str = ""


@dataclass
class SequenceOrder:
    """ORDER BY the position of column within an explicit value sequence."""
    column: str
    values: list
    source: str = ""


@dataclass
class Join:
    table: str
    left: str
    operator: str
    right: str


class EntryQuery:
    """In-progress query that filters compose against by mutation."""

    def __init__(self, table: str, default_order: Optional[str] = None):
        self.table = table
        self.default_order = default_order
        self.columns: list[str] = []
        self.joins: dict[str, Join] = {}
        self.constraints: list[Constraint] = []
        self.orders: list[Union[Order, SequenceOrder]] = []
        # Directions requested through sort, applied positionally to orderby columns
        self.sort_directions: list[str] = []
        self.row_limit: Optional[int] = None
        self.row_offset: Optional[int] = None

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def select_all(self, table: str) -> "EntryQuery":
        column = f"{table}.*"
        if column not in self.columns:
            self.columns.append(column)
        return self

    def join(self, table: str, left: str, operator: str, right: str) -> "EntryQuery":
        """Join a relation. Joining the same table twice is a no-op."""
        if table not in self.joins:
            self.joins[table] = Join(table, left, operator, right)
        return self

    def has_join(self, table: str) -> bool:
        return table in self.joins

    def where(self, column: str, operator: str, value: Any = None) -> "EntryQuery":
        self.constraints.append(Condition(column, operator, value))
        return self

    def where_in(self, column: str, values: Sequence) -> "EntryQuery":
        self.constraints.append(Condition(column, "in", list(values)))
        return self

    def where_not_in(self, column: str, values: Sequence) -> "EntryQuery":
        self.constraints.append(Condition(column, "not in", list(values)))
        return self

    def where_any(self, conditions: Sequence[Condition]) -> "EntryQuery":
        """Add an OR group; an empty group adds nothing."""
        if conditions:
            self.constraints.append(ConditionGroup(list(conditions)))
        return self

    def where_in_subquery(
        self, column: str, subquery: str, values: Optional[Sequence] = None, negate: bool = False
    ) -> "EntryQuery":
        self.constraints.append(
            SubqueryCondition(column, subquery, list(values) if values is not None else None, negate)
        )
        return self

    def order_by(self, column: str, direction: str = "asc", prepend: bool = False, source: str = "") -> "EntryQuery":
        direction = direction.lower()
        if direction not in DIRECTIONS:
            raise ValueError(f"Invalid order direction '{direction}'")
        order = Order(column, direction, source)
        if prepend:
            self.orders.insert(0, order)
        else:
            self.orders.append(order)
        return self

    def order_by_sequence(self, column: str, values: Sequence, source: str = "") -> "EntryQuery":
        self.orders.append(SequenceOrder(column, list(values), source))
        return self

    def limit(self, n: int) -> "EntryQuery":
        self.row_limit = n
        return self

    def offset(self, n: int) -> "EntryQuery":
        self.row_offset = n
        return self

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------

    def _compile_condition(self, condition: Condition, params: list) -> str:
        col = condition.column
        op = condition.operator

        if op in VALUE_OPERATORS:
            params.append(condition.value)
            return f"{col} {op} ${len(params)}"
        if op == "in":
            params.append(condition.value)
            return f"{col} = ANY(${len(params)})"
        if op == "not in":
            params.append(condition.value)
            return f"{col} != ALL(${len(params)})"
        if op == "like":
            params.append(f"%{escape_like(condition.value)}%")
            return f"{col} ILIKE ${len(params)} ESCAPE '\\'"
        if op == "is null":
            return f"{col} IS NULL"
        if op == "is not null":
            return f"{col} IS NOT NULL"
        raise ValueError(f"Unsupported operator '{op}'")

    def _compile_constraint(self, constraint: Constraint, params: list) -> str:
        if isinstance(constraint, ConditionGroup):
            parts = [self._compile_condition(c, params) for c in constraint.conditions]
            return f"({' OR '.join(parts)})"
        if isinstance(constraint, SubqueryCondition):
            placeholder = ""
            if constraint.values is not None:
                params.append(constraint.values)
                placeholder = f"${len(params)}"
            keyword = "NOT IN" if constraint.negate else "IN"
            return f"{constraint.column} {keyword} ({constraint.subquery.format(param=placeholder)})"
        return self._compile_condition(constraint, params)

    def _compile_order(self, params: list) -> str:
        parts = []
        for order in self.orders:
            if isinstance(order, SequenceOrder):
                params.append(order.values)
                parts.append(f"array_position(${len(params)}::int[], {order.column}) ASC")
            else:
                parts.append(f"{order.column} {order.direction.upper()}")
        supplementary = all(order.source in SUPPLEMENTARY_ORDER_SOURCES for order in self.orders)
        if supplementary and self.default_order:
            parts.append(self.default_order)
        return f"ORDER BY {', '.join(parts)}" if parts else ""

    def compile(self) -> tuple[str, list]:
        """
        Build the SELECT statement.
        Returns (sql, params).
        """
        params: list = []

        select_clause = ", ".join(self.columns) if self.columns else f"{self.table}.*"

        join_clause = " ".join(
            f"JOIN {j.table} ON {j.left} {j.operator} {j.right}" for j in self.joins.values()
        )

        conditions = [self._compile_constraint(c, params) for c in self.constraints]
        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        order_clause = self._compile_order(params)

        limit_clause = ""
        if self.row_limit is not None:
            params.append(self.row_limit)
            limit_clause = f"LIMIT ${len(params)}"

        offset_clause = ""
        if self.row_offset is not None:
            params.append(self.row_offset)
            offset_clause = f"OFFSET ${len(params)}"

        sql = f"SELECT {select_clause} FROM {self.table} {join_clause} {where_clause} {order_clause} {limit_clause} {offset_clause}"

        return " ".join(sql.split()), params  # Normalize whitespace
