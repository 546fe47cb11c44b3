"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module defines the building blocks of a schema descriptor: column definitions, predicates, joins and
projections.
"""

import enum
from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import FormationError
from .data_types import SqlDataType, constant, quote
from .id_types import LocalId, quoted_table

COMPARISON_OPERATORS = frozenset(
    ["=", "!=", "<>", "<", "<=", ">", ">=", "LIKE", "NOT LIKE"]
)


def column_ref(column: str, prefix: Optional[str] = None) -> str:
    "A quoted column reference, optionally qualified with a table name or alias."

    if prefix:
        return f"{LocalId(prefix)}.{LocalId(column)}"
    else:
        return str(LocalId(column))


@dataclass
class ColumnDefinition:
    """
    A column of a table, with an optional value bound to it.

    :param name: Column name.
    :param data_type: SQL data type, `None` for value-only columns (e.g. in an `UPDATE`).
    :param nullable: Whether the column accepts `NULL`.
    :param default_value: Default value expression, a raw SQL fragment.
    :param on_update: Expression assigned on row update, for dialects that support `ON UPDATE`.
    :param primary_key: Whether the column is (part of) the primary key.
    :param auto_increment: Whether the column is an auto-increment (identity) column.
    :param unique: Whether the column has a unique constraint.
    :param value: Value bound to the column in data statements.
    """

    name: str
    data_type: Optional[SqlDataType] = None
    nullable: bool = False
    default_value: Optional[str] = None
    on_update: Optional[str] = None
    primary_key: bool = False
    auto_increment: bool = False
    unique: bool = False
    value: Any = None

    @property
    def quoted_name(self) -> str:
        return LocalId(self.name).quoted_id


@enum.unique
class WhereAction(enum.Enum):
    COMPARE = "compare"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    IN = "in"


@dataclass
class WhereCondition:
    "A predicate in a `WHERE` clause."

    column: str
    action: WhereAction = WhereAction.COMPARE
    operator: str = "="
    value: Any = None
    values: list[str] = field(default_factory=list)
    prefix: Optional[str] = None

    def __post_init__(self) -> None:
        if (
            self.action is WhereAction.COMPARE
            and self.operator.upper() not in COMPARISON_OPERATORS
        ):
            raise FormationError(f"unsupported comparison operator: {self.operator}")

    def render(self, placeholder: str) -> str:
        "Renders the predicate with one placeholder per bound value."

        ref = column_ref(self.column, self.prefix)
        if self.action is WhereAction.COMPARE:
            return f"{ref} {self.operator} {placeholder}"
        elif self.action is WhereAction.IS_NULL:
            return f"{ref} IS NULL"
        elif self.action is WhereAction.IS_NOT_NULL:
            return f"{ref} IS NOT NULL"
        elif self.action is WhereAction.IN:
            if not self.values:
                return "1 = 0"
            placeholders = ", ".join(placeholder for _ in self.values)
            return f"{ref} IN ({placeholders})"
        else:
            raise NotImplementedError(f"unknown predicate: {self.action}")

    def parameters(self) -> list[Any]:
        "Values to bind, in placeholder order."

        if self.action is WhereAction.COMPARE:
            return [self.value]
        elif self.action is WhereAction.IN:
            return list(self.values)
        else:
            return []


@enum.unique
class JoinType(enum.Enum):
    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"


@dataclass(frozen=True)
class LiteralCondition:
    "An equality test against a literal, used as the secondary clause of a join."

    alias: str
    column: str
    value: str

    def __str__(self) -> str:
        return f"{column_ref(self.column, self.alias)} = {quote(self.value)}"


@dataclass
class JoinCondition:
    """
    A join of a primary table (aliased) onto a foreign table.

    Renders as `<kind> JOIN primary AS alias ON alias.primary_column = foreign.foreign_column [AND ...]`.
    """

    join_type: JoinType
    primary_table: str
    primary_alias: str
    primary_column: str
    foreign_table: str
    foreign_column: str
    and_condition: Optional[LiteralCondition] = None

    @staticmethod
    def and_(alias: str, column: str, value: Any) -> LiteralCondition:
        "Creates a secondary condition `alias.column = 'value'` to attach to a join."

        return LiteralCondition(alias, column, str(value))

    def __str__(self) -> str:
        join = (
            f"{self.join_type.value} JOIN {quoted_table(self.primary_table)} AS {LocalId(self.primary_alias)}"
            f" ON {column_ref(self.primary_column, self.primary_alias)}"
            f" = {column_ref(self.foreign_column, self.foreign_table)}"
        )
        if self.and_condition is not None:
            join = f"{join} AND {self.and_condition}"
        return join


@dataclass
class SelectCondition:
    "A projected column, optionally qualified, aliased, or wrapped in `COALESCE` with a default."

    column: str
    prefix: Optional[str] = None
    alias: Optional[str] = None
    coalesce: bool = False
    default: Any = None

    def __str__(self) -> str:
        expr = column_ref(self.column, self.prefix)
        if self.coalesce:
            expr = f"COALESCE({expr}, {constant(self.default)})"
        if self.alias:
            expr = f"{expr} AS {LocalId(self.alias)}"
        return expr
