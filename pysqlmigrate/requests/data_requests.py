"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module implements executors for statements that insert, change, remove and query data.
"""

from typing import TYPE_CHECKING, Any

from ..base import BaseConnection, BaseGenerator, CursorResult, Executor, Statement
from ..exceptions import FormationError, QueryException
from ..model.conditions import ColumnDefinition
from ..model.id_types import quoted_table

if TYPE_CHECKING:
    from ..schema import SchemaBuilder


def get_join_clause(schema: "SchemaBuilder") -> str:
    return "".join(f" {join}" for join in schema.join_conditions)


def get_where_clause(
    schema: "SchemaBuilder", generator: BaseGenerator
) -> tuple[str, list[Any]]:
    "Renders the `WHERE` clause (with a leading space) and collects the values it binds."

    if not schema.where_conditions:
        return "", []

    predicates = " AND ".join(
        condition.render(generator.placeholder) for condition in schema.where_conditions
    )
    params: list[Any] = []
    for condition in schema.where_conditions:
        params.extend(condition.parameters())
    return f" WHERE {predicates}", params


def get_insert_stmt(
    generator: BaseGenerator, table: str, columns: list[ColumnDefinition], rows: int = 1
) -> str:
    if not columns:
        raise FormationError(f"no columns to insert into table: {table}")

    column_list = ", ".join(column.quoted_name for column in columns)
    values = ", ".join(
        f"({generator.placeholders(len(columns))})" for _ in range(rows)
    )
    return f"INSERT INTO {quoted_table(table)} ({column_list}) VALUES {values}"


def get_upsert_columns(schema: "SchemaBuilder") -> list[ColumnDefinition]:
    "Columns that take part in an upsert; auto-increment columns are left to the database."

    return [column for column in schema.columns if not column.auto_increment]


class InsertRequest(Executor):
    operation = "insert"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        columns = self.schema.columns
        return [
            Statement(
                get_insert_stmt(generator, self.schema.table_name, columns),
                [column.value for column in columns],
            )
        ]

    def get_result(self, result: CursorResult) -> int:
        "The generated key if the driver reports one, otherwise the number of inserted rows."

        if result.lastrowid:
            return result.lastrowid
        return max(result.rowcount, 0)


class UpdateRequest(Executor):
    operation = "update"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        columns = self.schema.columns
        if not columns:
            raise FormationError(
                f"no columns to update in table: {self.schema.table_name}"
            )

        assignments = ", ".join(
            f"{column.quoted_name} = {generator.placeholder}" for column in columns
        )
        where, where_params = get_where_clause(self.schema, generator)
        sql = (
            f"UPDATE {quoted_table(self.schema.table_name)}{get_join_clause(self.schema)}"
            f" SET {assignments}{where}"
        )
        return [Statement(sql, [column.value for column in columns] + where_params)]


class DeleteRequest(Executor):
    operation = "delete"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        where, where_params = get_where_clause(self.schema, generator)
        return [
            Statement(
                f"DELETE FROM {quoted_table(self.schema.table_name)}{where}",
                where_params,
            )
        ]


class UpsertRequest(Executor):
    operation = "upsert"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        columns = get_upsert_columns(self.schema)
        insert = get_insert_stmt(generator, self.schema.table_name, columns)
        upsert = generator.get_upsert_clause(self.schema.primary_keys, columns)
        return [Statement(f"{insert} {upsert}", [column.value for column in columns])]


class SelectRequest(Executor):
    operation = "select"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        projection = (
            ", ".join(str(select) for select in self.schema.select_conditions) or "*"
        )
        distinct = "DISTINCT " if self.schema.is_distinct else ""
        where, where_params = get_where_clause(self.schema, generator)
        order = f" {self.schema.order_by_clause}" if self.schema.order_by_clause else ""
        sql = (
            f"SELECT {distinct}{projection} FROM {quoted_table(self.schema.table_name)}"
            f"{get_join_clause(self.schema)}{where}{order}"
        )
        return [Statement(sql, where_params)]

    def execute(self, connection: BaseConnection) -> int:
        raise FormationError("a select statement returns rows; use `execute_select`")

    def query(self, connection: BaseConnection) -> list[dict[str, Any]]:
        "Runs the query, returning each row as a dictionary keyed by column label."

        (statement,) = self.get_statements(connection.generator)
        try:
            return connection.query_all(statement.sql, statement.params)
        except QueryException as e:
            raise self.error(connection) from e


class SelectCountRequest(Executor):
    "Counts matching rows. Only predicates are taken into account; joins and projections are ignored."

    operation = "select_count"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        where, where_params = get_where_clause(self.schema, generator)
        return [
            Statement(
                f"SELECT COUNT(*) FROM {quoted_table(self.schema.table_name)}{where}",
                where_params,
            )
        ]

    def execute(self, connection: BaseConnection) -> int:
        raise FormationError("a count statement returns a value; use `execute_select_count`")

    def query(self, connection: BaseConnection) -> int:
        (statement,) = self.get_statements(connection.generator)
        try:
            return connection.query_one(int, statement.sql, statement.params)
        except QueryException as e:
            raise self.error(connection) from e


class InsertAllRequest(Executor):
    "Copies all rows of a table into another table, over the columns of the descriptor."

    operation = "insert_all"
    target_table: str

    def __init__(self, schema: "SchemaBuilder", target_table: str) -> None:
        super().__init__(schema)
        self.target_table = target_table

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        columns = get_upsert_columns(self.schema)
        if not columns:
            raise FormationError(
                f"no columns to copy from table: {self.schema.table_name}"
            )

        column_list = ", ".join(column.quoted_name for column in columns)
        return [
            Statement(
                f"INSERT INTO {quoted_table(self.target_table)} ({column_list})"
                f" SELECT {column_list} FROM {quoted_table(self.schema.table_name)}"
            )
        ]
