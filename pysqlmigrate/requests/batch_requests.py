"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module implements executors that apply a list of descriptors of the same table in as few round-trips as
possible.
"""

import logging
from typing import TYPE_CHECKING, Any

from ..base import BaseConnection, BaseGenerator, Executor, Statement
from ..exceptions import FormationError, QueryException
from ..model.conditions import ColumnDefinition
from ..model.id_types import quoted_table
from .data_requests import get_insert_stmt, get_join_clause, get_upsert_columns, get_where_clause

if TYPE_CHECKING:
    from ..schema import SchemaBuilder

LOGGER = logging.getLogger("pysqlmigrate")


class BatchExecutor(Executor):
    "Base class for executors that take a list of descriptors of the same table with the same columns."

    schemas: list["SchemaBuilder"]

    def __init__(self, schemas: list["SchemaBuilder"]) -> None:
        self.schemas = schemas
        if not schemas:
            return

        super().__init__(schemas[0])
        names = [column.name for column in self.schema.columns]
        for schema in schemas[1:]:
            if schema.table_name != self.schema.table_name:
                raise FormationError(
                    f"batch mixes tables: {self.schema.table_name} and {schema.table_name}"
                )
            if sorted(column.name for column in schema.columns) != sorted(names):
                raise FormationError(
                    f"batch mixes column sets for table {self.schema.table_name}: "
                    f"{names} and {[column.name for column in schema.columns]}"
                )

    def get_row(
        self, schema: "SchemaBuilder", columns: list[ColumnDefinition]
    ) -> list[Any]:
        "Values of a descriptor in the column order of the first descriptor."

        values = {column.name: column.value for column in schema.columns}
        return [values[column.name] for column in columns]

    def execute(self, connection: BaseConnection) -> int:
        if not self.schemas:
            LOGGER.warning("no data to %s", self.operation.replace("_", " "))
            return 0
        return super().execute(connection)


class InsertBatchRequest(BatchExecutor):
    "Inserts one row per descriptor with a multi-row `VALUES` list."

    operation = "insert_batch"

    def get_columns(self) -> list[ColumnDefinition]:
        return self.schema.columns

    def get_clause(self, generator: BaseGenerator, columns: list[ColumnDefinition]) -> str:
        return ""

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        if not self.schemas:
            return []

        columns = self.get_columns()
        clause = self.get_clause(generator, columns)
        batch_size = max(1, generator.max_parameters // max(1, len(columns)))

        statements: list[Statement] = []
        for offset in range(0, len(self.schemas), batch_size):
            batch = self.schemas[offset : offset + batch_size]
            sql = get_insert_stmt(generator, self.schema.table_name, columns, len(batch))
            if clause:
                sql = f"{sql} {clause}"
            params: list[Any] = []
            for schema in batch:
                params.extend(self.get_row(schema, columns))
            statements.append(Statement(sql, params))
        return statements


class UpsertBatchRequest(InsertBatchRequest):
    "Inserts or updates one row per descriptor; auto-increment columns are left to the database."

    operation = "upsert_batch"

    def get_columns(self) -> list[ColumnDefinition]:
        return get_upsert_columns(self.schema)

    def get_clause(self, generator: BaseGenerator, columns: list[ColumnDefinition]) -> str:
        return generator.get_upsert_clause(self.schema.primary_keys, columns)


class UpdateBatchRequest(BatchExecutor):
    """
    Updates rows with a single prepared statement shaped by the first descriptor.

    Each descriptor contributes one parameter row: its assigned values followed by its predicate values.
    """

    operation = "update_batch"

    def get_sql(self, generator: BaseGenerator) -> str:
        if not self.schema.columns:
            raise FormationError(f"no columns to update in table: {self.schema.table_name}")

        assignments = ", ".join(
            f"{column.quoted_name} = {generator.placeholder}"
            for column in self.schema.columns
        )
        where, _ = get_where_clause(self.schema, generator)
        for schema in self.schemas[1:]:
            other, _ = get_where_clause(schema, generator)
            if other != where:
                raise FormationError(
                    f"batch mixes predicates for table {self.schema.table_name}: `{where}` and `{other}`"
                )
        return (
            f"UPDATE {quoted_table(self.schema.table_name)}{get_join_clause(self.schema)}"
            f" SET {assignments}{where}"
        )

    def get_rows(self, generator: BaseGenerator) -> list[list[Any]]:
        rows: list[list[Any]] = []
        for schema in self.schemas:
            _, where_params = get_where_clause(schema, generator)
            rows.append(self.get_row(schema, self.schema.columns) + where_params)
        return rows

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        if not self.schemas:
            return []

        sql = self.get_sql(generator)
        return [Statement(sql, row) for row in self.get_rows(generator)]

    def execute(self, connection: BaseConnection) -> int:
        if not self.schemas:
            LOGGER.warning("no data to update")
            return 0

        sql = self.get_sql(connection.generator)
        rows = self.get_rows(connection.generator)
        try:
            return connection.execute_all(sql, rows)
        except QueryException as e:
            raise self.error(connection) from e
