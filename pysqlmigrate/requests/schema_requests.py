"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module implements executors for statements that create or change the structure of tables.
"""

import dataclasses

from ..base import BaseGenerator, Executor, Statement
from ..exceptions import FormationError


class CreateRequest(Executor):
    operation = "create"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        if not self.schema.columns:
            raise FormationError(f"no columns declared for table: {self.schema.table_name}")

        return [
            Statement(
                generator.get_create_table_stmt(
                    self.schema.table_name,
                    self.schema.columns,
                    self.schema.primary_keys,
                    self.schema.foreign_keys,
                )
            )
        ]


class AlterRequest(Executor):
    "Adds columns to an existing table. Added columns are always nullable such that existing rows remain valid."

    operation = "alter"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        if not self.schema.columns:
            raise FormationError(f"no columns to add to table: {self.schema.table_name}")

        columns = [
            dataclasses.replace(column, nullable=True) for column in self.schema.columns
        ]
        return [
            Statement(sql)
            for sql in generator.get_alter_table_stmts(self.schema.table_name, columns)
        ]


class ModifyRequest(Executor):
    operation = "modify"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        if not self.schema.columns:
            raise FormationError(f"no columns to modify in table: {self.schema.table_name}")

        return [
            Statement(sql)
            for sql in generator.get_modify_table_stmts(
                self.schema.table_name, self.schema.columns
            )
        ]


class RenameRequest(Executor):
    operation = "rename"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        if not self.schema.new_table_name:
            raise FormationError(f"no new name given for table: {self.schema.table_name}")

        return [
            Statement(
                generator.get_rename_table_stmt(
                    self.schema.table_name, self.schema.new_table_name
                )
            )
        ]


class DropRequest(Executor):
    operation = "drop"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        return [Statement(generator.get_drop_table_stmt(self.schema.table_name))]


class CreateIndexRequest(Executor):
    operation = "create_index"

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        if len(self.schema.columns) != 1:
            raise FormationError(
                f"expected a single column to index in table: {self.schema.table_name}"
            )

        return [
            Statement(
                generator.get_create_index_stmt(
                    self.schema.table_name, self.schema.columns[0].name
                )
            )
        ]
