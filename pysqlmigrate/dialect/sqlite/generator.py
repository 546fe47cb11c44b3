import dataclasses
import datetime
import decimal
from typing import Any

from pysqlmigrate.base import BaseGenerator
from pysqlmigrate.exceptions import FormationError
from pysqlmigrate.model.conditions import ColumnDefinition
from pysqlmigrate.model.data_types import SqlIntegerType
from pysqlmigrate.model.id_types import LocalId, quoted_table
from pysqlmigrate.util.typing import override


class SQLiteGenerator(BaseGenerator):
    """
    Generator for SQLite.

    Auto-increment columns are declared inline as `INTEGER PRIMARY KEY AUTOINCREMENT`, upserts use
    `ON CONFLICT ... DO UPDATE`, and `ALTER TABLE` adds a single column per statement.
    Unique constraints on added columns become unique indexes, and added columns with a non-constant default
    are populated with an `UPDATE`.
    """

    max_parameters = 999

    @property
    @override
    def placeholder(self) -> str:
        return "?"

    @override
    def get_data_type_spec(self, column: ColumnDefinition) -> str:
        if column.auto_increment and isinstance(column.data_type, SqlIntegerType):
            return "INTEGER"
        return super().get_data_type_spec(column)

    @override
    def is_inline_primary_key(self, column: ColumnDefinition) -> bool:
        return column.auto_increment and column.primary_key

    @override
    def get_column_spec(self, column: ColumnDefinition) -> str:
        if self.is_inline_primary_key(column):
            spec = f"{column.quoted_name} {self.get_data_type_spec(column)} PRIMARY KEY AUTOINCREMENT"
            if column.unique:
                spec += " UNIQUE"
            return spec

        spec = f"{column.quoted_name} {self.get_data_type_spec(column)}"
        spec += " NULL" if column.nullable else " NOT NULL"
        if column.default_value is not None:
            spec += f" DEFAULT {column.default_value}"
        if column.unique:
            spec += " UNIQUE"
        return spec

    def is_constant_default(self, default_value: str) -> bool:
        "True if a default expression is one that `ALTER TABLE ... ADD COLUMN` accepts in SQLite."

        if default_value.upper() in ("CURRENT_TIMESTAMP", "CURRENT_DATE", "CURRENT_TIME"):
            return False
        return not default_value.startswith("(")

    @override
    def get_alter_table_stmts(
        self, table: str, columns: list[ColumnDefinition]
    ) -> list[str]:
        statements: list[str] = []
        for column in columns:
            # SQLite rejects a unique constraint or a non-constant default on an added column
            added = dataclasses.replace(column, unique=False)
            backfill = column.default_value is not None and not self.is_constant_default(
                column.default_value
            )
            if backfill:
                added = dataclasses.replace(added, default_value=None, nullable=True)

            statements.append(
                f"ALTER TABLE {quoted_table(table)} ADD COLUMN {self.get_column_spec(added)}"
            )
            if backfill:
                statements.append(
                    f"UPDATE {quoted_table(table)} SET {column.quoted_name} = {column.default_value}"
                )
            if column.unique:
                statements.append(
                    f"CREATE UNIQUE INDEX {LocalId(f'idx_{table}_{column.name}')} ON {quoted_table(table)} ({column.quoted_name})"
                )
        return statements

    @override
    def get_modify_table_stmts(
        self, table: str, columns: list[ColumnDefinition]
    ) -> list[str]:
        raise FormationError("SQLite does not support changing the definition of a column")

    @override
    def get_upsert_clause(
        self, primary_keys: list[str], columns: list[ColumnDefinition]
    ) -> str:
        inserted = [column.quoted_name for column in columns]
        targets = [key for key in primary_keys if key in inserted] or [
            column.quoted_name for column in columns if column.unique
        ]
        target = f" ({', '.join(targets)})" if targets else ""
        assignments = ", ".join(f"{name} = excluded.{name}" for name in inserted)
        return f"ON CONFLICT{target} DO UPDATE SET {assignments}"

    @override
    def adapt_value(self, value: Any) -> Any:
        if isinstance(value, decimal.Decimal):
            return str(value)
        elif isinstance(value, datetime.datetime):
            return value.isoformat(sep=" ")
        elif isinstance(value, (datetime.date, datetime.time)):
            return value.isoformat()
        else:
            return super().adapt_value(value)
