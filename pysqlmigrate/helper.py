"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module provides a facade bound to a connection for the most common data operations.
"""

from collections.abc import Callable
from typing import Any, Optional, TypeVar, Union

from strong_typing.inspection import is_dataclass_instance

from .base import BaseConnection
from .exceptions import FormationError
from .formation.py_to_sql import get_field_mappings
from .requests.batch_requests import InsertBatchRequest, UpdateBatchRequest, UpsertBatchRequest
from .requests.data_requests import InsertAllRequest
from .schema import SchemaBuilder
from .security import SecureDeserializer

T = TypeVar("T")

Builder = Callable[[SchemaBuilder], Any]


class RequestHelper:
    """
    Runs data statements against a connection.

    Data may be given either as a callable that declares columns and values on a schema descriptor, or as a
    data-class instance whose fields map onto columns. Errors propagate to the caller.
    """

    connection: BaseConnection

    def __init__(self, connection: BaseConnection) -> None:
        self.connection = connection

    def insert(self, table_name: str, data: Union[Builder, object]) -> int:
        "Inserts a row, returning the generated key if there is one, or the number of inserted rows."

        return SchemaBuilder.insert(table_name, data).execute(self.connection)

    def upsert(self, table_name: str, data: Union[Builder, object]) -> int:
        return SchemaBuilder.upsert(table_name, data).execute(self.connection)

    def update(self, table_name: str, data: Union[Builder, object]) -> int:
        """
        Updates rows, returning the number of affected rows.

        If a data-class instance is given, the row is identified by the values of its primary key fields; all
        other fields are assigned.
        """

        if not is_dataclass_instance(data):
            return SchemaBuilder.update(table_name, data).execute(self.connection)

        schema = SchemaBuilder.update(table_name)
        for mapping in get_field_mappings(type(data)):
            value = getattr(data, mapping.field_name)
            if mapping.primary or mapping.auto_increment:
                schema.where(mapping.column_name, value)
            else:
                schema.object(mapping.column_name, value)
        return schema.execute(self.connection)

    def delete(self, table_name: str, where: Builder) -> int:
        schema = SchemaBuilder.delete(table_name, where)
        return schema.execute(self.connection)

    def select(
        self,
        table_name: str,
        signature: Optional[type[T]] = None,
        where: Optional[Builder] = None,
        *,
        deserializer: Optional[SecureDeserializer] = None,
    ) -> Union[list[T], list[dict[str, Any]]]:
        """
        Queries a table.

        :param signature: Data-class type to reconstruct rows as; if omitted, rows are returned as dictionaries.
        :param where: A callable that adds predicates, joins, projections or ordering to the query.
        :param deserializer: Allow-list for binary columns that hold serialized objects.
        """

        schema = SchemaBuilder.select(table_name, where)
        if signature is None:
            return schema.execute_select(self.connection)
        return schema.execute_select(
            self.connection, signature, deserializer=deserializer
        )

    def select_all(self, table_name: str, signature: type[T]) -> list[T]:
        return SchemaBuilder.select(table_name).execute_select(self.connection, signature)

    def count(self, table_name: str, where: Optional[Builder] = None) -> int:
        return SchemaBuilder.select_count(table_name, where).execute_select_count(
            self.connection
        )

    def insert_multiple(self, schemas: list[SchemaBuilder]) -> int:
        "Inserts one row per descriptor, in as few statements as the parameter limit of the dialect permits."

        _check_kind(schemas, "insert")
        return InsertBatchRequest(schemas).execute(self.connection)

    def upsert_multiple(self, schemas: list[SchemaBuilder]) -> int:
        _check_kind(schemas, "upsert")
        return UpsertBatchRequest(schemas).execute(self.connection)

    def update_multiple(self, schemas: list[SchemaBuilder]) -> int:
        "Updates rows with a single prepared statement, one parameter row per descriptor."

        _check_kind(schemas, "update")
        return UpdateBatchRequest(schemas).execute(self.connection)

    def insert_all(
        self, source_table: str, target_table: str, columns: Builder
    ) -> int:
        """
        Copies all rows of a table into another table.

        :param columns: A callable that declares the columns to copy.
        """

        schema = SchemaBuilder.insert(source_table, columns)
        return InsertAllRequest(schema, target_table).execute(self.connection)


def _check_kind(schemas: list[SchemaBuilder], kind: str) -> None:
    for schema in schemas:
        if schema.schema_type.value != kind:
            raise FormationError(
                f"expected: {kind} descriptors in batch; got: {schema.schema_type.value}"
            )
