"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module defines the schema descriptor, a fluent builder that captures a single statement (table definition,
data change or query) to be compiled and executed against a connection.
"""

import enum
import typing
from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union, overload
from uuid import UUID

from strong_typing.inspection import is_dataclass_instance, is_dataclass_type

from .base import BaseConnection, BaseGenerator, Executor, Statement
from .exceptions import FormationError
from .formation.py_to_sql import dataclass_to_schema
from .formation.sql_to_py import dataclass_from_rows
from .model.conditions import (
    ColumnDefinition,
    JoinCondition,
    JoinType,
    LiteralCondition,
    SelectCondition,
    WhereAction,
    WhereCondition,
    column_ref,
)
from .model.data_types import (
    SqlBooleanType,
    SqlDateType,
    SqlDecimalType,
    SqlIntegerType,
    SqlJsonType,
    SqlTextType,
    SqlTimestampType,
    SqlVariableBinaryType,
    SqlVariableCharacterType,
    constant,
)
from .model.id_types import LocalId, quoted_table
from .requests.data_requests import (
    DeleteRequest,
    InsertRequest,
    SelectCountRequest,
    SelectRequest,
    UpdateRequest,
    UpsertRequest,
)
from .requests.schema_requests import (
    AlterRequest,
    CreateIndexRequest,
    CreateRequest,
    DropRequest,
    ModifyRequest,
    RenameRequest,
)
from .security import SecureDeserializer, serialize_object

if TYPE_CHECKING:
    from .migration import Migration

D = TypeVar("D")

CURRENT_TIMESTAMP = "CURRENT_TIMESTAMP"

_NO_DEFAULT: Any = object()


@enum.unique
class SchemaType(enum.Enum):
    "The kind of statement a schema descriptor represents."

    CREATE = "create"
    ALTER = "alter"
    MODIFY = "modify"
    RENAME = "rename"
    DROP = "drop"
    CREATE_INDEX = "create_index"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    UPSERT = "upsert"
    SELECT = "select"
    SELECT_COUNT = "select_count"


_EXECUTORS: dict[SchemaType, type[Executor]] = {
    SchemaType.CREATE: CreateRequest,
    SchemaType.ALTER: AlterRequest,
    SchemaType.MODIFY: ModifyRequest,
    SchemaType.RENAME: RenameRequest,
    SchemaType.DROP: DropRequest,
    SchemaType.CREATE_INDEX: CreateIndexRequest,
    SchemaType.INSERT: InsertRequest,
    SchemaType.UPDATE: UpdateRequest,
    SchemaType.DELETE: DeleteRequest,
    SchemaType.UPSERT: UpsertRequest,
    SchemaType.SELECT: SelectRequest,
    SchemaType.SELECT_COUNT: SelectCountRequest,
}

Definition = Union[Callable[["SchemaBuilder"], Any], type, object, None]


class ColumnBuilder:
    """
    Modifies the column that was last added to a schema descriptor.

    Each modifier returns the schema descriptor, which exposes the same modifiers for the same (last) column,
    such that modifiers can be chained.
    """

    schema: "SchemaBuilder"
    column: ColumnDefinition

    def __init__(self, schema: "SchemaBuilder", column: ColumnDefinition) -> None:
        self.schema = schema
        self.column = column

    def nullable(self, flag: bool = True) -> "SchemaBuilder":
        self.column.nullable = flag
        return self.schema

    def unique(self, flag: bool = True) -> "SchemaBuilder":
        self.column.unique = flag
        return self.schema

    def primary(self) -> "SchemaBuilder":
        "Makes the column (part of) the primary key."

        self.column.primary_key = True
        if self.column.quoted_name not in self.schema.primary_keys:
            self.schema.primary_keys.append(self.column.quoted_name)
        return self.schema

    def default_value(self, value: Any) -> "SchemaBuilder":
        "Sets the default value. A string is taken as a raw SQL expression; other values are rendered as constants."

        self.column.default_value = value if isinstance(value, str) else constant(value)
        return self.schema

    def default_current_timestamp(self) -> "SchemaBuilder":
        self.column.default_value = CURRENT_TIMESTAMP
        return self.schema

    def foreign_key(
        self,
        reference_table: str,
        reference_column: Optional[str] = None,
        on_cascade: bool = True,
    ) -> "SchemaBuilder":
        """
        Adds a foreign key constraint on the column.

        :param reference_table: The table the column references.
        :param reference_column: The referenced column, defaults to the name of this column.
        :param on_cascade: Whether to delete rows of this table when the referenced row is deleted.
        """

        if not reference_table:
            raise FormationError(
                f"no reference table given for foreign key on column: {self.column.name}"
            )

        reference = reference_column or self.column.name
        constraint = (
            f"FOREIGN KEY ({self.column.quoted_name})"
            f" REFERENCES {quoted_table(reference_table)}({LocalId(reference)})"
        )
        if on_cascade:
            constraint += " ON DELETE CASCADE"
        self.schema.foreign_keys.append(constraint)
        return self.schema


class SchemaBuilder:
    """
    A schema descriptor: the table, kind and parts of a single statement.

    Create instances with the factory class methods, e.g. `SchemaBuilder.create`, `SchemaBuilder.insert` or
    `SchemaBuilder.select`. A definition passed to a factory method is either a callable that receives the new
    descriptor, or a data-class type (for table definitions) or instance (for data statements).
    """

    table_name: str
    schema_type: SchemaType
    migration: Optional["Migration"]
    columns: list[ColumnDefinition]
    primary_keys: list[str]
    foreign_keys: list[str]
    where_conditions: list[WhereCondition]
    join_conditions: list[JoinCondition]
    select_conditions: list[SelectCondition]
    new_table_name: Optional[str]
    order_by_clause: Optional[str]
    is_distinct: bool

    def __init__(
        self,
        table_name: str,
        schema_type: SchemaType,
        migration: Optional["Migration"] = None,
    ) -> None:
        self.table_name = table_name
        self.schema_type = schema_type
        self.migration = migration
        self.columns = []
        self.primary_keys = []
        self.foreign_keys = []
        self.where_conditions = []
        self.join_conditions = []
        self.select_conditions = []
        self.new_table_name = None
        self.order_by_clause = None
        self.is_distinct = False

    def __repr__(self) -> str:
        return f"SchemaBuilder({self.schema_type.value}, {self.table_name!r}, columns={[c.name for c in self.columns]})"

    def apply(self, definition: Definition) -> "SchemaBuilder":
        "Populates the descriptor from a callable, a data-class type or a data-class instance."

        if definition is None:
            return self
        elif is_dataclass_type(definition):
            dataclass_to_schema(self, definition)
        elif is_dataclass_instance(definition):
            dataclass_to_schema(self, type(definition), definition)
        elif callable(definition):
            definition(self)
        else:
            raise FormationError(
                f"expected: callable, data-class type or data-class instance; got: {definition!r}"
            )
        return self

    # factories

    @classmethod
    def create(
        cls,
        table_name: str,
        definition: Definition = None,
        *,
        migration: Optional["Migration"] = None,
    ) -> "SchemaBuilder":
        return cls(table_name, SchemaType.CREATE, migration).apply(definition)

    @classmethod
    def alter(
        cls,
        table_name: str,
        definition: Definition = None,
        *,
        migration: Optional["Migration"] = None,
    ) -> "SchemaBuilder":
        return cls(table_name, SchemaType.ALTER, migration).apply(definition)

    @classmethod
    def modify(
        cls,
        table_name: str,
        definition: Definition = None,
        *,
        migration: Optional["Migration"] = None,
    ) -> "SchemaBuilder":
        return cls(table_name, SchemaType.MODIFY, migration).apply(definition)

    @classmethod
    def rename(
        cls,
        table_name: str,
        new_table_name: str,
        *,
        migration: Optional["Migration"] = None,
    ) -> "SchemaBuilder":
        schema = cls(table_name, SchemaType.RENAME, migration)
        schema.new_table_name = new_table_name
        return schema

    @classmethod
    def drop(
        cls, table_name: str, *, migration: Optional["Migration"] = None
    ) -> "SchemaBuilder":
        return cls(table_name, SchemaType.DROP, migration)

    @classmethod
    def create_index(
        cls,
        table_name: str,
        column_name: str,
        *,
        migration: Optional["Migration"] = None,
    ) -> "SchemaBuilder":
        schema = cls(table_name, SchemaType.CREATE_INDEX, migration)
        schema.columns.append(ColumnDefinition(column_name))
        return schema

    @classmethod
    def insert(cls, table_name: str, definition: Definition = None) -> "SchemaBuilder":
        return cls(table_name, SchemaType.INSERT).apply(definition)

    @classmethod
    def update(cls, table_name: str, definition: Definition = None) -> "SchemaBuilder":
        return cls(table_name, SchemaType.UPDATE).apply(definition)

    @classmethod
    def upsert(cls, table_name: str, definition: Definition = None) -> "SchemaBuilder":
        return cls(table_name, SchemaType.UPSERT).apply(definition)

    @classmethod
    def delete(cls, table_name: str, definition: Definition = None) -> "SchemaBuilder":
        return cls(table_name, SchemaType.DELETE).apply(definition)

    @classmethod
    def select(cls, table_name: str, definition: Definition = None) -> "SchemaBuilder":
        return cls(table_name, SchemaType.SELECT).apply(definition)

    @classmethod
    def select_count(
        cls, table_name: str, definition: Definition = None
    ) -> "SchemaBuilder":
        return cls(table_name, SchemaType.SELECT_COUNT).apply(definition)

    # columns

    def add_column(self, column: ColumnDefinition) -> ColumnBuilder:
        self.columns.append(column)
        return ColumnBuilder(self, column)

    def uuid(self, name: str, value: Optional[UUID] = None) -> ColumnBuilder:
        return self.add_column(
            ColumnDefinition(
                name,
                SqlVariableCharacterType(36),
                value=str(value) if value is not None else None,
            )
        )

    def string(
        self, name: str, length: Optional[int] = None, *, value: Optional[str] = None
    ) -> ColumnBuilder:
        return self.add_column(
            ColumnDefinition(
                name, SqlVariableCharacterType(length or 255), value=value
            )
        )

    def text(self, name: str, value: Optional[str] = None) -> ColumnBuilder:
        return self.add_column(ColumnDefinition(name, SqlTextType(), value=value))

    def long_text(self, name: str, value: Optional[str] = None) -> ColumnBuilder:
        return self.add_column(
            ColumnDefinition(name, SqlTextType(long=True), value=value)
        )

    def decimal(
        self,
        name: str,
        precision: int = 65,
        scale: int = 30,
        *,
        value: Union[Decimal, float, None] = None,
    ) -> ColumnBuilder:
        return self.add_column(
            ColumnDefinition(name, SqlDecimalType(precision, scale), value=value)
        )

    def integer(self, name: str, value: Optional[int] = None) -> ColumnBuilder:
        return self.add_column(ColumnDefinition(name, SqlIntegerType(4), value=value))

    def big_int(self, name: str, value: Optional[int] = None) -> ColumnBuilder:
        return self.add_column(ColumnDefinition(name, SqlIntegerType(8), value=value))

    def boolean(self, name: str, value: Optional[bool] = None) -> ColumnBuilder:
        return self.add_column(ColumnDefinition(name, SqlBooleanType(), value=value))

    def json(self, name: str, value: Any = None) -> ColumnBuilder:
        "A JSON column. A `dict` or `list` value is serialized when bound."

        return self.add_column(ColumnDefinition(name, SqlJsonType(), value=value))

    def blob(self, name: str, value: Any = None) -> ColumnBuilder:
        "A binary column. Values other than `bytes` are written with the allow-listed object serializer."

        if value is not None and not isinstance(value, (bytes, bytearray)):
            value = serialize_object(value)
        return self.add_column(
            ColumnDefinition(name, SqlVariableBinaryType(), value=value)
        )

    def timestamp(self, name: str, value: Optional[datetime] = None) -> ColumnBuilder:
        return self.add_column(ColumnDefinition(name, SqlTimestampType(), value=value))

    def date(self, name: str, value: Optional[date] = None) -> ColumnBuilder:
        return self.add_column(ColumnDefinition(name, SqlDateType(), value=value))

    def object(self, name: str, value: Any) -> ColumnBuilder:
        "A column that carries a value but no declared type, e.g. in an `UPDATE`."

        return self.add_column(ColumnDefinition(name, value=value))

    def auto_increment(self, name: str) -> ColumnBuilder:
        "An auto-increment integer primary key."

        return self._auto_increment(name, SqlIntegerType(4))

    def auto_increment_big_int(self, name: str) -> ColumnBuilder:
        "An auto-increment big integer primary key."

        return self._auto_increment(name, SqlIntegerType(8))

    def _auto_increment(self, name: str, data_type: SqlIntegerType) -> ColumnBuilder:
        builder = self.add_column(
            ColumnDefinition(name, data_type, auto_increment=True)
        )
        builder.primary()
        return builder

    def created_at(self) -> ColumnBuilder:
        "A `created_at` timestamp set on insert."

        return self.add_column(
            ColumnDefinition(
                "created_at", SqlTimestampType(), default_value=CURRENT_TIMESTAMP
            )
        )

    def updated_at(self) -> ColumnBuilder:
        "An `updated_at` timestamp set on insert, and on update where the dialect supports `ON UPDATE`."

        return self.add_column(
            ColumnDefinition(
                "updated_at",
                SqlTimestampType(),
                default_value=CURRENT_TIMESTAMP,
                on_update=CURRENT_TIMESTAMP,
            )
        )

    def timestamps(self) -> "SchemaBuilder":
        self.created_at()
        self.updated_at()
        return self

    # modifiers of the last column

    def _last_column(self) -> ColumnBuilder:
        if not self.columns:
            raise FormationError(
                f"no column has been declared yet to modify in table: {self.table_name}"
            )
        return ColumnBuilder(self, self.columns[-1])

    def nullable(self, flag: bool = True) -> "SchemaBuilder":
        return self._last_column().nullable(flag)

    def unique(self, flag: bool = True) -> "SchemaBuilder":
        return self._last_column().unique(flag)

    def primary(self) -> "SchemaBuilder":
        return self._last_column().primary()

    def default_value(self, value: Any) -> "SchemaBuilder":
        return self._last_column().default_value(value)

    def default_current_timestamp(self) -> "SchemaBuilder":
        return self._last_column().default_current_timestamp()

    def foreign_key(
        self,
        reference_table: str,
        reference_column: Optional[str] = None,
        on_cascade: bool = True,
    ) -> "SchemaBuilder":
        return self._last_column().foreign_key(
            reference_table, reference_column, on_cascade
        )

    # predicates

    @overload
    def where(
        self, column: str, value: Any, *, prefix: Optional[str] = None
    ) -> "SchemaBuilder": ...

    @overload
    def where(
        self, column: str, operator: str, value: Any, *, prefix: Optional[str] = None
    ) -> "SchemaBuilder": ...

    def where(
        self, column: str, *args: Any, prefix: Optional[str] = None
    ) -> "SchemaBuilder":
        """
        Adds a comparison predicate, `column = value` or `column <operator> value`.

        :param column: Column name, optionally qualified as `table.column`.
        :param prefix: Table name or alias to qualify the column with.
        """

        if len(args) == 1:
            operator, value = "=", args[0]
        elif len(args) == 2:
            operator, value = args
        else:
            raise TypeError(f"expected: value or operator and value; got: {args}")

        prefix, column = _split_column(column, prefix)
        self.where_conditions.append(
            WhereCondition(
                column, WhereAction.COMPARE, operator=operator, value=value, prefix=prefix
            )
        )
        return self

    def where_in(
        self, column: str, *values: Any, prefix: Optional[str] = None
    ) -> "SchemaBuilder":
        "Adds a predicate `column IN (...)`. Values may be given as arguments or as a single list."

        if len(values) == 1 and isinstance(values[0], (list, tuple, set, frozenset)):
            values = tuple(values[0])
        prefix, column = _split_column(column, prefix)
        self.where_conditions.append(
            WhereCondition(
                column,
                WhereAction.IN,
                values=[v.name if isinstance(v, enum.Enum) else str(v) for v in values],
                prefix=prefix,
            )
        )
        return self

    def where_null(self, column: str, *, prefix: Optional[str] = None) -> "SchemaBuilder":
        prefix, column = _split_column(column, prefix)
        self.where_conditions.append(
            WhereCondition(column, WhereAction.IS_NULL, prefix=prefix)
        )
        return self

    def where_not_null(
        self, column: str, *, prefix: Optional[str] = None
    ) -> "SchemaBuilder":
        prefix, column = _split_column(column, prefix)
        self.where_conditions.append(
            WhereCondition(column, WhereAction.IS_NOT_NULL, prefix=prefix)
        )
        return self

    # joins

    def _join(
        self,
        join_type: JoinType,
        primary_table: str,
        primary_alias: str,
        primary_column: str,
        foreign_table: str,
        foreign_column: str,
        and_condition: Optional[LiteralCondition],
    ) -> "SchemaBuilder":
        self.join_conditions.append(
            JoinCondition(
                join_type,
                primary_table,
                primary_alias,
                primary_column,
                foreign_table,
                foreign_column,
                and_condition,
            )
        )
        return self

    def left_join(
        self,
        primary_table: str,
        primary_alias: str,
        primary_column: str,
        foreign_table: str,
        foreign_column: str,
        and_condition: Optional[LiteralCondition] = None,
    ) -> "SchemaBuilder":
        return self._join(
            JoinType.LEFT,
            primary_table,
            primary_alias,
            primary_column,
            foreign_table,
            foreign_column,
            and_condition,
        )

    def right_join(
        self,
        primary_table: str,
        primary_alias: str,
        primary_column: str,
        foreign_table: str,
        foreign_column: str,
        and_condition: Optional[LiteralCondition] = None,
    ) -> "SchemaBuilder":
        return self._join(
            JoinType.RIGHT,
            primary_table,
            primary_alias,
            primary_column,
            foreign_table,
            foreign_column,
            and_condition,
        )

    def inner_join(
        self,
        primary_table: str,
        primary_alias: str,
        primary_column: str,
        foreign_table: str,
        foreign_column: str,
        and_condition: Optional[LiteralCondition] = None,
    ) -> "SchemaBuilder":
        return self._join(
            JoinType.INNER,
            primary_table,
            primary_alias,
            primary_column,
            foreign_table,
            foreign_column,
            and_condition,
        )

    def full_join(
        self,
        primary_table: str,
        primary_alias: str,
        primary_column: str,
        foreign_table: str,
        foreign_column: str,
        and_condition: Optional[LiteralCondition] = None,
    ) -> "SchemaBuilder":
        return self._join(
            JoinType.FULL,
            primary_table,
            primary_alias,
            primary_column,
            foreign_table,
            foreign_column,
            and_condition,
        )

    # projection and ordering

    def add_select(
        self,
        column: str,
        alias: Optional[str] = None,
        *,
        prefix: Optional[str] = None,
        default: Any = _NO_DEFAULT,
    ) -> "SchemaBuilder":
        """
        Adds a column to the projection list.

        :param column: Column name, optionally qualified as `table.column`.
        :param alias: Label of the column in the result-set.
        :param prefix: Table name or alias to qualify the column with.
        :param default: If given, the column is wrapped as `COALESCE(column, default)`.
        """

        prefix, column = _split_column(column, prefix)
        self.select_conditions.append(
            SelectCondition(
                column,
                prefix,
                alias,
                default is not _NO_DEFAULT,
                None if default is _NO_DEFAULT else default,
            )
        )
        return self

    def order_by(self, column: str) -> "SchemaBuilder":
        prefix, column = _split_column(column, None)
        self.order_by_clause = f"ORDER BY {column_ref(column, prefix)}"
        return self

    def order_by_desc(self, column: str) -> "SchemaBuilder":
        prefix, column = _split_column(column, None)
        self.order_by_clause = f"ORDER BY {column_ref(column, prefix)} DESC"
        return self

    def distinct(self) -> "SchemaBuilder":
        self.is_distinct = True
        return self

    # compilation and execution

    def get_executor(self) -> Executor:
        return _EXECUTORS[self.schema_type](self)

    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        "Renders the statements this descriptor compiles into, without executing them."

        return self.get_executor().get_statements(generator)

    def execute(self, connection: BaseConnection) -> int:
        """
        Executes a statement that does not return rows.

        :returns: The generated key for an insert (if any), otherwise the number of affected rows.
        """

        if self.schema_type in (SchemaType.SELECT, SchemaType.SELECT_COUNT):
            raise FormationError(
                f"wrong method for {self.schema_type.value}; use `execute_select` or `execute_select_count`"
            )
        return self.get_executor().execute(connection)

    @overload
    def execute_select(
        self, connection: BaseConnection
    ) -> list[dict[str, Any]]: ...

    @overload
    def execute_select(
        self,
        connection: BaseConnection,
        signature: type[D],
        *,
        deserializer: Optional[SecureDeserializer] = None,
    ) -> list[D]: ...

    def execute_select(
        self,
        connection: BaseConnection,
        signature: Optional[type[D]] = None,
        *,
        deserializer: Optional[SecureDeserializer] = None,
    ) -> Union[list[dict[str, Any]], list[D]]:
        """
        Executes a query, returning rows as dictionaries, or as data-class instances if a signature is given.

        :param signature: Data-class type to reconstruct each row as.
        :param deserializer: Allow-list for binary columns that hold serialized objects.
        """

        if self.schema_type is not SchemaType.SELECT:
            raise FormationError(f"wrong method for {self.schema_type.value}")

        rows = typing.cast(SelectRequest, self.get_executor()).query(connection)
        if signature is None:
            return rows
        return dataclass_from_rows(signature, rows, deserializer)

    def execute_select_count(self, connection: BaseConnection) -> int:
        if self.schema_type is not SchemaType.SELECT_COUNT:
            raise FormationError(f"wrong method for {self.schema_type.value}")

        return typing.cast(SelectCountRequest, self.get_executor()).query(connection)


def _split_column(column: str, prefix: Optional[str]) -> tuple[Optional[str], str]:
    "Splits a qualified column name `table.column` unless an explicit prefix is given."

    if prefix is None and "." in column:
        prefix, column = column.rsplit(".", 1)
    return prefix, column
