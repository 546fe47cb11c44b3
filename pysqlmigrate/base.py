"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module declares the base classes that each dialect specializes: the generator (which renders the SQL
fragments that differ between engines), the connection, the explorer (schema introspection) and the engine
(a factory of the former).
"""

import abc
import enum
import json
import logging
import types
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from .connection import ConnectionParameters, DatabaseConfiguration
from .exceptions import DatabaseError, FormationError, QueryException
from .model.conditions import ColumnDefinition
from .model.id_types import LocalId, quoted_table

if TYPE_CHECKING:
    from .schema import SchemaBuilder
    from .transaction import Transaction

T = TypeVar("T")

LOGGER = logging.getLogger("pysqlmigrate")

_JSON_ENCODER = json.JSONEncoder(
    ensure_ascii=False,
    check_circular=False,
    allow_nan=False,
    separators=(",", ":"),
)


@dataclass
class Statement:
    "A SQL statement with positional parameters bound to its placeholders."

    sql: str
    params: list[Any] = field(default_factory=list)


@dataclass
class CursorResult:
    "Outcome of executing a statement."

    rowcount: int
    lastrowid: Optional[int] = None


class BaseGenerator(abc.ABC):
    """
    Renders the SQL fragments that differ between database dialects.

    Dialect-neutral statement shapes are assembled by executors; executors call into the generator for
    placeholders, column specifications, additive `ALTER` statements and the upsert clause.
    """

    max_parameters: int = 65535
    "Maximum number of bound parameters a single statement may carry."

    @property
    @abc.abstractmethod
    def placeholder(self) -> str:
        "Parameter placeholder in the paramstyle of the database driver."
        ...

    def placeholders(self, count: int) -> str:
        return ", ".join(self.placeholder for _ in range(count))

    def get_data_type_spec(self, column: ColumnDefinition) -> str:
        if column.data_type is None:
            raise FormationError(f"no data type declared for column: {column.name}")
        return str(column.data_type)

    def is_inline_primary_key(self, column: ColumnDefinition) -> bool:
        "True if the column declares the primary key inline, suppressing a separate `PRIMARY KEY` clause."

        return False

    def get_column_spec(self, column: ColumnDefinition) -> str:
        spec = f"{column.quoted_name} {self.get_data_type_spec(column)}"
        if column.auto_increment and column.primary_key:
            spec += " AUTO_INCREMENT"
        spec += " NULL" if column.nullable else " NOT NULL"
        if column.default_value is not None:
            spec += f" DEFAULT {column.default_value}"
        if column.on_update is not None:
            spec += f" ON UPDATE {column.on_update}"
        if column.unique:
            spec += " UNIQUE"
        return spec

    def get_create_table_stmt(
        self,
        table: str,
        columns: list[ColumnDefinition],
        primary_keys: list[str],
        foreign_keys: list[str],
    ) -> str:
        defs = [self.get_column_spec(column) for column in columns]
        if primary_keys and not any(
            self.is_inline_primary_key(column) for column in columns
        ):
            defs.append(f"PRIMARY KEY ({', '.join(primary_keys)})")
        defs.extend(foreign_keys)
        return f"CREATE TABLE IF NOT EXISTS {quoted_table(table)} ({', '.join(defs)})"

    def get_alter_table_stmts(
        self, table: str, columns: list[ColumnDefinition]
    ) -> list[str]:
        "Statements that add columns to an existing table."

        clauses = ", ".join(
            f"ADD COLUMN {self.get_column_spec(column)}" for column in columns
        )
        return [f"ALTER TABLE {quoted_table(table)} {clauses}"]

    def get_modify_table_stmts(
        self, table: str, columns: list[ColumnDefinition]
    ) -> list[str]:
        "Statements that change the definition of existing columns."

        clauses = ", ".join(
            f"MODIFY COLUMN {self.get_column_spec(column)}" for column in columns
        )
        return [f"ALTER TABLE {quoted_table(table)} {clauses}"]

    def get_rename_table_stmt(self, table: str, new_table: str) -> str:
        return f"ALTER TABLE {quoted_table(table)} RENAME TO {quoted_table(new_table)}"

    def get_drop_table_stmt(self, table: str) -> str:
        return f"DROP TABLE {quoted_table(table)}"

    def get_create_index_stmt(self, table: str, column: str) -> str:
        index = LocalId(f"idx_{table}_{column}")
        return f"CREATE INDEX {index} ON {quoted_table(table)} ({LocalId(column)})"

    @abc.abstractmethod
    def get_upsert_clause(
        self, primary_keys: list[str], columns: list[ColumnDefinition]
    ) -> str:
        """
        Conflict-handling clause appended to an `INSERT` statement.

        :param primary_keys: Quoted names of the columns that identify a row.
        :param columns: Columns in the insert column list, each of which is overwritten on conflict.
        """
        ...

    def adapt_value(self, value: Any) -> Any:
        "Converts a Python value into a value the database driver accepts as a parameter."

        if isinstance(value, uuid.UUID):
            return str(value)
        elif isinstance(value, enum.Enum):
            return value.name
        elif isinstance(value, (dict, list)):
            return _JSON_ENCODER.encode(value)
        else:
            return value

    def adapt_values(self, values: Iterable[Any]) -> list[Any]:
        return [self.adapt_value(value) for value in values]


class BaseConnection(abc.ABC):
    """
    A connection to a database that wraps a single live driver connection.

    The driver connection is opened lazily, and re-opened if it has been closed.
    """

    generator: BaseGenerator
    configuration: DatabaseConfiguration
    _native: Any

    def __init__(
        self, generator: BaseGenerator, configuration: DatabaseConfiguration
    ) -> None:
        self.generator = generator
        self.configuration = configuration
        self._native = None

    @property
    def params(self) -> ConnectionParameters:
        return self.configuration.params

    def __enter__(self) -> "BaseConnection":
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> None:
        self.close()

    def connect(self) -> None:
        "Opens the driver connection if not already open."

        if self._native is None:
            self._native = self._connect()

    @abc.abstractmethod
    def _connect(self) -> Any:
        "Opens a new driver connection."
        ...

    def get_native(self) -> Any:
        "Returns the live driver connection, opening one if necessary."

        self.connect()
        return self._native

    def is_valid(self) -> bool:
        "True if the connection is open and responds to a trivial query."

        if self._native is None:
            return False
        try:
            self._ping(self._native)
        except Exception:
            LOGGER.debug("connection is no longer valid", exc_info=True)
            return False
        return True

    def _ping(self, native: Any) -> None:
        cur = native.cursor()
        try:
            cur.execute("SELECT 1")
            cur.fetchall()
        finally:
            cur.close()

    def close(self) -> None:
        if self._native is not None:
            self._native.close()
            self._native = None

    def begin_transaction(self) -> "Transaction":
        "Starts a transaction on the live connection; use the returned object as a context manager."

        from .transaction import Transaction

        return Transaction(self)

    def _begin(self) -> None:
        "Starts a transaction, suspending auto-commit."

        self.get_native().begin()

    def _commit(self) -> None:
        self.get_native().commit()

    def _rollback(self) -> None:
        self.get_native().rollback()

    def _end(self) -> None:
        "Restores auto-commit after a transaction."

    def _log_statement(self, statement: str, params: Sequence[Any]) -> None:
        if self.configuration.debug:
            LOGGER.info("Executing SQL: %s %s", statement, list(params))
        else:
            LOGGER.debug("execute SQL:\n%s", statement)

    def _prepare(self, statement: str) -> str:
        if not statement:
            raise ValueError("empty statement")
        if not statement.strip():
            raise ValueError("blank statement")
        return self.configuration.replace_prefix(statement)

    def execute(self, statement: str, params: Sequence[Any] = ()) -> CursorResult:
        "Executes a SQL statement with parameters bound to its placeholders."

        statement = self._prepare(statement)
        values = self.generator.adapt_values(params)
        self._log_statement(statement, values)
        try:
            cur = self.get_native().cursor()
            try:
                if values:
                    cur.execute(statement, values)
                else:
                    cur.execute(statement)
                return CursorResult(cur.rowcount, cur.lastrowid)
            finally:
                cur.close()
        except QueryException:
            raise
        except Exception as e:
            raise QueryException(statement) from e

    def execute_all(self, statement: str, rows: Sequence[Sequence[Any]]) -> int:
        "Executes a SQL statement once for each row of parameters, returning the total number of affected rows."

        statement = self._prepare(statement)
        records = [self.generator.adapt_values(row) for row in rows]
        if not records:
            LOGGER.warning("no data to execute with")
            return 0
        if self.configuration.debug:
            LOGGER.info("Executing SQL: %s with %d rows", statement, len(records))
        else:
            LOGGER.debug("execute SQL with %d rows:\n%s", len(records), statement)
        try:
            cur = self.get_native().cursor()
            try:
                cur.executemany(statement, records)
                return max(cur.rowcount, 0)
            finally:
                cur.close()
        except QueryException:
            raise
        except Exception as e:
            raise QueryException(statement) from e

    def query_all(
        self, statement: str, params: Sequence[Any] = ()
    ) -> list[dict[str, Any]]:
        "Runs a query, returning each row as a dictionary keyed by column label."

        statement = self._prepare(statement)
        values = self.generator.adapt_values(params)
        self._log_statement(statement, values)
        try:
            cur = self.get_native().cursor()
            try:
                if values:
                    cur.execute(statement, values)
                else:
                    cur.execute(statement)
                names = [desc[0] for desc in cur.description or []]
                return [dict(zip(names, record)) for record in cur.fetchall()]
            finally:
                cur.close()
        except QueryException:
            raise
        except Exception as e:
            raise QueryException(statement) from e

    def query_one(
        self, signature: type[T], statement: str, params: Sequence[Any] = ()
    ) -> T:
        "Runs a query that returns a single row with a single column."

        rows = self.query_all(statement, params)
        if len(rows) != 1:
            raise ValueError(f"expected: a single row; got: {len(rows)} rows")
        (value,) = rows[0].values()
        return signature(value)  # type: ignore[call-arg]


class Explorer(abc.ABC):
    "Inspects the structure of live database objects."

    connection: BaseConnection

    def __init__(self, connection: BaseConnection) -> None:
        self.connection = connection

    @abc.abstractmethod
    def get_missing_columns(
        self, table: str, columns: list[ColumnDefinition]
    ) -> list[ColumnDefinition]:
        """
        Returns the columns (in declaration order) that do not exist in a live table.

        :param table: Table name, with the prefix token already substituted.
        :param columns: Declared columns.
        """
        ...


class BaseEngine(abc.ABC):
    "Represents a specific database server type."

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @abc.abstractmethod
    def get_generator_type(self) -> type[BaseGenerator]: ...

    @abc.abstractmethod
    def get_connection_type(self) -> type[BaseConnection]: ...

    @abc.abstractmethod
    def get_explorer_type(self) -> type[Explorer]: ...

    def create_generator(self) -> BaseGenerator:
        "Instantiates a generator that renders dialect-specific SQL fragments."

        generator_type = self.get_generator_type()
        return generator_type()

    def create_connection(self, configuration: DatabaseConfiguration) -> BaseConnection:
        "Opens a connection to a database server."

        connection_type = self.get_connection_type()
        return connection_type(self.create_generator(), configuration)

    def create_explorer(self, connection: BaseConnection) -> Explorer:
        "Instantiates an explorer that inspects live tables through a connection."

        explorer_type = self.get_explorer_type()
        return explorer_type(connection)


class Executor(abc.ABC):
    "Compiles a schema descriptor into one or more statements and runs them."

    operation: str
    schema: "SchemaBuilder"

    def __init__(self, schema: "SchemaBuilder") -> None:
        self.schema = schema

    @abc.abstractmethod
    def get_statements(self, generator: BaseGenerator) -> list[Statement]:
        "Renders the statements that carry out the operation, without executing them."
        ...

    def get_result(self, result: CursorResult) -> int:
        "Maps the outcome of a single statement to the integer returned by `execute`."

        return max(result.rowcount, 0)

    def execute(self, connection: BaseConnection) -> int:
        statements = self.get_statements(connection.generator)
        try:
            total = 0
            for statement in statements:
                total += self.get_result(
                    connection.execute(statement.sql, statement.params)
                )
            return total
        except QueryException as e:
            raise self.error(connection) from e

    def error(self, connection: BaseConnection) -> DatabaseError:
        table = connection.configuration.replace_prefix(self.schema.table_name)
        LOGGER.error("database operation '%s' failed on table '%s'", self.operation, table)
        return DatabaseError(self.operation, table)
