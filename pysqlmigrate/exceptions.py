"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module defines the exceptions raised by the library.
"""

from typing import Optional


class FormationError(RuntimeError):
    "Raised when a schema descriptor cannot be built or compiled into a statement."


class MappingError(RuntimeError):
    "Raised when a data-class cannot be mapped to columns, or a column value cannot be mapped to a field."


class DiscoveryError(RuntimeError):
    "Raised when the structure of a live database object cannot be inspected."


class TransactionError(RuntimeError):
    "Raised when a transaction scope is used out of order."


class SecurityError(RuntimeError):
    "Raised when serialized data references a class that is not permitted."


class QueryException(RuntimeError):
    "Raised when the database driver fails to execute a statement."

    query: str

    def __init__(self, query: str) -> None:
        super().__init__()
        self.query = query

    def __str__(self) -> str:
        query = f"{self.query[:1000]}..." if len(self.query) > 1000 else self.query
        return f"error executing query:\n{query}"


class DatabaseError(RuntimeError):
    """
    Raised when a database operation fails.

    The originating driver-level exception is available as `__cause__` (and as `cause`).

    :param operation: The kind of operation that failed, e.g. `insert` or `create`.
    :param table: The table the operation targeted.
    """

    operation: str
    table: str

    def __init__(self, operation: str, table: str) -> None:
        super().__init__()
        self.operation = operation
        self.table = table

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    def __str__(self) -> str:
        message = f"database operation '{self.operation}' failed on table '{self.table}'"
        if self.__cause__ is not None:
            return f"{message}: {self.__cause__}"
        else:
            return message
