"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module provides a scope that groups statements into a single transaction.
"""

import logging
import types
from typing import TYPE_CHECKING, Optional

from .exceptions import DatabaseError, TransactionError

if TYPE_CHECKING:
    from .base import BaseConnection

LOGGER = logging.getLogger("pysqlmigrate")


class Transaction:
    """
    A transaction on the live connection of a connection object.

    Use as a context manager. Statements executed through the connection inside the scope are part of the
    transaction. Call `commit` or `rollback` explicitly; leaving the scope without either rolls back. Auto-commit
    is restored on exit.
    """

    connection: "BaseConnection"
    committed: bool
    rolled_back: bool

    def __init__(self, connection: "BaseConnection") -> None:
        self.connection = connection
        self.committed = False
        self.rolled_back = False

    def __enter__(self) -> "Transaction":
        try:
            self.connection._begin()
        except Exception as e:
            raise DatabaseError("begin-transaction", "") from e
        LOGGER.debug("transaction started")
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> None:
        try:
            if not self.committed and not self.rolled_back:
                LOGGER.debug("rolling back transaction left open")
                self.connection._rollback()
                self.rolled_back = True
            self.connection._end()
        except Exception as e:
            raise DatabaseError("close-transaction", "") from e

    def _check_open(self) -> None:
        if self.committed:
            raise TransactionError("transaction already committed")
        if self.rolled_back:
            raise TransactionError("transaction already rolled back")

    def commit(self) -> None:
        "Makes all changes in the transaction permanent."

        self._check_open()
        try:
            self.connection._commit()
        except Exception as e:
            raise DatabaseError("commit", "") from e
        self.committed = True

    def rollback(self) -> None:
        "Discards all changes in the transaction."

        self._check_open()
        try:
            self.connection._rollback()
        except Exception as e:
            raise DatabaseError("rollback", "") from e
        self.rolled_back = True
