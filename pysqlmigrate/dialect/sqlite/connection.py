import logging
import os
import os.path
import sqlite3
from typing import Any

from pysqlmigrate.base import BaseConnection
from pysqlmigrate.util.typing import override

LOGGER = logging.getLogger("pysqlmigrate.sqlite")

DEFAULT_DATABASE = "database.db"


class SQLiteConnection(BaseConnection):
    """
    A connection to an SQLite database file.

    The driver connection runs in auto-commit mode; transactions are started explicitly with `BEGIN`.
    Parent directories of the database file are created if they do not exist.
    """

    @override
    def _connect(self) -> Any:
        path = self.params.database or DEFAULT_DATABASE
        if path != ":memory:":
            folder = os.path.dirname(os.path.abspath(path))
            os.makedirs(folder, exist_ok=True)

        LOGGER.info("connecting to %s (with sqlite3)", path)
        native = sqlite3.connect(path, isolation_level=None)
        native.execute("PRAGMA foreign_keys = ON")
        return native

    @override
    def _begin(self) -> None:
        self.get_native().execute("BEGIN")
