import logging
import ssl
from typing import Any, Optional

import pymysql

from pysqlmigrate.base import BaseConnection
from pysqlmigrate.connection import ConnectionSSLMode, create_context
from pysqlmigrate.util.typing import override

LOGGER = logging.getLogger("pysqlmigrate.mysql")


class MySQLConnection(BaseConnection):
    "A connection to MySQL with PyMySQL, in auto-commit mode unless a transaction is in progress."

    @override
    def _connect(self) -> Any:
        LOGGER.info("connecting to %s (with pymysql)", self.params)

        ssl_mode = self.params.ssl
        if ssl_mode is None or ssl_mode is ConnectionSSLMode.disable:
            return self._open()
        elif ssl_mode is ConnectionSSLMode.prefer:
            try:
                return self._open(create_context(ssl_mode))
            except pymysql.err.OperationalError:
                return self._open()
        elif ssl_mode is ConnectionSSLMode.allow:
            try:
                return self._open()
            except pymysql.err.OperationalError:
                return self._open(create_context(ssl_mode))
        elif (
            ssl_mode is ConnectionSSLMode.require
            or ssl_mode is ConnectionSSLMode.verify_ca
            or ssl_mode is ConnectionSSLMode.verify_full
        ):
            return self._open(create_context(ssl_mode))
        else:
            raise ValueError(f"unsupported SSL mode: {ssl_mode}")

    def _open(self, ctx: Optional[ssl.SSLContext] = None) -> pymysql.connections.Connection:
        sql_mode = ",".join(
            [
                "NO_AUTO_VALUE_ON_ZERO",
                "STRICT_ALL_TABLES",
            ]
        )
        return pymysql.connect(
            host=self.params.host or "localhost",
            port=self.params.port or 3306,
            user=self.params.username,
            password=self.params.password or "",
            database=self.params.database,
            sql_mode=sql_mode,
            init_command='SET @@session.time_zone = "+00:00";',
            autocommit=True,
            ssl=ctx,
        )

    @override
    def _ping(self, native: Any) -> None:
        native.ping(reconnect=False)

    @override
    def _begin(self) -> None:
        native = self.get_native()
        native.autocommit(False)
        native.begin()

    @override
    def _end(self) -> None:
        self.get_native().autocommit(True)
