import logging
from typing import Any

from pysqlmigrate.util.typing import override

from ..mysql.connection import MySQLConnection

LOGGER = logging.getLogger("pysqlmigrate.mariadb")


class MariaDBConnection(MySQLConnection):
    "A connection to MariaDB over the MySQL wire protocol."

    @override
    def _connect(self) -> Any:
        LOGGER.debug("connecting to MariaDB server at %s", self.params)
        return super()._connect()
