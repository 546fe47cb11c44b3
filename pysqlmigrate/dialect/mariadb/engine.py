from pysqlmigrate.base import BaseConnection, BaseEngine, BaseGenerator, Explorer

from ..mysql.discovery import MySQLExplorer
from .connection import MariaDBConnection
from .generator import MariaDBGenerator


class MariaDBEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "mariadb"

    def get_generator_type(self) -> type[BaseGenerator]:
        return MariaDBGenerator

    def get_connection_type(self) -> type[BaseConnection]:
        return MariaDBConnection

    def get_explorer_type(self) -> type[Explorer]:
        return MySQLExplorer
