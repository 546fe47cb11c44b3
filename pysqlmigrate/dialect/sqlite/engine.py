from pysqlmigrate.base import BaseConnection, BaseEngine, BaseGenerator, Explorer

from .connection import SQLiteConnection
from .discovery import SQLiteExplorer
from .generator import SQLiteGenerator


class SQLiteEngine(BaseEngine):
    @property
    def name(self) -> str:
        return "sqlite"

    def get_generator_type(self) -> type[BaseGenerator]:
        return SQLiteGenerator

    def get_connection_type(self) -> type[BaseConnection]:
        return SQLiteConnection

    def get_explorer_type(self) -> type[Explorer]:
        return SQLiteExplorer
