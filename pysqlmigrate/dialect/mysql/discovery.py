import logging

from pysqlmigrate.base import Explorer
from pysqlmigrate.exceptions import DiscoveryError
from pysqlmigrate.model.conditions import ColumnDefinition
from pysqlmigrate.schema import SchemaBuilder
from pysqlmigrate.util.typing import override

LOGGER = logging.getLogger("pysqlmigrate.mysql")


class MySQLExplorer(Explorer):
    "Inspects tables through `information_schema`, probing one column at a time."

    def get_database(self) -> str:
        database = self.connection.params.database
        if database:
            return database

        rows = self.connection.query_all("SELECT DATABASE() AS `database`")
        database = rows[0]["database"] if rows else None
        if not database:
            raise DiscoveryError("no database selected; set `database` in connection parameters")
        return database

    def has_column(self, table: str, column: str) -> bool:
        count = (
            SchemaBuilder.select_count("information_schema.COLUMNS")
            .where("TABLE_NAME", table)
            .where("TABLE_SCHEMA", self.get_database())
            .where("COLUMN_NAME", column)
            .execute_select_count(self.connection)
        )
        return count != 0

    @override
    def get_missing_columns(
        self, table: str, columns: list[ColumnDefinition]
    ) -> list[ColumnDefinition]:
        missing = [column for column in columns if not self.has_column(table, column.name)]
        if missing:
            LOGGER.debug(
                "missing columns in table %s: %s",
                table,
                ", ".join(column.name for column in missing),
            )
        return missing
