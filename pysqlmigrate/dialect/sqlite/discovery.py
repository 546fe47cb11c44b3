import logging

from pysqlmigrate.base import Explorer
from pysqlmigrate.exceptions import DiscoveryError, QueryException
from pysqlmigrate.model.conditions import ColumnDefinition
from pysqlmigrate.model.data_types import quote
from pysqlmigrate.util.typing import override

LOGGER = logging.getLogger("pysqlmigrate.sqlite")


class SQLiteExplorer(Explorer):
    "Inspects tables with `PRAGMA table_info`."

    def get_column_names(self, table: str) -> set[str]:
        try:
            rows = self.connection.query_all(f"PRAGMA table_info({quote(table)})")
        except QueryException as e:
            raise DiscoveryError(f"unable to inspect table: {table}") from e
        return {row["name"] for row in rows}

    @override
    def get_missing_columns(
        self, table: str, columns: list[ColumnDefinition]
    ) -> list[ColumnDefinition]:
        existing = self.get_column_names(table)
        missing = [column for column in columns if column.name not in existing]
        if missing:
            LOGGER.debug(
                "missing columns in table %s: %s",
                table,
                ", ".join(column.name for column in missing),
            )
        return missing
