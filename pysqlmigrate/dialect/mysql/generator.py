from pysqlmigrate.base import BaseGenerator
from pysqlmigrate.model.conditions import ColumnDefinition
from pysqlmigrate.util.typing import override


class MySQLGenerator(BaseGenerator):
    """
    Generator for MySQL.

    Uses the `format` paramstyle of PyMySQL, and `ON DUPLICATE KEY UPDATE` for upserts.
    """

    max_parameters = 65535

    @property
    @override
    def placeholder(self) -> str:
        return "%s"

    @override
    def get_upsert_clause(
        self, primary_keys: list[str], columns: list[ColumnDefinition]
    ) -> str:
        assignments = ", ".join(
            f"{column.quoted_name} = VALUES({column.quoted_name})" for column in columns
        )
        return f"ON DUPLICATE KEY UPDATE {assignments}"
