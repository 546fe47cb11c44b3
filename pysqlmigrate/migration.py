"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module applies migrations exactly once, and reconciles tables of previously applied migrations with their
declaration by adding missing columns.

Applied migrations are recorded in a ledger table. The ledger is an event log: a migration is recorded when it
is first applied, and again whenever missing columns are added to one of its tables on a later run.
"""

import abc
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .base import BaseConnection
from .exceptions import DatabaseError, DiscoveryError, FormationError, QueryException
from .factory import get_dialect
from .schema import Definition, SchemaBuilder, SchemaType

LOGGER = logging.getLogger("pysqlmigrate.migration")


class Migration(abc.ABC):
    """
    A unit of schema change, identified by its class name.

    Subclasses implement `up`, declaring tables with the helper methods `create`, `create_or_alter`, `alter`,
    `modify`, `rename`, `drop` and `create_index`. Declarations are collected each time the migration manager runs.
    """

    alter_eligible: bool
    schemas: list[SchemaBuilder]

    def __init__(self) -> None:
        self.alter_eligible = False
        self.schemas = []

    @property
    def name(self) -> str:
        return type(self).__name__

    @abc.abstractmethod
    def up(self) -> None:
        "Declares the schema changes of this migration."
        ...

    def collect(self) -> list[SchemaBuilder]:
        "Invokes `up` with an empty list of declarations, returning the declarations it makes."

        self.schemas = []
        self.up()
        return list(self.schemas)

    def _register(self, schema: SchemaBuilder) -> SchemaBuilder:
        self.schemas.append(schema)
        return schema

    def create(self, table_name: str, definition: Definition) -> SchemaBuilder:
        "Creates a table from a callable or a data-class type."

        return self._register(
            SchemaBuilder.create(table_name, definition, migration=self)
        )

    def create_or_alter(self, table_name: str, definition: Definition) -> SchemaBuilder:
        """
        Creates a table, and on later runs adds columns declared since the table was created.

        Marks the whole migration as eligible for reconciliation. On a later run of an applied migration, only its
        `CREATE` declarations are compared against the database, including tables declared with `create` in the same
        migration; `alter`, `modify`, `rename`, `drop` and index declarations are not run again.
        """

        schema = self.create(table_name, definition)
        self.alter_eligible = True
        return schema

    def alter(self, table_name: str, definition: Definition) -> SchemaBuilder:
        return self._register(
            SchemaBuilder.alter(table_name, definition, migration=self)
        )

    def modify(self, table_name: str, definition: Definition) -> SchemaBuilder:
        return self._register(
            SchemaBuilder.modify(table_name, definition, migration=self)
        )

    def rename(self, table_name: str, new_table_name: str) -> SchemaBuilder:
        return self._register(
            SchemaBuilder.rename(table_name, new_table_name, migration=self)
        )

    def drop(self, table_name: str) -> SchemaBuilder:
        return self._register(SchemaBuilder.drop(table_name, migration=self))

    def create_index(self, table_name: str, column_name: str) -> SchemaBuilder:
        return self._register(
            SchemaBuilder.create_index(table_name, column_name, migration=self)
        )


@dataclass
class MigrationRecord:
    "A row of the ledger table."

    migration: str
    created_at: Optional[datetime] = None


class MigrationManager:
    """
    Applies registered migrations in registration order.

    Each run
    1. creates the ledger table if it does not exist,
    2. loads the names of migrations already applied,
    3. collects the declarations of every registered migration,
    4. executes the declarations of migrations not yet applied, recording each in the ledger,
    5. adds missing columns to tables declared by applied migrations that are eligible for reconciliation.

    :param table_name: Name of the ledger table, may contain the token `%prefix%`.
    """

    table_name: str
    migrations: list[Migration]
    schemas: list[SchemaBuilder]

    def __init__(self, table_name: str = "migrations") -> None:
        self.table_name = table_name
        self.migrations = []
        self.schemas = []

    def register_migration(self, migration: Migration) -> None:
        self.migrations.append(migration)

    def register_schema(self, schema: SchemaBuilder) -> None:
        "Registers a declaration made outside of a migration's `up` method."

        if schema.migration is None:
            raise FormationError(
                f"schema for table {schema.table_name} is not owned by a migration"
            )
        self.schemas.append(schema)

    def execute(self, connection: BaseConnection) -> None:
        "Runs all registered migrations against a database."

        self._create_ledger(connection)
        applied = set(self.get_applied(connection))

        schemas = list(self.schemas)
        for migration in self.migrations:
            schemas.extend(migration.collect())

        for schema in schemas:
            migration = schema.migration
            if migration is None:
                raise FormationError(
                    f"schema for table {schema.table_name} is not owned by a migration"
                )

            if migration.name not in applied:
                LOGGER.info(
                    "applying migration %s: %s %s",
                    migration.name,
                    schema.schema_type.value,
                    schema.table_name,
                )
                schema.execute(connection)
                self._record(connection, migration)
            elif migration.alter_eligible and schema.schema_type is SchemaType.CREATE:
                self._reconcile(connection, schema, migration)

    def get_applied(self, connection: BaseConnection) -> list[str]:
        "Names of migrations recorded in the ledger, in insertion order; a name may occur more than once."

        records = SchemaBuilder.select(self.table_name).execute_select(
            connection, MigrationRecord
        )
        return [record.migration for record in records]

    def _create_ledger(self, connection: BaseConnection) -> None:
        def define(schema: SchemaBuilder) -> None:
            schema.text("migration")
            schema.created_at()

        schema = SchemaBuilder.create(self.table_name, define)
        try:
            schema.execute(connection)
        except DatabaseError as e:
            raise DatabaseError("create-migration-table", self.table_name) from e

    def _record(self, connection: BaseConnection, migration: Migration) -> None:
        try:
            SchemaBuilder.insert(
                self.table_name, lambda s: s.string("migration", value=migration.name)
            ).execute(connection)
        except DatabaseError as e:
            raise DatabaseError("insert-migration", self.table_name) from e

    def _reconcile(
        self, connection: BaseConnection, schema: SchemaBuilder, migration: Migration
    ) -> None:
        table = connection.configuration.replace_prefix(schema.table_name)
        explorer = get_dialect(
            connection.configuration.database_type.value
        ).create_explorer(connection)

        try:
            missing = explorer.get_missing_columns(table, schema.columns)
        except (DiscoveryError, QueryException, DatabaseError) as e:
            LOGGER.error("failed to inspect table %s: %s", table, e)
            raise DatabaseError("migration-table-info", table) from e

        if not missing:
            return

        LOGGER.info(
            "adding columns to table %s for migration %s: %s",
            table,
            migration.name,
            ", ".join(column.name for column in missing),
        )
        columns = [dataclasses.replace(column, nullable=True) for column in missing]
        alter = SchemaBuilder.alter(table)
        for column in columns:
            alter.add_column(column)
        alter.execute(connection)
        self._record(connection, migration)
