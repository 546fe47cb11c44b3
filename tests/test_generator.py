import unittest
from typing import Any, Union

from pysqlmigrate.exceptions import FormationError
from pysqlmigrate.model.conditions import JoinCondition
from pysqlmigrate.requests.batch_requests import (
    InsertBatchRequest,
    UpdateBatchRequest,
    UpsertBatchRequest,
)
from pysqlmigrate.requests.data_requests import InsertAllRequest
from pysqlmigrate.schema import SchemaBuilder
from tests import tables
from tests.params import (
    MariaDBBase,
    MySQLBase,
    SQLiteBase,
    TestEngineBase,
    configure,
)

if __name__ == "__main__":
    configure()

SERVER_DIALECTS = ["mysql", "mariadb"]
ALL_DIALECTS = ["mysql", "mariadb", "sqlite"]


class TestGenerator(TestEngineBase, unittest.TestCase):
    def get_sql(self, schema: SchemaBuilder) -> list[str]:
        generator = self.engine.create_generator()
        return [statement.sql for statement in schema.get_statements(generator)]

    def get_params(self, schema: SchemaBuilder) -> list[list[Any]]:
        generator = self.engine.create_generator()
        return [statement.params for statement in schema.get_statements(generator)]

    def assertMatchSQL(
        self, dialects: Union[str, list[str]], schema: SchemaBuilder, *sql: str
    ) -> None:
        if isinstance(dialects, str):
            dialects = [dialects]
        if self.engine.name not in dialects:
            return

        self.maxDiff = None
        self.assertEqual(self.get_sql(schema), list(sql))

    @property
    def placeholder(self) -> str:
        return self.engine.create_generator().placeholder

    def test_create_table(self) -> None:
        schema = SchemaBuilder.create("users", tables.define_users)
        self.assertMatchSQL(
            SERVER_DIALECTS,
            schema,
            "CREATE TABLE IF NOT EXISTS `users` ("
            "`id` BIGINT AUTO_INCREMENT NOT NULL, "
            "`name` VARCHAR(50) NOT NULL, "
            "`age` INT NOT NULL, "
            "PRIMARY KEY (`id`))",
        )
        self.assertMatchSQL(
            "sqlite",
            schema,
            "CREATE TABLE IF NOT EXISTS `users` ("
            "`id` INTEGER PRIMARY KEY AUTOINCREMENT, "
            "`name` VARCHAR(50) NOT NULL, "
            "`age` INT NOT NULL)",
        )

    def test_create_table_deterministic(self) -> None:
        first = self.get_sql(SchemaBuilder.create("users", tables.define_users))
        second = self.get_sql(SchemaBuilder.create("users", tables.define_users))
        self.assertEqual(first, second)

    def test_create_table_foreign_key(self) -> None:
        schema = SchemaBuilder.create("orders", tables.define_orders)
        self.assertMatchSQL(
            SERVER_DIALECTS,
            schema,
            "CREATE TABLE IF NOT EXISTS `orders` ("
            "`id` BIGINT AUTO_INCREMENT NOT NULL, "
            "`customer_id` BIGINT NOT NULL, "
            "`amount` DECIMAL(10,2) NOT NULL, "
            "PRIMARY KEY (`id`), "
            "FOREIGN KEY (`customer_id`) REFERENCES `customers`(`id`) ON DELETE CASCADE)",
        )
        self.assertMatchSQL(
            "sqlite",
            schema,
            "CREATE TABLE IF NOT EXISTS `orders` ("
            "`id` INTEGER PRIMARY KEY AUTOINCREMENT, "
            "`customer_id` BIGINT NOT NULL, "
            "`amount` DECIMAL(10,2) NOT NULL, "
            "FOREIGN KEY (`customer_id`) REFERENCES `customers`(`id`) ON DELETE CASCADE)",
        )

    def test_create_table_timestamps(self) -> None:
        def define(schema: SchemaBuilder) -> None:
            schema.uuid("id").primary()
            schema.boolean("enabled").default_value(True)
            schema.json("settings").nullable()
            schema.timestamps()

        schema = SchemaBuilder.create("%prefix%settings", define)
        self.assertMatchSQL(
            SERVER_DIALECTS,
            schema,
            "CREATE TABLE IF NOT EXISTS `%prefix%settings` ("
            "`id` VARCHAR(36) NOT NULL, "
            "`enabled` BOOLEAN NOT NULL DEFAULT TRUE, "
            "`settings` JSON NULL, "
            "`created_at` TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP, "
            "`updated_at` TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP, "
            "PRIMARY KEY (`id`))",
        )
        self.assertMatchSQL(
            "sqlite",
            schema,
            "CREATE TABLE IF NOT EXISTS `%prefix%settings` ("
            "`id` VARCHAR(36) NOT NULL, "
            "`enabled` BOOLEAN NOT NULL DEFAULT TRUE, "
            "`settings` JSON NULL, "
            "`created_at` TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP, "
            "`updated_at` TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP, "
            "PRIMARY KEY (`id`))",
        )

    def test_create_table_composite_key(self) -> None:
        def define(schema: SchemaBuilder) -> None:
            schema.big_int("user_id").primary()
            schema.string("role", 20).primary()
            schema.text("comment").nullable()

        schema = SchemaBuilder.create("roles", define)
        self.assertMatchSQL(
            ALL_DIALECTS,
            schema,
            "CREATE TABLE IF NOT EXISTS `roles` ("
            "`user_id` BIGINT NOT NULL, "
            "`role` VARCHAR(20) NOT NULL, "
            "`comment` TEXT NULL, "
            "PRIMARY KEY (`user_id`, `role`))",
        )

    def test_create_table_from_dataclass(self) -> None:
        schema = SchemaBuilder.create("accounts", tables.Account)
        self.assertMatchSQL(
            SERVER_DIALECTS,
            schema,
            "CREATE TABLE IF NOT EXISTS `accounts` ("
            "`id` BIGINT AUTO_INCREMENT NOT NULL, "
            "`username` VARCHAR(50) NOT NULL UNIQUE, "
            "`email` VARCHAR(255) NULL, "
            "`created` TIMESTAMP NULL, "
            "PRIMARY KEY (`id`))",
        )
        self.assertMatchSQL(
            "sqlite",
            schema,
            "CREATE TABLE IF NOT EXISTS `accounts` ("
            "`id` INTEGER PRIMARY KEY AUTOINCREMENT, "
            "`username` VARCHAR(50) NOT NULL UNIQUE, "
            "`email` VARCHAR(255) NULL, "
            "`created` TIMESTAMP NULL)",
        )

    def test_create_table_renamed_columns(self) -> None:
        schema = SchemaBuilder.create("people", tables.Person)
        self.assertMatchSQL(
            ALL_DIALECTS,
            schema,
            "CREATE TABLE IF NOT EXISTS `people` ("
            "`full_name` VARCHAR(255) NOT NULL, "
            "`nickname` VARCHAR(255) NULL, "
            "PRIMARY KEY (`full_name`))",
        )

    def test_alter_table(self) -> None:
        def define(schema: SchemaBuilder) -> None:
            schema.string("email", 100)
            schema.string("phone", 20)

        schema = SchemaBuilder.alter("users", define)
        self.assertMatchSQL(
            SERVER_DIALECTS,
            schema,
            "ALTER TABLE `users` ADD COLUMN `email` VARCHAR(100) NULL, ADD COLUMN `phone` VARCHAR(20) NULL",
        )
        self.assertMatchSQL(
            "sqlite",
            schema,
            "ALTER TABLE `users` ADD COLUMN `email` VARCHAR(100) NULL",
            "ALTER TABLE `users` ADD COLUMN `phone` VARCHAR(20) NULL",
        )

        # columns of the descriptor are left unchanged
        self.assertFalse(schema.columns[0].nullable)

    def test_alter_table_constraints(self) -> None:
        def define(schema: SchemaBuilder) -> None:
            schema.string("email", 100).unique()
            schema.created_at()

        schema = SchemaBuilder.alter("users", define)
        self.assertMatchSQL(
            "sqlite",
            schema,
            "ALTER TABLE `users` ADD COLUMN `email` VARCHAR(100) NULL",
            "CREATE UNIQUE INDEX `idx_users_email` ON `users` (`email`)",
            "ALTER TABLE `users` ADD COLUMN `created_at` TIMESTAMP NULL",
            "UPDATE `users` SET `created_at` = CURRENT_TIMESTAMP",
        )

        def define_default(schema: SchemaBuilder) -> None:
            schema.integer("rank").default_value(0)

        schema = SchemaBuilder.alter("users", define_default)
        self.assertMatchSQL(
            "sqlite",
            schema,
            "ALTER TABLE `users` ADD COLUMN `rank` INT NULL DEFAULT 0",
        )

    def test_modifier_without_column(self) -> None:
        modifiers = [
            lambda s: s.nullable(),
            lambda s: s.unique(),
            lambda s: s.primary(),
            lambda s: s.default_value(1),
            lambda s: s.default_current_timestamp(),
            lambda s: s.foreign_key("customers", "id"),
        ]
        for modifier in modifiers:
            with self.assertRaises(FormationError):
                modifier(SchemaBuilder.create("t"))

        with self.assertRaises(FormationError):
            SchemaBuilder.create("t").big_int("customer_id").foreign_key("")

    def test_modify_table(self) -> None:
        schema = SchemaBuilder.modify("users", lambda s: s.string("name", 100))
        self.assertMatchSQL(
            SERVER_DIALECTS,
            schema,
            "ALTER TABLE `users` MODIFY COLUMN `name` VARCHAR(100) NOT NULL",
        )
        if self.engine.name == "sqlite":
            with self.assertRaises(FormationError):
                self.get_sql(schema)

    def test_rename_drop_index(self) -> None:
        self.assertMatchSQL(
            ALL_DIALECTS,
            SchemaBuilder.rename("users", "people"),
            "ALTER TABLE `users` RENAME TO `people`",
        )
        self.assertMatchSQL(
            ALL_DIALECTS, SchemaBuilder.drop("users"), "DROP TABLE `users`"
        )
        self.assertMatchSQL(
            ALL_DIALECTS,
            SchemaBuilder.create_index("users", "name"),
            "CREATE INDEX `idx_users_name` ON `users` (`name`)",
        )

    def test_insert(self) -> None:
        p = self.placeholder
        schema = tables.user("a", 1)
        self.assertMatchSQL(
            ALL_DIALECTS,
            schema,
            f"INSERT INTO `users` (`name`, `age`) VALUES ({p}, {p})",
        )
        self.assertEqual(self.get_params(schema), [["a", 1]])

    def test_update_binding_order(self) -> None:
        p = self.placeholder

        def define(schema: SchemaBuilder) -> None:
            schema.string("name", value="z")
            schema.integer("age", 5)
            schema.where("id", 1)
            schema.where("age", ">", 0)

        schema = SchemaBuilder.update("users", define)
        self.assertMatchSQL(
            ALL_DIALECTS,
            schema,
            f"UPDATE `users` SET `name` = {p}, `age` = {p} WHERE `id` = {p} AND `age` > {p}",
        )
        self.assertEqual(self.get_params(schema), [["z", 5, 1, 0]])

    def test_delete(self) -> None:
        p = self.placeholder
        self.assertMatchSQL(
            ALL_DIALECTS,
            SchemaBuilder.delete("users").where("id", 3),
            f"DELETE FROM `users` WHERE `id` = {p}",
        )
        self.assertMatchSQL(
            ALL_DIALECTS, SchemaBuilder.delete("users"), "DELETE FROM `users`"
        )

    def test_upsert_unique_key(self) -> None:
        p = self.placeholder

        def define(schema: SchemaBuilder) -> None:
            schema.auto_increment_big_int("id")
            schema.string("username", 50, value="x").unique()
            schema.string("email", 100, value="e1")

        schema = SchemaBuilder.upsert("accounts", define)
        self.assertMatchSQL(
            SERVER_DIALECTS,
            schema,
            f"INSERT INTO `accounts` (`username`, `email`) VALUES ({p}, {p}) "
            "ON DUPLICATE KEY UPDATE `username` = VALUES(`username`), `email` = VALUES(`email`)",
        )
        self.assertMatchSQL(
            "sqlite",
            schema,
            f"INSERT INTO `accounts` (`username`, `email`) VALUES ({p}, {p}) "
            "ON CONFLICT (`username`) DO UPDATE SET `username` = excluded.`username`, `email` = excluded.`email`",
        )
        self.assertEqual(self.get_params(schema), [["x", "e1"]])

    def test_upsert_primary_key(self) -> None:
        def define(schema: SchemaBuilder) -> None:
            schema.big_int("id", 7).primary()
            schema.string("name", value="n")

        self.assertMatchSQL(
            "sqlite",
            SchemaBuilder.upsert("tags", define),
            "INSERT INTO `tags` (`id`, `name`) VALUES (?, ?) "
            "ON CONFLICT (`id`) DO UPDATE SET `id` = excluded.`id`, `name` = excluded.`name`",
        )

    def test_select(self) -> None:
        p = self.placeholder
        self.assertMatchSQL(
            ALL_DIALECTS,
            SchemaBuilder.select("users").where("age", ">", 1),
            f"SELECT * FROM `users` WHERE `age` > {p}",
        )
        self.assertMatchSQL(
            ALL_DIALECTS,
            SchemaBuilder.select("users")
            .add_select("name")
            .distinct()
            .order_by_desc("name"),
            "SELECT DISTINCT `name` FROM `users` ORDER BY `name` DESC",
        )
        self.assertMatchSQL(
            ALL_DIALECTS,
            SchemaBuilder.select("users")
            .where_null("deleted_at")
            .where_not_null("email")
            .order_by("users.id"),
            "SELECT * FROM `users` WHERE `deleted_at` IS NULL AND `email` IS NOT NULL ORDER BY `users`.`id`",
        )

    def test_select_in(self) -> None:
        p = self.placeholder
        schema = SchemaBuilder.select("users").where_in("name", "a", "b")
        self.assertMatchSQL(
            ALL_DIALECTS, schema, f"SELECT * FROM `users` WHERE `name` IN ({p}, {p})"
        )
        self.assertEqual(self.get_params(schema), [["a", "b"]])

        schema = SchemaBuilder.select("users").where_in("age", [1, 2, 3])
        self.assertEqual(self.get_params(schema), [["1", "2", "3"]])

        schema = SchemaBuilder.select("users").where_in("name", [])
        self.assertMatchSQL(ALL_DIALECTS, schema, "SELECT * FROM `users` WHERE 1 = 0")
        self.assertEqual(self.get_params(schema), [[]])

    def test_select_join(self) -> None:
        p = self.placeholder
        schema = (
            SchemaBuilder.select("orders")
            .inner_join("customers", "c", "id", "orders", "customer_id")
            .add_select("orders.id", "order_id")
            .add_select("name", "customer", prefix="c")
            .add_select("amount")
            .where("c.name", "alice")
        )
        self.assertMatchSQL(
            ALL_DIALECTS,
            schema,
            "SELECT `orders`.`id` AS `order_id`, `c`.`name` AS `customer`, `amount` FROM `orders` "
            "INNER JOIN `customers` AS `c` ON `c`.`id` = `orders`.`customer_id` "
            f"WHERE `c`.`name` = {p}",
        )

    def test_select_join_literal(self) -> None:
        schema = (
            SchemaBuilder.select("orders")
            .left_join(
                "customers",
                "c",
                "id",
                "orders",
                "customer_id",
                JoinCondition.and_("c", "name", "O'Brien"),
            )
            .add_select("amount", "amount", default=0)
        )
        self.assertMatchSQL(
            ALL_DIALECTS,
            schema,
            "SELECT COALESCE(`amount`, 0) AS `amount` FROM `orders` "
            "LEFT JOIN `customers` AS `c` ON `c`.`id` = `orders`.`customer_id` AND `c`.`name` = 'O''Brien'",
        )

    def test_select_count(self) -> None:
        p = self.placeholder
        schema = (
            SchemaBuilder.select_count("information_schema.COLUMNS")
            .where("TABLE_NAME", "users")
            .where("COLUMN_NAME", "email")
        )
        self.assertMatchSQL(
            ALL_DIALECTS,
            schema,
            "SELECT COUNT(*) FROM `information_schema`.`COLUMNS` "
            f"WHERE `TABLE_NAME` = {p} AND `COLUMN_NAME` = {p}",
        )

    def test_insert_all(self) -> None:
        def define(schema: SchemaBuilder) -> None:
            schema.auto_increment_big_int("id")
            schema.string("name")
            schema.integer("age")

        request = InsertAllRequest(SchemaBuilder.insert("users", define), "archive")
        statements = request.get_statements(self.engine.create_generator())
        self.assertEqual(
            [statement.sql for statement in statements],
            ["INSERT INTO `archive` (`name`, `age`) SELECT `name`, `age` FROM `users`"],
        )

    def test_insert_batch(self) -> None:
        p = self.placeholder
        generator = self.engine.create_generator()
        request = InsertBatchRequest(
            [tables.user("a", 1), tables.user("b", 2), tables.user("c", 3)]
        )
        (statement,) = request.get_statements(generator)
        self.assertEqual(
            statement.sql,
            f"INSERT INTO `users` (`name`, `age`) VALUES ({p}, {p}), ({p}, {p}), ({p}, {p})",
        )
        self.assertEqual(statement.params, ["a", 1, "b", 2, "c", 3])

    def test_insert_batch_chunks(self) -> None:
        generator = self.engine.create_generator()
        generator.max_parameters = 10
        count = 11
        request = InsertBatchRequest([tables.user(str(k), k) for k in range(count)])
        statements = request.get_statements(generator)
        self.assertGreater(len(statements), 1)
        for statement in statements:
            self.assertLessEqual(len(statement.params), generator.max_parameters)
        self.assertEqual(sum(len(s.params) for s in statements), 2 * count)

    def test_upsert_batch(self) -> None:
        def account(username: str, email: str) -> SchemaBuilder:
            def define(schema: SchemaBuilder) -> None:
                schema.auto_increment_big_int("id")
                schema.string("username", 50, value=username).unique()
                schema.string("email", 100, value=email)

            return SchemaBuilder.upsert("accounts", define)

        generator = self.engine.create_generator()
        request = UpsertBatchRequest([account("x", "e1"), account("y", "e2")])
        (statement,) = request.get_statements(generator)
        self.assertNotIn("`id`", statement.sql)
        self.assertEqual(statement.params, ["x", "e1", "y", "e2"])

    def test_update_batch(self) -> None:
        p = self.placeholder

        def rename(id: int, name: str) -> SchemaBuilder:
            def define(schema: SchemaBuilder) -> None:
                schema.object("name", name)
                schema.where("id", id)

            return SchemaBuilder.update("users", define)

        generator = self.engine.create_generator()
        request = UpdateBatchRequest([rename(1, "a"), rename(2, "b")])
        self.assertEqual(
            request.get_sql(generator), f"UPDATE `users` SET `name` = {p} WHERE `id` = {p}"
        )
        self.assertEqual(request.get_rows(generator), [["a", 1], ["b", 2]])

    def test_batch_mismatch(self) -> None:
        with self.assertRaises(FormationError):
            InsertBatchRequest([tables.user("a", 1), SchemaBuilder.insert("people")])
        with self.assertRaises(FormationError):
            InsertBatchRequest(
                [
                    tables.user("a", 1),
                    SchemaBuilder.insert("users", lambda s: s.string("name", value="b")),
                ]
            )


class TestSQLiteGenerator(SQLiteBase, TestGenerator):
    pass


class TestMySQLGenerator(MySQLBase, TestGenerator):
    pass


class TestMariaDBGenerator(MariaDBBase, TestGenerator):
    pass


del TestGenerator

if __name__ == "__main__":
    unittest.main()
