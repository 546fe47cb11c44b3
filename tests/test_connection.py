import dataclasses
import unittest
import uuid
from datetime import date, datetime
from decimal import Decimal

from pysqlmigrate.base import BaseConnection
from pysqlmigrate.exceptions import (
    DatabaseError,
    FormationError,
    QueryException,
    SecurityError,
    TransactionError,
)
from pysqlmigrate.helper import RequestHelper
from pysqlmigrate.schema import SchemaBuilder
from pysqlmigrate.security import SecureDeserializer
from tests import tables
from tests.params import (
    MariaDBBase,
    MySQLBase,
    SQLiteBase,
    TestEngineBase,
    configure,
    has_env_var,
)

if __name__ == "__main__":
    configure()

TABLES = [
    "orders",
    "customers",
    "users",
    "users_archive",
    "accounts",
    "products",
    "app_users",
]


class TestConnection(TestEngineBase, unittest.TestCase):
    connection: BaseConnection

    def setUp(self) -> None:
        self.connection = self.create_connection()
        for table in TABLES:
            self.connection.execute(f"DROP TABLE IF EXISTS `{table}`")

    def tearDown(self) -> None:
        self.connection.close()

    def create_users(self, table: str = "users") -> None:
        SchemaBuilder.create(table, tables.define_users).execute(self.connection)

    def get_users(self) -> set[tuple[str, int]]:
        rows = SchemaBuilder.select("users").execute_select(self.connection)
        return {(row["name"], row["age"]) for row in rows}

    def get_product(self) -> tables.Product:
        return tables.Product(
            sku="p-1",
            name="Widget",
            price=Decimal("19.99"),
            weight=2.5,
            quantity=3,
            available=True,
            status=tables.Status.inactive,
            token=uuid.UUID("6ad2ad8d-0e7a-4b1c-9c1e-2c5b1c3f0a11"),
            released=date(2024, 5, 6),
            updated=datetime(2024, 5, 6, 7, 8, 9),
            tags=["a", "b"],
            payload=b"\x00\x01",
            origin=tables.Address("Budapest", "1011"),
        )

    def test_connection(self) -> None:
        self.connection.close()
        self.assertFalse(self.connection.is_valid())
        self.connection.connect()
        self.assertTrue(self.connection.is_valid())
        self.connection.close()
        self.assertFalse(self.connection.is_valid())

    def test_insert_select_count(self) -> None:
        self.create_users()
        self.assertEqual(tables.user("a", 1).execute(self.connection), 1)
        self.assertEqual(tables.user("b", 2).execute(self.connection), 2)

        rows = (
            SchemaBuilder.select("users")
            .where("age", ">", 1)
            .execute_select(self.connection)
        )
        self.assertEqual(rows, [{"id": 2, "name": "b", "age": 2}])

        count = SchemaBuilder.select_count("users").execute_select_count(
            self.connection
        )
        self.assertEqual(count, 2)

        users = (
            SchemaBuilder.select("users")
            .order_by_desc("age")
            .execute_select(self.connection, tables.UserRow)
        )
        self.assertEqual(users, [tables.UserRow(2, "b", 2), tables.UserRow(1, "a", 1)])

    def test_upsert_unique_key(self) -> None:
        SchemaBuilder.create("accounts", tables.define_accounts).execute(self.connection)

        def account(email: str) -> SchemaBuilder:
            def define(schema: SchemaBuilder) -> None:
                schema.string("username", 50, value="x").unique()
                schema.string("email", 100, value=email)

            return SchemaBuilder.upsert("accounts", define)

        account("e1").execute(self.connection)
        (first,) = SchemaBuilder.select("accounts").execute_select(self.connection)
        account("e2").execute(self.connection)
        (second,) = SchemaBuilder.select("accounts").execute_select(self.connection)

        self.assertEqual(first["email"], "e1")
        self.assertEqual(second["email"], "e2")
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(
            SchemaBuilder.select_count("accounts").execute_select_count(self.connection),
            1,
        )

    def test_update_delete(self) -> None:
        self.create_users()
        tables.user("a", 1).execute(self.connection)
        tables.user("b", 2).execute(self.connection)

        def define(schema: SchemaBuilder) -> None:
            schema.string("name", value="c")
            schema.integer("age", 3)
            schema.where("name", "b")
            schema.where("age", 2)

        self.assertEqual(SchemaBuilder.update("users", define).execute(self.connection), 1)
        self.assertEqual(self.get_users(), {("a", 1), ("c", 3)})

        deleted = SchemaBuilder.delete("users").where_in("name", ["a", "x"]).execute(
            self.connection
        )
        self.assertEqual(deleted, 1)
        self.assertEqual(self.get_users(), {("c", 3)})

    def test_join(self) -> None:
        SchemaBuilder.create("customers", tables.define_customers).execute(self.connection)
        SchemaBuilder.create("orders", tables.define_orders).execute(self.connection)

        helper = RequestHelper(self.connection)
        alice = helper.insert("customers", lambda s: s.string("name", value="alice"))
        helper.insert("customers", lambda s: s.string("name", value="bob"))

        def order(amount: Decimal) -> SchemaBuilder:
            def define(schema: SchemaBuilder) -> None:
                schema.big_int("customer_id", alice)
                schema.decimal("amount", 10, 2, value=amount)

            return SchemaBuilder.insert("orders", define)

        order(Decimal("12.50")).execute(self.connection)
        order(Decimal("7.25")).execute(self.connection)

        rows = (
            SchemaBuilder.select("orders")
            .inner_join("customers", "c", "id", "orders", "customer_id")
            .add_select("orders.id", "order_id")
            .add_select("name", "customer", prefix="c")
            .add_select("amount")
            .where("c.name", "alice")
            .order_by("orders.id")
            .execute_select(self.connection)
        )
        self.assertEqual([row["customer"] for row in rows], ["alice", "alice"])
        self.assertEqual(
            [Decimal(str(row["amount"])) for row in rows],
            [Decimal("12.5"), Decimal("7.25")],
        )

        names = (
            SchemaBuilder.select("customers")
            .add_select("name")
            .distinct()
            .order_by("name")
            .execute_select(self.connection)
        )
        self.assertEqual(names, [{"name": "alice"}, {"name": "bob"}])

    def test_batch_equivalence(self) -> None:
        self.create_users()
        helper = RequestHelper(self.connection)
        data = [("a", 1), ("b", 2), ("c", 3)]

        for name, age in data:
            tables.user(name, age).execute(self.connection)
        sequential = self.get_users()

        SchemaBuilder.delete("users").execute(self.connection)
        inserted = helper.insert_multiple([tables.user(name, age) for name, age in data])
        self.assertEqual(inserted, 3)
        self.assertEqual(self.get_users(), sequential)

        self.assertEqual(helper.insert_multiple([]), 0)

    def test_update_batch(self) -> None:
        self.create_users()
        helper = RequestHelper(self.connection)
        helper.insert_multiple([tables.user("a", 1), tables.user("b", 2), tables.user("c", 3)])

        def older(name: str, age: int) -> SchemaBuilder:
            def define(schema: SchemaBuilder) -> None:
                schema.integer("age", age)
                schema.where("name", name)

            return SchemaBuilder.update("users", define)

        updated = helper.update_multiple([older("a", 10), older("c", 30)])
        self.assertEqual(updated, 2)
        self.assertEqual(self.get_users(), {("a", 10), ("b", 2), ("c", 30)})

        with self.assertRaises(FormationError):
            helper.update_multiple([tables.user("d", 4)])

    def test_upsert_batch(self) -> None:
        SchemaBuilder.create("accounts", tables.define_accounts).execute(self.connection)
        helper = RequestHelper(self.connection)

        def account(username: str, email: str) -> SchemaBuilder:
            def define(schema: SchemaBuilder) -> None:
                schema.auto_increment_big_int("id")
                schema.string("username", 50, value=username).unique()
                schema.string("email", 100, value=email)

            return SchemaBuilder.upsert("accounts", define)

        helper.upsert_multiple([account("x", "e1"), account("y", "e2")])
        (before,) = helper.select("accounts", where=lambda s: s.where("username", "x"))
        helper.upsert_multiple([account("x", "e3"), account("z", "e4")])
        (after,) = helper.select("accounts", where=lambda s: s.where("username", "x"))

        self.assertEqual(helper.count("accounts"), 3)
        self.assertEqual(after["email"], "e3")
        self.assertEqual(before["id"], after["id"])

    def test_round_trip(self) -> None:
        SchemaBuilder.create("products", tables.Product).execute(self.connection)
        product = self.get_product()
        SchemaBuilder.insert("products", product).execute(self.connection)

        (result,) = SchemaBuilder.select("products").execute_select(
            self.connection, tables.Product
        )
        self.assertEqual(result, product)

        with self.assertRaises(SecurityError):
            SchemaBuilder.select("products").execute_select(
                self.connection, tables.Product, deserializer=SecureDeserializer()
            )

    def test_request_helper(self) -> None:
        SchemaBuilder.create("accounts", tables.Account).execute(self.connection)
        helper = RequestHelper(self.connection)

        created = datetime(2024, 1, 2, 3, 4, 5)
        account_id = helper.insert("accounts", tables.Account(None, "x", "x@example.com", created))
        helper.insert("accounts", tables.Account(None, "y", None, created))

        (account,) = helper.select(
            "accounts", tables.Account, lambda s: s.where("username", "x")
        )
        self.assertEqual(account, tables.Account(account_id, "x", "x@example.com", created))

        account.email = "new@example.com"
        self.assertEqual(helper.update("accounts", account), 1)
        self.assertEqual(
            helper.select_all("accounts", tables.Account),
            [account, tables.Account(account_id + 1, "y", None, created)],
        )

        self.assertEqual(helper.count("accounts", lambda s: s.where_null("email")), 1)
        self.assertEqual(helper.delete("accounts", lambda s: s.where("id", account_id)), 1)
        self.assertEqual(helper.count("accounts"), 1)

    def test_insert_all(self) -> None:
        self.create_users()
        self.create_users("users_archive")
        helper = RequestHelper(self.connection)
        helper.insert_multiple([tables.user("a", 1), tables.user("b", 2)])

        def columns(schema: SchemaBuilder) -> None:
            schema.string("name")
            schema.integer("age")

        self.assertEqual(helper.insert_all("users", "users_archive", columns), 2)
        self.assertEqual(helper.count("users_archive"), 2)

    def test_transaction(self) -> None:
        self.create_users()

        with self.connection.begin_transaction() as tx:
            tables.user("a", 1).execute(self.connection)
            tx.rollback()
        self.assertEqual(self.get_users(), set())

        with self.connection.begin_transaction():
            tables.user("b", 2).execute(self.connection)
        self.assertEqual(self.get_users(), set())

        with self.connection.begin_transaction() as tx:
            tables.user("c", 3).execute(self.connection)
            tx.commit()
            with self.assertRaises(TransactionError):
                tx.commit()
        self.assertEqual(self.get_users(), {("c", 3)})

        # auto-commit is restored
        tables.user("d", 4).execute(self.connection)
        self.connection.close()
        self.assertEqual(self.get_users(), {("c", 3), ("d", 4)})

    def test_errors(self) -> None:
        with self.assertRaises(DatabaseError) as cm:
            tables.user("a", 1).execute(self.connection)
        self.assertEqual(cm.exception.operation, "insert")
        self.assertEqual(cm.exception.table, "users")
        self.assertIsInstance(cm.exception.cause, QueryException)

        with self.assertRaises(DatabaseError) as cm:
            SchemaBuilder.select("users").execute_select(self.connection)
        self.assertEqual(cm.exception.operation, "select")

        with self.assertRaises(FormationError):
            SchemaBuilder.select("users").execute(self.connection)

    def test_table_prefix(self) -> None:
        configuration = dataclasses.replace(self.configuration, table_prefix="app_")
        with self.engine.create_connection(configuration) as connection:
            SchemaBuilder.create("%prefix%users", tables.define_users).execute(connection)
            def define(schema: SchemaBuilder) -> None:
                schema.string("name", value="a")
                schema.integer("age", 1)

            helper = RequestHelper(connection)
            helper.insert("%prefix%users", define)
            self.assertEqual(helper.count("%prefix%users"), 1)

            rows = connection.query_all("SELECT COUNT(*) AS `count` FROM `app_users`")
            self.assertEqual(rows[0]["count"], 1)

    def test_debug_logging(self) -> None:
        configuration = dataclasses.replace(self.configuration, debug=True)
        with self.engine.create_connection(configuration) as connection:
            with self.assertLogs("pysqlmigrate", level="INFO") as cm:
                connection.execute("DROP TABLE IF EXISTS `users`")
        self.assertTrue(any("Executing SQL:" in line for line in cm.output))


class TestSQLiteConnection(SQLiteBase, TestConnection):
    pass


@unittest.skipUnless(has_env_var("MYSQL"), "MySQL tests are disabled")
class TestMySQLConnection(MySQLBase, TestConnection):
    pass


@unittest.skipUnless(has_env_var("MARIADB"), "MariaDB tests are disabled")
class TestMariaDBConnection(MariaDBBase, TestConnection):
    pass


del TestConnection

if __name__ == "__main__":
    unittest.main()
