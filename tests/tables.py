import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

from pysqlmigrate.model.key_types import Column, Identity, PrimaryKey
from pysqlmigrate.schema import SchemaBuilder


class Status(enum.Enum):
    active = "active"
    inactive = "inactive"


@dataclass
class Address:
    city: str
    zip_code: str


@dataclass
class Account:
    "A table with an auto-increment identity and a unique natural key."

    id: Identity[Optional[int]]
    username: Annotated[str, Column(length=50, unique=True)]
    email: Optional[str]
    created: datetime


@dataclass
class Product:
    "A table with a column of every supported kind."

    sku: PrimaryKey[str]
    name: Annotated[str, Column(length=100)]
    price: Decimal
    weight: float
    quantity: int
    available: bool
    status: Status
    token: UUID
    released: date
    updated: datetime
    tags: list[str]
    payload: bytes
    origin: Address
    note: Optional[str] = None


@dataclass
class Person:
    "A table whose columns are named differently from its fields."

    name: Annotated[str, Column(name="full_name")]
    nickname: Optional[str]


@dataclass
class UserRow:
    id: int
    name: str
    age: int


def define_users(schema: SchemaBuilder) -> None:
    schema.auto_increment_big_int("id")
    schema.string("name", 50)
    schema.integer("age")


def define_accounts(schema: SchemaBuilder) -> None:
    schema.auto_increment_big_int("id")
    schema.string("username", 50).unique()
    schema.string("email", 100).nullable()


def define_customers(schema: SchemaBuilder) -> None:
    schema.auto_increment_big_int("id")
    schema.string("name", 50)


def define_orders(schema: SchemaBuilder) -> None:
    schema.auto_increment_big_int("id")
    schema.big_int("customer_id").foreign_key("customers", "id")
    schema.decimal("amount", 10, 2)


def user(name: str, age: int) -> SchemaBuilder:
    "An insert descriptor for a row of the table `users`."

    def define(schema: SchemaBuilder) -> None:
        schema.string("name", value=name)
        schema.integer("age", age)

    return SchemaBuilder.insert("users", define)
