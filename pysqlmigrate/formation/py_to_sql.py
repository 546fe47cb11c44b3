"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module maps data-class types onto column definitions of a schema descriptor.
"""

import dataclasses
import datetime
import decimal
import enum
import functools
import typing
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from strong_typing.inspection import is_dataclass_type, is_type_enum

from ..exceptions import MappingError
from ..model.key_types import Column, IdentityTag, PrimaryKeyTag, UniqueTag
from .inspection import get_field_types, unwrap_field_type

if TYPE_CHECKING:
    from ..schema import ColumnBuilder, SchemaBuilder

__all__ = [
    "FieldMapping",
    "dataclass_to_schema",
    "get_field_mappings",
]


@dataclass(frozen=True)
class FieldMapping:
    """
    How a data-class field maps onto a column.

    :param field_name: Name of the data-class field.
    :param column_name: Name of the column.
    :param field_type: Field type with `Annotated` and `Optional` removed.
    :param type_tag: Column type tag, e.g. `string` or `bigint`.
    :param length: Maximum length for character types.
    :param nullable: Whether the column accepts `NULL`.
    :param primary: Whether the column is (part of) the primary key.
    :param auto_increment: Whether the column is an auto-increment column.
    :param unique: Whether the column has a unique constraint.
    :param foreign_key: Name of a referenced table.
    """

    field_name: str
    column_name: str
    field_type: Any
    type_tag: str
    length: Optional[int] = None
    nullable: bool = False
    primary: bool = False
    auto_increment: bool = False
    unique: bool = False
    foreign_key: Optional[str] = None


def python_type_to_tag(field_type: Any) -> str:
    "Infers the column type tag of a Python type."

    # check `bool` before `int`, `datetime` before `date` since they are subclasses
    if field_type is bool:
        return "boolean"
    elif field_type is int:
        return "bigint"
    elif field_type is float or field_type is decimal.Decimal:
        return "decimal"
    elif field_type is uuid.UUID:
        return "uuid"
    elif field_type is str:
        return "string"
    elif is_type_enum(field_type):
        return "enum"
    elif field_type is datetime.datetime:
        return "timestamp"
    elif field_type is datetime.date:
        return "date"
    elif field_type is bytes:
        return "blob"
    elif field_type in (dict, list) or typing.get_origin(field_type) in (dict, list):
        return "json"
    elif is_dataclass_type(field_type):
        return "blob"
    else:
        raise MappingError(f"type {field_type} is not supported")


@functools.cache
def get_field_mappings(cls: type) -> tuple[FieldMapping, ...]:
    "Resolves the column mapping of each field of a data-class, in declaration order."

    if not is_dataclass_type(cls):
        raise MappingError(f"expected: data-class type; got: {cls}")

    mappings: list[FieldMapping] = []
    for field_name, field_annotation in get_field_types(cls).items():
        field_type, metadata, nullable = unwrap_field_type(field_annotation)

        column = next((m for m in metadata if isinstance(m, Column)), Column())
        primary = column.primary or any(isinstance(m, PrimaryKeyTag) for m in metadata)
        auto_increment = column.auto_increment or any(
            isinstance(m, IdentityTag) for m in metadata
        )
        unique = column.unique or any(isinstance(m, UniqueTag) for m in metadata)

        if primary and auto_increment:
            raise MappingError(
                f"field `{field_name}` in {cls.__name__} cannot be both primary and auto-increment; "
                "auto-increment columns are always primary"
            )
        if auto_increment and field_type is not int:
            raise MappingError(
                f"auto-increment field `{field_name}` in {cls.__name__} must be of type `int`; got: {field_type}"
            )
        if column.foreign_key is not None and not column.foreign_key:
            raise MappingError(
                f"empty foreign key reference for field `{field_name}` in {cls.__name__}"
            )

        type_tag = column.type.lower() if column.type else python_type_to_tag(field_type)
        if type_tag in ("date", "timestamp", "datetime"):
            nullable = True

        mappings.append(
            FieldMapping(
                field_name=field_name,
                column_name=column.name or field_name,
                field_type=field_type,
                type_tag=type_tag,
                length=column.length,
                nullable=nullable or column.nullable,
                primary=primary,
                auto_increment=auto_increment,
                unique=unique,
                foreign_key=column.foreign_key,
            )
        )

    if mappings and not any(m.primary or m.auto_increment for m in mappings):
        mappings[0] = dataclasses.replace(mappings[0], primary=True)

    return tuple(mappings)


def _add_column(
    schema: "SchemaBuilder", mapping: FieldMapping, value: Any
) -> "ColumnBuilder":
    tag = mapping.type_tag
    name = mapping.column_name

    if value is not None:
        if tag == "enum" and isinstance(value, enum.Enum):
            value = value.name
        elif tag in ("string", "enum", "text", "longtext") and not isinstance(value, str):
            value = str(value)
        elif tag in ("integer", "int", "long", "bigint") and not isinstance(value, int):
            value = int(str(value))

    if tag in ("string", "enum"):
        return schema.string(name, mapping.length or 255, value=value)
    elif tag == "text":
        return schema.text(name, value)
    elif tag == "longtext":
        return schema.long_text(name, value)
    elif tag in ("integer", "int", "long", "bigint"):
        return schema.big_int(name, value)
    elif tag in ("boolean", "bool"):
        return schema.boolean(name, value)
    elif tag in ("double", "float", "bigdecimal", "decimal"):
        return schema.decimal(name, value=value)
    elif tag == "uuid":
        return schema.uuid(name, value)
    elif tag in ("timestamp", "datetime"):
        return schema.timestamp(name, value)
    elif tag == "date":
        return schema.date(name, value)
    elif tag == "json":
        return schema.json(name, value)
    elif tag == "blob":
        return schema.blob(name, value)
    else:
        raise MappingError(f"type {tag} is not supported")


def dataclass_to_schema(
    schema: "SchemaBuilder", cls: type, instance: Optional[Any] = None
) -> None:
    """
    Appends a column to a schema descriptor for each field of a data-class.

    :param schema: The schema descriptor to populate.
    :param cls: The data-class type whose fields define the columns.
    :param instance: If given, the values of its fields are bound to the columns.
    """

    if instance is not None and not isinstance(instance, cls):
        raise MappingError(f"expected: instance of {cls.__name__}; got: {instance!r}")

    for mapping in get_field_mappings(cls):
        value = getattr(instance, mapping.field_name) if instance is not None else None

        if mapping.auto_increment:
            builder = schema.auto_increment_big_int(mapping.column_name)
            builder.column.value = value
        else:
            builder = _add_column(schema, mapping, value)

        if mapping.primary:
            builder.primary()
        if mapping.foreign_key:
            builder.foreign_key(mapping.foreign_key)
        if mapping.nullable and not (mapping.primary or mapping.auto_increment):
            builder.nullable()
        if mapping.unique:
            builder.unique()
