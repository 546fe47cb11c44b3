"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module reconstructs data-class instances from result-set rows, coercing column values into field types.
"""

import datetime
import decimal
import json
import typing
import uuid
from collections.abc import Iterable
from typing import Any, Optional, TypeVar

from strong_typing.inspection import is_dataclass_type, is_type_enum

from ..exceptions import MappingError, SecurityError
from ..security import SecureDeserializer
from .py_to_sql import get_field_mappings

T = TypeVar("T")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_datetime(value: str) -> datetime.datetime:
    "Parses a timestamp in the format `YYYY-MM-DD HH:MM:SS`, or in ISO 8601 format."

    try:
        return datetime.datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return datetime.datetime.fromisoformat(value)


def _to_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def convert_value(
    value: Any, field_type: Any, deserializer: Optional[SecureDeserializer] = None
) -> Any:
    """
    Coerces a column value into the type of a data-class field.

    :param value: Value as returned by the database driver.
    :param field_type: Field type with `Annotated` and `Optional` removed.
    :param deserializer: Allow-list for binary values that hold serialized objects.
    """

    if value is None:
        return None

    if is_type_enum(field_type):
        if isinstance(value, field_type):
            return value
        return field_type[_to_text(value)]
    elif field_type is bool:
        if isinstance(value, bool):
            return value
        return _to_text(value).lower() in ("true", "1")
    elif field_type is int:
        if isinstance(value, int):
            return value
        return int(_to_text(value))
    elif field_type is float:
        if isinstance(value, float):
            return value
        return float(_to_text(value))
    elif field_type is decimal.Decimal:
        if isinstance(value, decimal.Decimal):
            return value
        return decimal.Decimal(_to_text(value))
    elif field_type is uuid.UUID:
        if isinstance(value, uuid.UUID):
            return value
        if isinstance(value, (bytes, bytearray)) and len(value) == 16:
            return uuid.UUID(bytes=bytes(value))
        return uuid.UUID(_to_text(value))
    elif field_type is str:
        return _to_text(value)
    elif field_type is bytes:
        return bytes(value)
    elif field_type is datetime.datetime:
        if isinstance(value, datetime.datetime):
            return value
        if isinstance(value, datetime.date):
            return datetime.datetime(value.year, value.month, value.day)
        if isinstance(value, (int, float, decimal.Decimal)):
            return datetime.datetime.fromtimestamp(float(value))
        return parse_datetime(_to_text(value))
    elif field_type is datetime.date:
        if isinstance(value, datetime.datetime):
            return value.date()
        if isinstance(value, datetime.date):
            return value
        if isinstance(value, (int, float, decimal.Decimal)):
            return datetime.date.fromtimestamp(float(value))
        return parse_datetime(_to_text(value)).date()
    elif field_type in (dict, list) or typing.get_origin(field_type) in (dict, list):
        if isinstance(value, (dict, list)):
            return value
        return json.loads(_to_text(value))
    elif isinstance(value, (bytes, bytearray)):
        if deserializer is None:
            deserializer = SecureDeserializer.for_type(field_type)
        return deserializer.deserialize(value)
    else:
        return value


def dataclass_from_row(
    signature: type[T],
    row: dict[str, Any],
    deserializer: Optional[SecureDeserializer] = None,
) -> T:
    "Reconstructs a single data-class instance from a row keyed by column label."

    values: dict[str, Any] = {}
    for mapping in get_field_mappings(signature):
        if mapping.column_name not in row:
            raise MappingError(
                f"column `{mapping.column_name}` for field `{mapping.field_name}` of {signature.__name__} "
                "is missing from the result-set"
            )
        try:
            values[mapping.field_name] = convert_value(
                row[mapping.column_name], mapping.field_type, deserializer
            )
        except (SecurityError, MappingError):
            raise
        except (TypeError, ValueError, KeyError) as e:
            raise MappingError(
                f"unable to convert value of column `{mapping.column_name}` to {mapping.field_type}"
            ) from e
    return signature(**values)  # type: ignore[call-arg]


def dataclass_from_rows(
    signature: type[T],
    rows: Iterable[dict[str, Any]],
    deserializer: Optional[SecureDeserializer] = None,
) -> list[T]:
    """
    Converts a result-set into a list of data-class instances, one per row, in row order.

    :param signature: A data-class type.
    :param rows: The result-set whose rows to convert.
    :param deserializer: Allow-list for binary columns that hold serialized objects; by default, the types
        reachable from the fields of the signature are permitted.
    """

    if not is_dataclass_type(signature):
        raise TypeError(
            f"expected: data-class type as result-set signature; got: {signature}"
        )

    if deserializer is None:
        deserializer = SecureDeserializer.for_type(signature)
    return [dataclass_from_row(signature, row, deserializer) for row in rows]
