"""
pysqlmigrate: Fluent schema builder and additive migrations for MySQL, MariaDB and SQLite.

This module serializes structured objects into binary columns, and reads them back only if every class the data
references is on an allow-list.

Serialized data is self-describing JSON: values that JSON cannot represent natively are written as an object
`{"@type": "module:QualifiedName", "value": ...}`. Deserialization checks the class identifier against the
allow-list before the class is looked up, imported or instantiated.
"""

import base64
import datetime
import decimal
import enum
import importlib
import json
import logging
import typing
import uuid
from collections.abc import Iterable
from typing import Any, Union

from strong_typing.inspection import is_dataclass_instance, is_dataclass_type, is_type_enum
from strong_typing.serialization import json_to_object, object_to_json

from .exceptions import SecurityError
from .formation.inspection import get_field_types, unwrap_field_type

LOGGER = logging.getLogger("pysqlmigrate")

TYPE_KEY = "@type"
VALUE_KEY = "value"

SAFE_CLASSES = frozenset(
    [
        "builtins.dict",
        "builtins.tuple",
        "builtins.set",
        "builtins.frozenset",
        "builtins.bytes",
        "decimal.Decimal",
        "uuid.UUID",
        "datetime.datetime",
        "datetime.date",
        "datetime.time",
        "datetime.timedelta",
    ]
)

_JSON_ENCODER = json.JSONEncoder(
    ensure_ascii=False,
    check_circular=True,
    allow_nan=False,
    separators=(",", ":"),
)


def class_id(cls: type) -> str:
    "Identifier of a class as written into serialized data."

    return f"{cls.__module__}:{cls.__qualname__}"


def _tag(cls: type, value: Any) -> dict[str, Any]:
    return {TYPE_KEY: class_id(cls), VALUE_KEY: value}


def _encode(obj: Any) -> Any:
    if isinstance(obj, enum.Enum):
        return _tag(type(obj), object_to_json(obj))
    elif obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    elif isinstance(obj, list):
        return [_encode(item) for item in obj]
    elif isinstance(obj, (tuple, set, frozenset)):
        return _tag(type(obj), [_encode(item) for item in obj])
    elif isinstance(obj, dict):
        return _tag(dict, [[_encode(k), _encode(v)] for k, v in obj.items()])
    elif isinstance(obj, (bytes, bytearray)):
        return _tag(bytes, base64.b64encode(obj).decode("ascii"))
    elif isinstance(obj, decimal.Decimal):
        return _tag(decimal.Decimal, str(obj))
    elif isinstance(obj, uuid.UUID):
        return _tag(uuid.UUID, str(obj))
    elif isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
        return _tag(type(obj), obj.isoformat())
    elif isinstance(obj, datetime.timedelta):
        return _tag(datetime.timedelta, obj.total_seconds())
    elif is_dataclass_instance(obj):
        return _tag(type(obj), object_to_json(obj))
    else:
        raise TypeError(f"unable to serialize object of type: {type(obj)}")


def serialize_object(obj: Any) -> bytes:
    "Serializes a structured object (data-class, enumeration, collection or scalar) into bytes."

    return _JSON_ENCODER.encode(_encode(obj)).encode("utf-8")


def _resolve_class(tag: str) -> type:
    module_name, sep, qualname = tag.partition(":")
    if not sep or not module_name or not qualname:
        raise SecurityError(f"malformed class identifier: {tag}")

    obj: Any = importlib.import_module(module_name)
    for part in qualname.split("."):
        obj = getattr(obj, part)
    if not isinstance(obj, type):
        raise SecurityError(f"not a class: {tag}")
    return obj


class SecureDeserializer:
    """
    Reads data written by `serialize_object`, permitting only classes on an allow-list.

    Safe built-in types (collections, bytes, decimals, UUIDs and date/time types) are always permitted.

    :param allowed_classes: Classes (or their dotted names) that may be materialized.
    :param allowed_prefixes: Dotted name prefixes (e.g. a package name) whose classes may be materialized.
    """

    allowed_classes: set[str]
    allowed_prefixes: set[str]

    def __init__(
        self,
        allowed_classes: Iterable[Union[type, str]] = (),
        allowed_prefixes: Iterable[str] = (),
    ) -> None:
        self.allowed_classes = set(SAFE_CLASSES)
        self.allowed_prefixes = set(allowed_prefixes)
        for cls in allowed_classes:
            self.allow_class(cls)

    @classmethod
    def for_type(cls, typ: Any) -> "SecureDeserializer":
        "Creates a deserializer that permits a data-class or enumeration type, and the types of its fields."

        deserializer = cls()
        deserializer._allow_type(typ, set())
        return deserializer

    def _allow_type(self, typ: Any, seen: set[Any]) -> None:
        typ, _, _ = unwrap_field_type(typ)
        if typ in seen:
            return
        seen.add(typ)

        if is_dataclass_type(typ):
            self.allow_class(typ)
            for field_type in get_field_types(typ).values():
                self._allow_type(field_type, seen)
        elif is_type_enum(typ):
            self.allow_class(typ)
        else:
            for arg in typing.get_args(typ):
                self._allow_type(arg, seen)

    def allow_class(self, cls: Union[type, str]) -> None:
        if isinstance(cls, str):
            self.allowed_classes.add(cls)
        else:
            self.allowed_classes.add(class_id(cls).replace(":", "."))

    def allow_prefix(self, prefix: str) -> None:
        self.allowed_prefixes.add(prefix)

    def is_allowed(self, name: str) -> bool:
        "True if the dotted class name is on the allow-list."

        if name in self.allowed_classes:
            return True
        return any(name.startswith(prefix) for prefix in self.allowed_prefixes)

    def deserialize(self, data: bytes) -> Any:
        try:
            document = json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise SecurityError("malformed serialized data") from e
        return self._decode(document)

    def _decode(self, obj: Any) -> Any:
        if isinstance(obj, list):
            return [self._decode(item) for item in obj]
        elif not isinstance(obj, dict):
            return obj

        tag = obj.get(TYPE_KEY)
        if not isinstance(tag, str) or VALUE_KEY not in obj:
            raise SecurityError("malformed serialized data: untagged object")

        name = tag.replace(":", ".")
        if not self.is_allowed(name):
            LOGGER.warning("rejected deserialization of class: %s", name)
            raise SecurityError(
                f"class {name} is not permitted; add it to the allow-list of the deserializer"
            )

        value = obj[VALUE_KEY]
        if name == "builtins.dict":
            return {self._decode(k): self._decode(v) for k, v in value}
        elif name == "builtins.tuple":
            return tuple(self._decode(item) for item in value)
        elif name == "builtins.set":
            return set(self._decode(item) for item in value)
        elif name == "builtins.frozenset":
            return frozenset(self._decode(item) for item in value)
        elif name == "builtins.bytes":
            return base64.b64decode(value)
        elif name == "decimal.Decimal":
            return decimal.Decimal(value)
        elif name == "uuid.UUID":
            return uuid.UUID(value)
        elif name == "datetime.datetime":
            return datetime.datetime.fromisoformat(value)
        elif name == "datetime.date":
            return datetime.date.fromisoformat(value)
        elif name == "datetime.time":
            return datetime.time.fromisoformat(value)
        elif name == "datetime.timedelta":
            return datetime.timedelta(seconds=value)

        cls = _resolve_class(tag)
        if not is_type_enum(cls) and not is_dataclass_type(cls):
            raise SecurityError(f"not a data-class or enumeration: {name}")

        # nested classes are materialized by the JSON deserializer, so they must pass the allow-list here
        self._check_type(cls, set())
        try:
            return json_to_object(cls, value)
        except (TypeError, ValueError, KeyError) as e:
            raise SecurityError(f"malformed serialized data for class: {name}") from e

    def _check_type(self, typ: Any, seen: set[Any]) -> None:
        typ, _, _ = unwrap_field_type(typ)
        if typ in seen:
            return
        seen.add(typ)

        if is_dataclass_type(typ) or is_type_enum(typ):
            name = class_id(typ).replace(":", ".")
            if not self.is_allowed(name):
                LOGGER.warning("rejected deserialization of class: %s", name)
                raise SecurityError(
                    f"class {name} is not permitted; add it to the allow-list of the deserializer"
                )
            if is_dataclass_type(typ):
                for field_type in get_field_types(typ).values():
                    self._check_type(field_type, seen)
        else:
            for arg in typing.get_args(typ):
                self._check_type(arg, seen)
