from typing import Any

from strong_typing.inspection import (
    dataclass_fields,
    is_type_optional,
    unwrap_annotated_type,
    unwrap_optional_type,
)


def get_metadata(typ: Any) -> tuple[Any, ...]:
    "The metadata of an `Annotated` type, or an empty tuple for any other type."

    return tuple(getattr(typ, "__metadata__", ()))


def unwrap_field_type(typ: Any) -> tuple[Any, tuple[Any, ...], bool]:
    """
    Peels `Annotated` and `Optional` off a field type annotation.

    :returns: A tuple of the underlying type, the collected metadata, and whether the type is optional.
    """

    metadata = get_metadata(typ)
    typ = unwrap_annotated_type(typ)
    nullable = False
    if is_type_optional(typ):
        nullable = True
        typ = unwrap_optional_type(typ)
        metadata = metadata + get_metadata(typ)
        typ = unwrap_annotated_type(typ)
    return typ, metadata, nullable


def get_field_types(cls: type) -> dict[str, Any]:
    "Resolved type annotations of a data class, including `Annotated` metadata, in declaration order."

    return {field.name: field.type for field in dataclass_fields(cls)}
