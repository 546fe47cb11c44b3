from dataclasses import dataclass
from typing import Annotated, Optional, TypeVar

T = TypeVar("T")


class PrimaryKeyTag:
    "Marks a field as the primary key of a table."

    def __repr__(self) -> str:
        return "PrimaryKey"


class IdentityTag:
    "Marks a field as an auto-increment (identity) column in a table."

    def __repr__(self) -> str:
        return "Identity"


class UniqueTag:
    "Marks a field as a column with a unique constraint."

    def __repr__(self) -> str:
        return "Unique"


@dataclass(frozen=True)
class Column:
    """
    Per-field column metadata, attached with `Annotated[T, Column(...)]`.

    :param name: Column name, if different from the field name.
    :param type: Column type tag overriding the type inferred from the field type, e.g. `longtext`.
    :param primary: Whether the column is (part of) the primary key.
    :param auto_increment: Whether the column is an auto-increment column (implies primary key).
    :param nullable: Whether the column accepts `NULL`.
    :param unique: Whether the column has a unique constraint.
    :param foreign_key: Name of the table that the column references with a foreign key.
    :param length: Maximum length for character types.
    """

    name: Optional[str] = None
    type: Optional[str] = None
    primary: bool = False
    auto_increment: bool = False
    nullable: bool = False
    unique: bool = False
    foreign_key: Optional[str] = None
    length: Optional[int] = None


PrimaryKey = Annotated[T, PrimaryKeyTag()]
Identity = Annotated[T, IdentityTag()]
Unique = Annotated[T, UniqueTag()]
