from dataclasses import dataclass
from typing import Optional

ID_QUOTE_CHAR = "`"


def quote_id(name: str) -> str:
    return name.replace(ID_QUOTE_CHAR, 2 * ID_QUOTE_CHAR)


@dataclass(frozen=True)
class LocalId:
    id: str

    @property
    def quoted_id(self) -> str:
        return ID_QUOTE_CHAR + quote_id(self.id) + ID_QUOTE_CHAR

    def __str__(self) -> str:
        "Quotes an identifier to be embedded in a SQL statement."

        return self.quoted_id


@dataclass(frozen=True)
class QualifiedId:
    namespace: Optional[str]
    id: str

    @staticmethod
    def parse(name: str) -> "QualifiedId":
        "Splits a dotted name such as `information_schema.COLUMNS` into a namespace and a local part."

        namespace, sep, id = name.rpartition(".")
        if sep:
            return QualifiedId(namespace, id)
        else:
            return QualifiedId(None, id)

    @property
    def quoted_id(self) -> str:
        if self.namespace is not None:
            return (
                ID_QUOTE_CHAR
                + quote_id(self.namespace)
                + ID_QUOTE_CHAR
                + "."
                + ID_QUOTE_CHAR
                + quote_id(self.id)
                + ID_QUOTE_CHAR
            )
        else:
            return ID_QUOTE_CHAR + quote_id(self.id) + ID_QUOTE_CHAR

    def __str__(self) -> str:
        "Quotes a qualified identifier to be embedded in a SQL statement."

        return self.quoted_id


def quoted_table(name: str) -> str:
    "Quotes a (possibly dotted) table name."

    return QualifiedId.parse(name).quoted_id
