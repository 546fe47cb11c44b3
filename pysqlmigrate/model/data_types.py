import datetime
import decimal
import enum
import uuid
from dataclasses import dataclass
from typing import Any, Optional


def quote(s: str) -> str:
    "Quotes a string to be embedded in an SQL statement."

    return "'" + s.replace("'", "''") + "'"


def constant(v: Any) -> str:
    "Outputs a constant value."

    if v is None:
        return "NULL"
    elif isinstance(v, str):
        return quote(v)
    elif isinstance(v, bool):
        return "TRUE" if v else "FALSE"
    elif isinstance(v, (int, float)):
        return str(v)
    elif isinstance(v, decimal.Decimal):
        return str(v)
    elif isinstance(v, datetime.datetime):
        if v.tzinfo is not None:
            timestamp = v.astimezone(tz=datetime.timezone.utc).replace(tzinfo=None)
        else:
            timestamp = v
        return quote(timestamp.isoformat(sep=" "))
    elif isinstance(v, datetime.date):
        return quote(v.isoformat())
    elif isinstance(v, uuid.UUID):
        return quote(str(v))
    elif isinstance(v, enum.Enum):
        return quote(v.name)
    else:
        raise NotImplementedError(f"unknown constant representation for value: {v}")


@dataclass
class SqlDataType:
    "Base class for SQL column types."


@dataclass
class SqlBooleanType(SqlDataType):
    def __str__(self) -> str:
        return "BOOLEAN"


@dataclass
class SqlIntegerType(SqlDataType):
    width: int

    def __str__(self) -> str:
        if self.width == 1:
            return "TINYINT"
        elif self.width == 2:
            return "SMALLINT"
        elif self.width == 4:
            return "INT"
        elif self.width == 8:
            return "BIGINT"
        raise TypeError(f"invalid integer width: {self.width}")


@dataclass
class SqlDecimalType(SqlDataType):
    """
    Fixed-point numeric type.

    :param precision: Numeric precision in base 10.
    :param scale: Scale in base 10.
    """

    precision: Optional[int] = None
    scale: Optional[int] = None

    def __str__(self) -> str:
        if self.precision is not None and self.scale is not None:
            return f"DECIMAL({self.precision},{self.scale})"
        elif self.precision is not None:
            return f"DECIMAL({self.precision})"
        else:
            return "DECIMAL"


@dataclass
class SqlVariableCharacterType(SqlDataType):
    limit: Optional[int] = None

    def __str__(self) -> str:
        if self.limit is not None:
            return f"VARCHAR({self.limit})"
        else:
            return "TEXT"


@dataclass
class SqlTextType(SqlDataType):
    "Character large object, `TEXT` or `LONGTEXT`."

    long: bool = False

    def __str__(self) -> str:
        return "LONGTEXT" if self.long else "TEXT"


@dataclass
class SqlVariableBinaryType(SqlDataType):
    def __str__(self) -> str:
        return "BLOB"


@dataclass
class SqlJsonType(SqlDataType):
    def __str__(self) -> str:
        return "JSON"


@dataclass
class SqlTimestampType(SqlDataType):
    def __str__(self) -> str:
        return "TIMESTAMP"


@dataclass
class SqlDateType(SqlDataType):
    def __str__(self) -> str:
        return "DATE"
