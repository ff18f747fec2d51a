"""Driver-agnostic database port.

Call sites talk to :class:`Db` with :class:`Value` parameters and receive
:class:`Row` objects, so they never see a driver's native row type and tests
can swap in an in-memory fake.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Protocol, Sequence
from uuid import UUID

from basekit.core.errors import ConversionError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
UINT64_MAX = 2**64 - 1


class ValueKind(str, Enum):
    NULL = "null"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    BOOL = "bool"
    STR = "str"
    DATETIME = "datetime"
    BYTES = "bytes"


@dataclass(frozen=True)
class Value:
    """Tagged value used both for query parameters and for row columns."""

    kind: ValueKind
    data: Any = None

    @classmethod
    def null(cls) -> "Value":
        return cls(ValueKind.NULL)

    @classmethod
    def uint(cls, number: int) -> "Value":
        if not 0 <= number <= UINT64_MAX:
            raise ConversionError(f"{number} does not fit an unsigned 64-bit column")
        return cls(ValueKind.UINT, number)

    @classmethod
    def of(cls, obj: Any) -> "Value":
        """Infer the tag from a plain Python object."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return cls.null()
        # bool before int: bool is an int subclass
        if isinstance(obj, bool):
            return cls(ValueKind.BOOL, obj)
        if isinstance(obj, int):
            if obj > INT64_MAX:
                return cls.uint(obj)
            if obj < INT64_MIN:
                raise ConversionError(f"{obj} does not fit a signed 64-bit column")
            return cls(ValueKind.INT, obj)
        if isinstance(obj, float):
            return cls(ValueKind.FLOAT, obj)
        if isinstance(obj, Decimal):
            return cls(ValueKind.STR, str(obj))
        if isinstance(obj, str):
            return cls(ValueKind.STR, obj)
        if isinstance(obj, datetime):
            return cls(ValueKind.DATETIME, obj)
        if isinstance(obj, date):
            return cls(ValueKind.DATETIME, datetime.combine(obj, time.min))
        if isinstance(obj, UUID):
            return cls(ValueKind.BYTES, obj.bytes)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls(ValueKind.BYTES, bytes(obj))
        raise ConversionError(f"Unsupported parameter type: {type(obj).__name__}")

    @property
    def is_null(self) -> bool:
        return self.kind is ValueKind.NULL


Param = Value


def params(*values: Any) -> list[Value]:
    """``params(1, "a", None)`` -> list of tagged values."""
    return [Value.of(v) for v in values]


class Row(Mapping[str, Value]):
    """One result row: column name -> :class:`Value`."""

    def __init__(self, columns: Optional[Mapping[str, Value]] = None) -> None:
        self._cols: dict[str, Value] = dict(columns or {})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Row":
        return cls({name: Value.of(value) for name, value in data.items()})

    def insert(self, key: str, value: Any) -> None:
        self._cols[key] = Value.of(value)

    def __getitem__(self, key: str) -> Value:
        return self._cols[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cols)

    def __len__(self) -> int:
        return len(self._cols)

    def __repr__(self) -> str:
        return f"Row({self._cols!r})"

    # -------------------------- typed getters --------------------------
    def _value(self, key: str) -> Optional[Value]:
        return self._cols.get(key)

    def get_int(self, key: str) -> int:
        v = self._value(key)
        if v is not None and v.kind is ValueKind.INT:
            return v.data
        if v is not None and v.kind is ValueKind.UINT and v.data <= INT64_MAX:
            return v.data
        raise ConversionError(f"column `{key}` is not INT")

    def get_uint(self, key: str) -> int:
        v = self._value(key)
        if v is not None and v.kind is ValueKind.UINT:
            return v.data
        if v is not None and v.kind is ValueKind.INT and v.data >= 0:
            return v.data
        raise ConversionError(f"column `{key}` is not UINT")

    def get_float(self, key: str) -> float:
        v = self._value(key)
        if v is not None and v.kind is ValueKind.FLOAT:
            return v.data
        if v is not None and v.kind is ValueKind.STR:
            # DECIMAL columns arrive as text
            try:
                return float(v.data)
            except ValueError:
                pass
        raise ConversionError(f"column `{key}` is not FLOAT")

    def get_bool(self, key: str) -> bool:
        v = self._value(key)
        if v is not None:
            if v.kind is ValueKind.BOOL:
                return v.data
            if v.kind in (ValueKind.INT, ValueKind.UINT):
                return v.data != 0
            if v.kind is ValueKind.STR and v.data in ("0", "1"):
                return v.data == "1"
        raise ConversionError(f"column `{key}` is not BOOL")

    def get_str(self, key: str) -> str:
        v = self._value(key)
        if v is not None and v.kind is ValueKind.STR:
            return v.data
        if v is not None and v.kind is ValueKind.BYTES:
            try:
                return v.data.decode("utf-8")
            except UnicodeDecodeError:
                pass
        raise ConversionError(f"column `{key}` is not STR")

    def get_datetime(self, key: str) -> datetime:
        v = self._value(key)
        if v is not None and v.kind is ValueKind.DATETIME:
            return v.data
        raise ConversionError(f"column `{key}` is not DATETIME")

    def get_bytes(self, key: str) -> bytes:
        v = self._value(key)
        if v is not None and v.kind is ValueKind.BYTES:
            return v.data
        raise ConversionError(f"column `{key}` is not BYTES")

    def get_uuid(self, key: str) -> UUID:
        raw = self.get_bytes(key)
        if len(raw) != 16:
            raise ConversionError(f"column `{key}` is not valid UUID bytes")
        return UUID(bytes=raw)

    def get_str_opt(self, key: str) -> Optional[str]:
        v = self._value(key)
        if v is None:
            raise ConversionError(f"column `{key}` not found")
        if v.is_null:
            return None
        return self.get_str(key)

    def get_datetime_opt(self, key: str) -> Optional[datetime]:
        v = self._value(key)
        if v is None:
            raise ConversionError(f"column `{key}` not found")
        if v.is_null:
            return None
        return self.get_datetime(key)


class Db(Protocol):
    """Query capability shared by every database adapter."""

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[Row]:
        ...

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        ...

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the number of affected rows."""
        ...

    def execute_returning_id(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run an INSERT and return the generated id."""
        ...
