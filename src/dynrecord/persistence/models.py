"""
Backing record ("bean") and the fluid-schema typing rules.

Tables are not declared up front: every bean type maps to one table with an
integer ``id`` primary key and one column per field ever stored.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Tuple

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    Numeric,
    Text,
)
from sqlalchemy.types import TypeEngine

from ..errors import StorageError

ID_COLUMN = "id"
_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


def storage_name(name: str) -> str:
    """Lowercase ``name`` and make sure it is safe as a table/column name."""
    ident = name.lower()
    if not _IDENTIFIER.match(ident):
        raise StorageError(f"invalid identifier {name!r}: use letters, digits and _")
    return ident


def normalize_id(value: Any) -> int | None:
    """Backends hand ids back as int, Decimal or str – always return int."""
    if value is None:
        return None
    return int(value)


@dataclass
class Bean:
    """One row of table ``type``; ``id`` stays ``None`` until stored."""

    type: str
    id: int | None = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, type_: str, row: Mapping[str, Any]) -> "Bean":
        return cls(
            type=type_,
            id=normalize_id(row[ID_COLUMN]),
            fields={k: v for k, v in row.items() if k != ID_COLUMN},
        )

    @property
    def is_empty(self) -> bool:
        return self.id is None

    def items(self) -> Iterator[Tuple[str, Any]]:
        return iter(self.fields.items())

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.fields[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self.fields


# column typing
# bool must be checked before int (bool is an int subclass)
_PY_TYPES: Tuple[Tuple[type, type[TypeEngine]], ...] = (
    (bool, Boolean),
    (int, Integer),
    (float, Float),
    (str, Text),
)


def column_type_for(value: Any) -> TypeEngine:
    """Column type for a freshly stored value; ``None`` gets TEXT."""
    if value is None:
        return Text()
    for py_type, sa_type in _PY_TYPES:
        if isinstance(value, py_type):
            return sa_type()
    raise StorageError(
        f"cannot store value of type {type(value).__name__}; "
        "use str, int, float, bool or None"
    )


def type_rank(type_: TypeEngine) -> int:
    """Position on the widening ladder BOOLEAN < INTEGER < FLOAT < DATE < TEXT."""
    if isinstance(type_, Boolean):
        return 0
    if isinstance(type_, Integer):
        return 1
    if isinstance(type_, Numeric):  # Float is a Numeric
        return 2
    if isinstance(type_, (Date, DateTime)):
        return 3
    return 4  # String, Text and anything unknown
