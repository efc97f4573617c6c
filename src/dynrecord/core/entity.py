"""
Entity kernel – one row of *any* table, no schema declared up front.

* Attribute reads / writes only touch the in-memory ``Properties`` bag.
* ``save()`` flushes the bag into the backing bean in a single store call.
* ``load(id)`` replaces the bean and refreshes the bag from the stored row.

Both calls open the connection if needed and close it before returning.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from ..events import emit
from ..persistence.models import Bean
from ..runtime import Database
from .properties import Properties

logger = logging.getLogger(__name__)

_RESERVED = frozenset({"name", "id"})
_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


class Entity:
    """Dynamic record for table ``name``; unknown attributes read as ``None``."""

    name: str
    id: int | None

    def __init__(self, name: str, id: int | None = None, bean: Bean | None = None):
        object.__setattr__(self, "_properties", Properties())
        object.__setattr__(self, "_bean", None)
        self.name = name
        self.id = None

        if bean is not None:  # hydrate from an already fetched row
            self._bean = bean
            self.id = bean.id
            self._properties.add(**bean.fields)
            return

        Database.connect()
        self._bean = Database.store().dispense(name)
        emit("dispense", self)
        if id is not None:
            self.load(id)

    def is_initialized(self) -> bool:
        return self._bean is not None

    # attribute bag; keys are case-insensitive like the columns behind them
    def get(self, key: str, default: Any = None) -> Any:
        return self._properties.get(key.lower(), default)

    def set(self, key: str, value: Any) -> None:
        key = key.lower()
        if key in _RESERVED:
            raise ValueError(f"{key!r} is reserved and cannot be used as an attribute")
        self._properties.add(**{key: value})

    def has(self, key: str) -> bool:
        return self._properties.has(key.lower())

    def unset(self, key: str) -> None:
        self._properties.remove(key.lower())

    def to_dict(self) -> Dict[str, Any]:
        """Attributes in insertion order."""
        return self._properties.list()

    # typed accessors: stored values may come back coerced by the backend
    def get_string(self, key: str) -> str | None:
        value = self.get(key)
        return None if value is None else str(value)

    def get_int(self, key: str) -> int | None:
        value = self.get(key)
        if value is None:
            return None
        if isinstance(value, int):
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        number = float(value)
        if not number.is_integer():
            raise ValueError(f"{key}={value!r} is not an integer")
        return int(number)

    def get_float(self, key: str) -> float | None:
        value = self.get(key)
        return None if value is None else float(value)

    def get_bool(self, key: str) -> bool | None:
        value = self.get(key)
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ValueError(f"{key}={value!r} is not a boolean")

    # persistence
    def load(self, id: int) -> None:
        """Replace the bean with row ``id`` and copy its fields into the bag."""
        Database.connect()
        try:
            bean = Database.store().load(self.name, id)
            self._bean = bean
            self.id = bean.id
            self._properties.add(**bean.fields)
            if bean.is_empty:
                logger.debug("%s#%s does not exist", self.name, id)
            emit("open", self)
        finally:
            Database.disconnect()

    def save(self) -> None:
        """Copy every attribute onto the bean, store it and take its id."""
        Database.connect()
        try:
            emit("update", self)
            # the bean only changes once the store accepted the row
            candidate = Bean(
                type=self._bean.type,
                id=self._bean.id,
                fields={**self._bean.fields, **self._properties.list()},
            )
            self.id = Database.store().store(candidate)
            self._bean.fields = candidate.fields
            self._bean.id = candidate.id
            emit("after_update", self)
        finally:
            Database.disconnect()

    def clone(self) -> "Entity":
        """Copy with deep-copied attributes; the bean handle is shared."""
        twin = object.__new__(type(self))
        object.__setattr__(twin, "_properties", self._properties.model_copy(deep=True))
        object.__setattr__(twin, "_bean", self._bean)
        object.__setattr__(twin, "name", self.name)
        object.__setattr__(twin, "id", self.id)
        return twin

    def __copy__(self) -> "Entity":
        return self.clone()

    def __deepcopy__(self, memo: dict) -> "Entity":
        return self.clone()

    # dynamic attribute syntax
    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        return self.get(key)

    def __setattr__(self, key: str, value: Any) -> None:
        if key.startswith("_") or key in _RESERVED:
            object.__setattr__(self, key, value)
        else:
            self.set(key, value)

    def __delattr__(self, key: str) -> None:
        if key.startswith("_") or key in _RESERVED:
            object.__delattr__(self, key)
        else:
            self.unset(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has(key)

    def __str__(self) -> str:
        return self.name or ""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, id={self.id!r}, {self.to_dict()!r})"
