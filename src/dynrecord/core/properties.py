"""
Free-form attribute bag that lives on every Entity instance.

* Keys are kept in insertion order (pydantic ``extra="allow"``).
* ``add``, ``remove``, ``list`` helpers mutate / read the bag in place.
* Values are never touched by storage until ``Entity.save()``.
"""

from typing import Any, Dict, Iterator

from pydantic import BaseModel

# scalar values a bag normally carries
AttributeValue = str | int | float | bool | None


class Properties(BaseModel):
    model_config = {"extra": "allow", "frozen": False, "arbitrary_types_allowed": True}

    # the extras dict is used directly so keys like "list" or "copy"
    # never collide with BaseModel attributes
    @property
    def _bag(self) -> Dict[str, Any]:
        return self.__pydantic_extra__  # type: ignore[return-value]

    # ------------------------------------------------------------------ #
    # convenience helpers
    # ------------------------------------------------------------------ #
    def add(self, /, **kv: Any) -> None:
        """Add or overwrite arbitrary key/value pairs."""
        self._bag.update(kv)

    def remove(self, key: str) -> None:
        """Remove a key (no error if absent)."""
        self._bag.pop(key, None)

    def get(self, key: str, default: Any = None) -> Any:
        return self._bag.get(key, default)

    def has(self, key: str) -> bool:
        """True if ``key`` is set to something other than ``None``."""
        return self._bag.get(key) is not None

    def keys(self) -> Iterator[str]:
        return iter(list(self._bag))

    def list(self) -> Dict[str, Any]:
        """Return all keys/values (shallow copy, insertion order)."""
        return dict(self._bag)

    def __len__(self) -> int:
        return len(self._bag)
