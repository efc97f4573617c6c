"""
dynrecord.events  ──  per-table lifecycle hooks for Entity

    from dynrecord import on

    @on.update("book")
    def stamp(book):
        book.updated = "yes"

Events: ``dispense`` (fresh bean), ``open`` (after load), ``update`` (before
store), ``after_update`` (after store, id assigned). Registering without table
names hooks every table.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Dict, List

if TYPE_CHECKING:
    from .core.entity import Entity

EVENTS = ("dispense", "open", "update", "after_update")
ANY_TABLE = "*"

Handler = Callable[["Entity"], None]


class EventRegistry:
    """Central registry for event handlers"""

    def __init__(self):
        # Maps event type -> table name -> handlers in registration order
        self._handlers: Dict[str, Dict[str, List[Handler]]] = {
            event: defaultdict(list) for event in EVENTS
        }

    def register(self, event_type: str, tables: tuple[str, ...], handler: Handler) -> None:
        """Register a handler for specific tables (all tables if none given)"""
        if event_type not in self._handlers:
            raise ValueError(f"unknown event {event_type!r}; expected one of {EVENTS}")
        for table in tables or (ANY_TABLE,):
            bucket = self._handlers[event_type][table.lower()]
            if handler not in bucket:
                bucket.append(handler)

    def emit(self, event_type: str, instance: Entity) -> None:
        """Emit event to handlers of the entity's table, then catch-all ones"""
        by_table = self._handlers[event_type]
        table = str(instance).lower()
        handlers = list(by_table.get(table, ()))
        handlers += [h for h in by_table.get(ANY_TABLE, ()) if h not in handlers]
        for handler in handlers:
            handler(instance)

    def clear(self) -> None:
        for by_table in self._handlers.values():
            by_table.clear()


# Global registry instance
_registry = EventRegistry()


class OnDecorator:
    """Namespace for event decorators"""

    @staticmethod
    def _decorator(event_type: str, tables: tuple[str, ...]) -> Callable[[Handler], Handler]:
        def decorator(func: Handler) -> Handler:
            _registry.register(event_type, tables, func)
            return func

        return decorator

    def dispense(self, *tables: str) -> Callable[[Handler], Handler]:
        """Decorator for freshly dispensed beans"""
        return self._decorator("dispense", tables)

    def open(self, *tables: str) -> Callable[[Handler], Handler]:
        """Decorator for entities just loaded by id"""
        return self._decorator("open", tables)

    def update(self, *tables: str) -> Callable[[Handler], Handler]:
        """Decorator run before save; attribute changes are still persisted"""
        return self._decorator("update", tables)

    def after_update(self, *tables: str) -> Callable[[Handler], Handler]:
        """Decorator run after save, once the id is known"""
        return self._decorator("after_update", tables)


# Export the decorator interface
on = OnDecorator()


def emit(event_type: str, instance: Entity) -> None:
    _registry.emit(event_type, instance)


def clear_handlers() -> None:
    """Drop every registered handler (mainly for tests)."""
    _registry.clear()
