"""
List helpers: count, fetch all or filter the rows of one table.

Each call opens the connection, runs one query and closes it again. Rows
come back wrapped in ``Entity`` objects built straight from the fetched
beans, so no row is queried twice.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from .core.entity import Entity
from .persistence.models import Bean
from .runtime import Database


def count(table_name: str) -> int:
    """Number of rows in ``table_name``; 0 if it was never written to."""
    with Database.scope() as store:
        return store.count(table_name)


def find_all(table_name: str) -> List[Entity]:
    """Every row of ``table_name`` in the backend's own order."""
    with Database.scope() as store:
        beans = store.find_all(table_name)
    return _to_entities(table_name, beans)


def find_by(
    table_name: str,
    condition: str,
    params: Mapping[str, Any] | None = None,
) -> List[Entity]:
    """
    Rows of ``table_name`` matching ``condition``, e.g. ``value2 > 500`` or
    ``value1 LIKE "String%"`` (no ``WHERE`` keyword).

    The condition goes to the database unescaped: never build it from
    untrusted input. Use ``:name`` placeholders with ``params`` instead.
    """
    with Database.scope() as store:
        beans = store.find(table_name, condition, params)
    return _to_entities(table_name, beans)


def _to_entities(table_name: str, beans: Iterable[Bean]) -> List[Entity]:
    return [Entity(table_name, bean=bean) for bean in beans]
