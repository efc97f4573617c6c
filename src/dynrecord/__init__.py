"""
Public surface for dynrecord.
Importing this module does **not** touch the database; the first Entity or
list call connects using ``.env`` / environment settings, or whatever was
passed to ``Database.configure()``.
"""

from .config import DatabaseSettings, load_settings
from .core.entity import Entity
from .core.properties import Properties
from .errors import (
    ConfigurationError,
    DynRecordError,
    NotConnectedError,
    StorageError,
)
from .events import on
from .lists import count, find_all, find_by
from .runtime import Database

__all__ = [
    "ConfigurationError",
    "Database",
    "DatabaseSettings",
    "DynRecordError",
    "Entity",
    "NotConnectedError",
    "Properties",
    "StorageError",
    "count",
    "find_all",
    "find_by",
    "load_settings",
    "on",
]
