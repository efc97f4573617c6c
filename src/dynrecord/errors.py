"""
Error taxonomy shared by every dynrecord layer.

* ConfigurationError – bad / missing connection settings (raised at connect).
* StorageError       – anything the database says no to.
* NotConnectedError  – store used while no connection is open.
"""


class DynRecordError(Exception):
    """Base class for all dynrecord errors."""


class ConfigurationError(DynRecordError):
    """Connection settings are missing, invalid or name an unknown backend."""


class StorageError(DynRecordError):
    """A dispense/load/store/find/count failed at the backend."""


class NotConnectedError(StorageError):
    """No live connection; call ``Database.connect()`` first."""
