"""
Connection settings – *pure Pydantic* plus python-dotenv.

* ``DatabaseSettings`` holds the raw ``DB_*`` values, nothing is validated yet.
* ``settings.backend()`` turns them into one of the closed backend variants
  and is where a ``ConfigurationError`` surfaces (first connect, not load).
* ``load_settings()`` reads ``.env`` + environment exactly once per process.

Supported ``DB_TYPE`` values and the variables they need:

    sqlite              DB_PATH
    mysql / mariadb     DB_HOST, DB_PORT, DB_NAME, DB_USERNAME, DB_PASSWORD
    postgresql          DB_HOST, DB_NAME, DB_USERNAME, DB_PASSWORD
    cubrid              DB_HOST, DB_NAME, DB_USERNAME, DB_PASSWORD
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Mapping, Union

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from sqlalchemy.engine import URL

from .errors import ConfigurationError


# backend variants
class _Backend(BaseModel):
    model_config = {"frozen": True}


class SqliteBackend(_Backend):
    """File-based embedded database."""

    kind: Literal["sqlite"]
    path: str = Field(min_length=1)

    def url(self) -> URL:
        return URL.create("sqlite", database=self.path)


class _ServerBackend(_Backend):
    host: str = Field(min_length=1)
    name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    password: str  # required, but may be empty


class MySQLBackend(_ServerBackend):
    kind: Literal["mysql", "mariadb"]
    port: int

    def url(self) -> URL:
        return URL.create(
            "mysql+pymysql",
            username=self.username,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.name,
        )


class PostgresBackend(_ServerBackend):
    kind: Literal["postgresql"]

    def url(self) -> URL:
        return URL.create(
            "postgresql+psycopg",
            username=self.username,
            password=self.password,
            host=self.host,
            database=self.name,
        )


class CubridBackend(_ServerBackend):
    """Needs a third-party SQLAlchemy dialect registered as ``cubrid``."""

    kind: Literal["cubrid"]

    def url(self) -> URL:
        return URL.create(
            "cubrid",
            username=self.username,
            password=self.password,
            host=self.host,
            database=self.name,
        )


Backend = Annotated[
    Union[SqliteBackend, MySQLBackend, PostgresBackend, CubridBackend],
    Field(discriminator="kind"),
]
_backend_adapter: TypeAdapter[Backend] = TypeAdapter(Backend)

BACKEND_KINDS = ("sqlite", "mysql", "mariadb", "postgresql", "cubrid")


# raw settings
class DatabaseSettings(BaseModel):
    """Raw ``DB_*`` values as found in the environment."""

    db_type: str | None = None
    db_path: str | None = None
    db_host: str | None = None
    db_port: str | None = None
    db_name: str | None = None
    db_username: str | None = None
    db_password: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DatabaseSettings":
        env = os.environ if environ is None else environ
        return cls(**{field: env.get(field.upper()) for field in cls.model_fields})

    def backend(self) -> Backend:
        """Validate into a backend variant or raise ``ConfigurationError``."""
        if not self.db_type:
            raise ConfigurationError("DB_TYPE is not set")
        kind = self.db_type.strip().lower()
        if kind not in BACKEND_KINDS:
            raise ConfigurationError(
                f"unsupported DB_TYPE {self.db_type!r}; expected one of {', '.join(BACKEND_KINDS)}"
            )

        raw = {
            "kind": kind,
            "path": self.db_path,
            "host": self.db_host,
            "port": self.db_port,
            "name": self.db_name,
            "username": self.db_username,
            "password": self.db_password,
        }
        # drop unset keys so pydantic reports them as missing
        raw = {k: v for k, v in raw.items() if v is not None}
        try:
            return _backend_adapter.validate_python(raw)
        except ValidationError as exc:
            missing = ", ".join(
                "DB_" + str(err["loc"][-1]).upper() for err in exc.errors()
            )
            raise ConfigurationError(
                f"invalid settings for DB_TYPE={kind}: {missing}"
            ) from exc


@lru_cache(maxsize=1)
def load_settings(env_file: str | Path | None = None) -> DatabaseSettings:
    """
    Load ``.env`` (without overriding existing variables) and snapshot the
    ``DB_*`` values. Cached: later calls return the same object.
    """
    path = env_file if env_file is not None else find_dotenv(usecwd=True)
    if path:
        load_dotenv(path, override=False)
    return DatabaseSettings.from_env()
