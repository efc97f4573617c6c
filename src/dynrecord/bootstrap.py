"""
Single factory that turns a validated backend variant into a SQLAlchemy
engine. Called by ``Database.connect()``; nothing else creates engines.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from .config import Backend
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def create_engine_for(backend: Backend) -> Engine:
    """Build the engine for ``backend``; driver problems are configuration problems."""
    url = backend.url()
    try:
        engine = create_engine(url, pool_pre_ping=True, future=True)
    except NoSuchModuleError as exc:
        raise ConfigurationError(
            f"no SQLAlchemy dialect installed for {url.drivername!r}"
        ) from exc
    except ImportError as exc:
        raise ConfigurationError(
            f"database driver for {url.drivername!r} is not installed: {exc}"
        ) from exc
    except ArgumentError as exc:
        raise ConfigurationError(f"invalid database URL: {exc}") from exc

    logger.debug("engine created for %s", url.render_as_string(hide_password=True))
    return engine
