"""
Thin data-access layer over one live SQLAlchemy connection.

Bean operations (dispense / load / store / find / count) with a *fluid*
schema: the table and any missing column are created on the first store,
and a column is widened when a later value does not fit its type.
Every SQLAlchemy failure is rolled back and re-raised as ``StorageError``.
"""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    Table,
    column,
    func,
    insert,
    inspect,
    select,
    table as table_clause,
    text,
    update,
)
from sqlalchemy.engine import Connection, Dialect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeEngine

from ..errors import StorageError
from .models import (
    ID_COLUMN,
    Bean,
    column_type_for,
    normalize_id,
    storage_name,
    type_rank,
)

logger = logging.getLogger(__name__)

# clauses that must not be prefixed with WHERE
_BARE_CLAUSE = re.compile(r"^\s*(ORDER\s+BY|LIMIT|GROUP\s+BY|HAVING)\b", re.IGNORECASE)


class BeanStore:
    """Bean persistence bound to a single ``Connection``."""

    def __init__(self, connection: Connection):
        self.connection = connection

    @property
    def dialect(self):
        return self.connection.dialect

    def _quote(self, ident: str) -> str:
        return self.dialect.identifier_preparer.quote(ident)

    @contextmanager
    def _guard(self, operation: str, type_: str, *, commit: bool = False) -> Iterator[None]:
        try:
            yield
            if commit:
                self.connection.commit()
        except SQLAlchemyError as exc:
            if not self.connection.closed:
                self.connection.rollback()
            logger.error("%s on %r failed: %s", operation, type_, exc)
            raise StorageError(f"{operation} on {type_!r} failed: {exc}") from exc

    # ---- schema ---------------------------------------------------------
    def _has_table(self, name: str) -> bool:
        return inspect(self.connection).has_table(name)

    def _reflect(self, name: str) -> Table:
        return Table(name, MetaData(), autoload_with=self.connection)

    def _ensure_schema(self, type_: str, fields: Mapping[str, Any]) -> Table:
        """Create the table or add / widen the columns ``fields`` needs."""
        if not self._has_table(type_):
            table = Table(
                type_,
                MetaData(),
                Column(ID_COLUMN, Integer, primary_key=True, autoincrement=True),
                *(Column(key, column_type_for(value)) for key, value in fields.items()),
            )
            table.create(self.connection)
            logger.info("created table %r with columns %s", type_, list(fields))
            return table

        table = self._reflect(type_)
        changed = False
        for key, value in fields.items():
            wanted = column_type_for(value)
            existing = table.c.get(key)
            if existing is None:
                self._add_column(type_, key, wanted)
                changed = True
            elif value is not None and type_rank(wanted) > type_rank(existing.type):
                changed = self._widen_column(type_, key, wanted) or changed
        return self._reflect(type_) if changed else table

    def _add_column(self, type_: str, key: str, col_type: TypeEngine) -> None:
        ddl = (
            f"ALTER TABLE {self._quote(type_)} "
            f"ADD COLUMN {self._quote(key)} {col_type.compile(dialect=self.dialect)}"
        )
        self.connection.execute(text(ddl))
        logger.info("added column %r.%r", type_, key)

    def _widen_column(self, type_: str, key: str, col_type: TypeEngine) -> bool:
        ddl = widen_column_ddl(self.dialect, type_, key, col_type)
        if ddl is None:
            # SQLite stores any value in any column
            logger.debug("%s keeps column %r.%r as declared", self.dialect.name, type_, key)
            return False
        self.connection.execute(text(ddl))
        logger.info("widened column %r.%r: %s", type_, key, ddl)
        return True

    # ---- writes ---------------------------------------------------------
    def dispense(self, type_: str) -> Bean:
        """New, unsaved bean; no round trip."""
        return Bean(type=storage_name(type_))

    def store(self, bean: Bean) -> int:
        """Insert or update ``bean`` and return its id."""
        values: Dict[str, Any] = {}
        for key, value in bean.items():
            ident = storage_name(key)
            if ident in values:
                raise StorageError(f"field {key!r} collides with another field on column {ident!r}")
            values[ident] = value
        if ID_COLUMN in values:
            raise StorageError(f"{ID_COLUMN!r} is the primary key and cannot be a field")
        for value in values.values():
            column_type_for(value)  # reject unsupported values before any DDL

        with self._guard("store", bean.type, commit=True):
            table = self._ensure_schema(bean.type, values)
            values = {
                k: coerce_for_column(v, table.c[k].type) for k, v in values.items()
            }
            target = table_clause(
                bean.type,
                column(ID_COLUMN, Integer),
                *(column(k, column_type_for(v)) for k, v in values.items()),
            )
            if bean.id is None:
                stmt = insert(target)
                if values:
                    stmt = stmt.values(values)
                if self.dialect.insert_returning:
                    new_id = self.connection.execute(
                        stmt.returning(target.c[ID_COLUMN])
                    ).scalar_one()
                else:
                    new_id = self.connection.execute(stmt).lastrowid
            else:
                if values:
                    self.connection.execute(
                        update(target)
                        .where(target.c[ID_COLUMN] == bean.id)
                        .values(values)
                    )
                new_id = bean.id

        bean.id = normalize_id(new_id)
        logger.debug("stored %s#%s", bean.type, bean.id)
        return bean.id

    # ---- reads ----------------------------------------------------------
    def load(self, type_: str, bean_id: int) -> Bean:
        """Row ``bean_id`` of ``type_``, or an empty bean when there is none."""
        bean = self.dispense(type_)
        with self._guard("load", bean.type):
            if not self._has_table(bean.type):
                return bean
            target = table_clause(bean.type, column(ID_COLUMN))
            q = select(text("*")).select_from(target).where(target.c[ID_COLUMN] == bean_id)
            row = self.connection.execute(q).mappings().first()
        if row is None:
            logger.debug("%s#%s not found, returning empty bean", bean.type, bean_id)
            return bean
        return Bean.from_row(bean.type, row)

    def find(
        self,
        type_: str,
        condition: str | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> List[Bean]:
        """
        Rows of ``type_`` matching a raw SQL ``condition`` (no ``WHERE``).

        ``condition`` is passed through as-is. With ``params`` it may use
        ``:name`` placeholders; without, colons are literal.
        """
        name = storage_name(type_)
        sql = f"SELECT * FROM {self._quote(name)}"
        if condition and condition.strip():
            if params is None:
                condition = condition.replace(":", r"\:")
            sql += " " if _BARE_CLAUSE.match(condition) else " WHERE "
            sql += condition.strip()

        with self._guard("find", name):
            if not self._has_table(name):
                return []
            rows = self.connection.execute(text(sql), dict(params or {})).mappings().all()
        logger.debug("find %r %r -> %d rows", name, condition, len(rows))
        return [Bean.from_row(name, row) for row in rows]

    def find_all(self, type_: str) -> List[Bean]:
        return self.find(type_)

    def count(self, type_: str) -> int:
        """Row count; 0 for a table that was never written."""
        name = storage_name(type_)
        with self._guard("count", name):
            if not self._has_table(name):
                return 0
            q = select(func.count()).select_from(table_clause(name))
            return int(self.connection.execute(q).scalar_one())


def widen_column_ddl(dialect: Dialect, type_: str, key: str, col_type: TypeEngine) -> str | None:
    """DDL that changes column ``key`` to ``col_type``; ``None`` where not needed."""
    compiled = col_type.compile(dialect=dialect)
    quote = dialect.identifier_preparer.quote
    tbl, col = quote(type_), quote(key)
    if dialect.name == "postgresql":
        return f"ALTER TABLE {tbl} ALTER COLUMN {col} TYPE {compiled} USING {col}::{compiled}"
    if dialect.name in ("mysql", "mariadb"):
        return f"ALTER TABLE {tbl} MODIFY {col} {compiled}"
    return None


def coerce_for_column(value: Any, col_type: TypeEngine) -> Any:
    """Booleans become 0/1 for numeric columns; strict backends refuse them there."""
    if isinstance(value, bool) and type_rank(col_type) in (1, 2):
        return int(value)
    return value
