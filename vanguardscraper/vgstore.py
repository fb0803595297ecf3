"""
vanguardscraper.vgstore
=======================

Durable storage of holdings snapshots.

Each successful job appends one batch of rows to the ``investments`` table,
all stamped with the same ``scraped_at``. A batch is written in a single
transaction, so readers see either the previous snapshot or the complete new
one.

Money columns use :class:`ExactDecimal`: SQLite has no exact numeric type,
so values are stored there as their canonical decimal text and turned back
into :class:`~decimal.Decimal` on read. Engines with a real ``NUMERIC`` type
receive the ``Decimal`` objects directly. No value ever passes through a
float.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import TypeDecorator

from .vgerrors import StorageError
from .vgmodels import MONEY_FIELDS, StoredHolding

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.engine import Dialect, Engine

    from .vgmodels import HoldingRecord

logger = logging.getLogger(__name__)


class ExactDecimal(TypeDecorator):
    """Exact decimal column: ``NUMERIC`` where available, canonical text on SQLite."""

    impl = Numeric
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect) -> Any:
        if dialect.name == "sqlite":
            return dialect.type_descriptor(Text())
        return dialect.type_descriptor(Numeric(asdecimal=True))

    def process_bind_param(self, value: Decimal | None, dialect: Dialect) -> Any:
        if value is None:
            return None
        if not isinstance(value, Decimal):
            msg = f"expected Decimal, got {type(value).__name__}"
            raise TypeError(msg)
        if dialect.name == "sqlite":
            return str(value)
        return value

    def process_result_value(self, value: Any, dialect: Dialect) -> Decimal | None:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return value
        return Decimal(str(value))


metadata = MetaData()

investments = Table(
    "investments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("scraped_at", DateTime(timezone=True), nullable=False),
    Column("name", Text, nullable=False),
    *(Column(name, ExactDecimal(), nullable=False) for name in MONEY_FIELDS),
)


class HoldingStore:
    """
    Append-only snapshot store over a SQLAlchemy engine.

    The engine's connection pool and the database's own locking are the only
    concurrency control; the scheduler writes from a worker thread while the
    read endpoint queries from the web server's thread pool.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def connect(cls, url: str) -> HoldingStore:
        """Create an engine for ``url`` and make sure the schema exists."""
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        try:
            engine = create_engine(url, connect_args=connect_args)
        except SQLAlchemyError as e:
            msg = f"invalid database url: {e}"
            raise StorageError(msg) from e

        location = engine.url.render_as_string(hide_password=True)
        try:
            metadata.create_all(engine)
        except SQLAlchemyError as e:
            engine.dispose()
            msg = f"failed to open storage at {location}: {e}"
            raise StorageError(msg) from e
        logger.info("connected to storage %s", location)
        return cls(engine)

    def insert(
        self,
        records: Sequence[HoldingRecord],
        scraped_at: datetime | None = None,
    ) -> int:
        """
        Append ``records`` as one snapshot and return the number of rows written.

        The batch is a single executemany inside one transaction; on any
        database error nothing is written and :class:`StorageError` is raised.
        """
        if not records:
            return 0
        stamp = (scraped_at or datetime.now(tz=UTC)).astimezone(UTC)
        rows = [
            {"scraped_at": stamp, "name": r.name, **{f: getattr(r, f) for f in MONEY_FIELDS}}
            for r in records
        ]
        try:
            with self.engine.begin() as conn:
                conn.execute(investments.insert(), rows)
        except SQLAlchemyError as e:
            msg = f"failed to insert {len(rows)} holdings: {e}"
            raise StorageError(msg) from e
        logger.info("saved %s holdings scraped at %s", len(rows), stamp.isoformat())
        return len(rows)

    def fetch_all(self) -> list[StoredHolding]:
        """Return every stored row, oldest first."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(select(investments).order_by(investments.c.id))
                return [_to_stored(row._asdict()) for row in result]
        except SQLAlchemyError as e:
            msg = f"failed to read holdings: {e}"
            raise StorageError(msg) from e

    def close(self) -> None:
        self.engine.dispose()


def _to_stored(row: dict[str, Any]) -> StoredHolding:
    # SQLite hands timestamps back without their zone; they were written as UTC
    stamp = row["scraped_at"]
    if stamp is not None and stamp.tzinfo is None:
        row["scraped_at"] = stamp.replace(tzinfo=UTC)
    return StoredHolding(**row)
