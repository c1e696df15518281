"""Conflict-tolerant batched inserts shared by the sync pipeline."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Connection
from sqlalchemy.sql.schema import Table

from optcg_meta.core.constants import DEFAULT_INSERT_BATCH_SIZE

logger = logging.getLogger(__name__)


def _insert_for(conn: Connection, table: Table):
    """Return a dialect-specific INSERT supporting ON CONFLICT DO NOTHING."""
    if conn.dialect.name == "sqlite":
        return sqlite_insert(table)
    return pg_insert(table)


def chunked(rows: Sequence[dict], size: int) -> Iterable[Sequence[dict]]:
    """Yield consecutive slices of ``rows`` with at most ``size`` items."""
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def batch_insert(
    conn: Connection,
    model,
    rows: Sequence[dict],
    batch_size: int = DEFAULT_INSERT_BATCH_SIZE,
) -> int:
    """Insert rows in batches with ON CONFLICT DO NOTHING.

    Each batch is its own statement, so resending a batch after a retry is
    safe. Runs on the caller's connection so the caller owns the transaction.

    Returns the number of rows actually stored; rows skipped on a key
    conflict are not counted.
    """
    if not rows:
        return 0
    table = model.__table__
    submitted = 0
    inserted = 0
    for batch in chunked(list(rows), batch_size):
        stmt = _insert_for(conn, table).values(list(batch))
        result = conn.execute(stmt.on_conflict_do_nothing())
        submitted += len(batch)
        # Some drivers report -1 when the count is unknown
        inserted += result.rowcount if result.rowcount >= 0 else len(batch)
    logger.debug(
        f"Inserted {inserted} of {submitted} rows into {table.name}"
    )
    return inserted
