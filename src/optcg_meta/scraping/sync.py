"""
Sync tournaments from the Limitless API into the relational store.

Two entry points mirror the two source calls:

- ``sync_tournament_list`` discovers circuit tournaments and inserts any new
  ones (existing rows are never overwritten at this stage).
- ``sync_single_tournament`` replaces one tournament's standings, decklist
  cards and pairings in a single transaction.

``run_sync`` chains both for a batch, pacing source calls with a fixed
interval and recording per-tournament outcomes instead of aborting.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

import polars as pl
import requests
from sqlalchemy import delete, insert, text, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from tqdm import tqdm

from optcg_meta.core.config import SyncConfig
from optcg_meta.core.constants import (
    DEFAULT_FORMAT_LABEL,
    DEFAULT_PLATFORM,
    DEFAULT_SYNC_LIMIT,
    MAX_SYNC_MESSAGE_LENGTH,
)
from optcg_meta.scraping.api import (
    get_circuit_tournaments,
    get_tournament_pairings,
    get_tournament_standings,
    matches_name_filter,
)
from optcg_meta.scraping.normalize import (
    build_card_rows,
    build_pairing_rows,
    build_standing_rows,
    compute_placings,
    round_count,
)
from optcg_meta.sql.load import load_standing_counts_df, load_tournaments_df
from optcg_meta.sql.models import (
    DecklistCard,
    Pairing,
    Standing,
    SyncLog,
    Tournament,
)
from optcg_meta.sql.write import batch_insert

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SyncResult:
    """Outcome of syncing one tournament."""

    success: bool
    message: str
    standings: int = 0
    cards: int = 0
    pairings: int = 0


@dataclass
class SyncSelection:
    """Tournaments chosen for a detail sync plus the counts behind the choice."""

    tournaments: list[dict] = field(default_factory=list)
    total_tournaments: int = 0
    unsynced_count: int = 0


class RateLimiter:
    """Fixed-interval pacing between calls to the source.

    ``wait`` sleeps until ``interval`` seconds have passed since the previous
    call finished; used as a context manager it also records the finish time.
    The first call never waits.
    """

    def __init__(
        self,
        interval: float,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval = max(0.0, float(interval))
        self._sleep = sleep
        self._clock = clock
        self._last: Optional[float] = None
        self._lock = threading.Lock()

    def wait(self) -> float:
        with self._lock:
            if self._last is None or self.interval <= 0:
                return 0.0
            remaining = self._last + self.interval - self._clock()
            if remaining > 0:
                self._sleep(remaining)
                return remaining
            return 0.0

    def mark(self) -> None:
        with self._lock:
            self._last = self._clock()

    def __enter__(self) -> "RateLimiter":
        self.wait()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.mark()
        return False


# One lock per tournament id; a sync of the same tournament never interleaves
_TOURNAMENT_LOCKS: dict[str, threading.Lock] = {}
_TOURNAMENT_LOCKS_GUARD = threading.Lock()


@contextmanager
def tournament_lock(tournament_id: str) -> Iterator[None]:
    """Serialize syncs of ``tournament_id`` within this process."""
    with _TOURNAMENT_LOCKS_GUARD:
        lock = _TOURNAMENT_LOCKS.setdefault(tournament_id, threading.Lock())
    with lock:
        yield


def _advisory_lock(conn: Connection, tournament_id: str) -> None:
    # Cross-process serialization; released when the transaction ends
    if conn.dialect.name == "postgresql":
        conn.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:tid))"),
            {"tid": tournament_id},
        )


def _as_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def sync_tournament_list(
    engine: Engine,
    *,
    config: Optional[SyncConfig] = None,
    session: Optional[requests.Session] = None,
) -> int:
    """Discover circuit tournaments and insert the new ones.

    Existing tournament rows are left untouched (``ON CONFLICT DO NOTHING``);
    round count and player count are filled in by the detail sync.

    Returns
    -------
    int
        Number of matching tournaments returned by the source
    """
    config = config or SyncConfig.from_env()
    tournaments = get_circuit_tournaments(config=config, session=session)
    now = _now_iso()
    rows = [
        {
            "id": str(t["id"]),
            "name": t.get("name") or "",
            "date": t.get("date") or "",
            "player_count": _as_int(t.get("players")),
            "platform": DEFAULT_PLATFORM,
            "format": t.get("format") or DEFAULT_FORMAT_LABEL,
            "round_count": 0,
            "synced_at": now,
        }
        for t in tournaments
        if t.get("id") is not None and matches_name_filter(t, config.name_filter)
    ]
    with engine.begin() as conn:
        batch_insert(conn, Tournament, rows, config.insert_batch_size)
    logger.info(
        f"Discovered {len(rows)} circuit tournaments "
        f"({len(tournaments)} returned by source)"
    )
    return len(rows)


def _start_sync_log(engine: Engine, tournament_id: str) -> int:
    with engine.begin() as conn:
        result = conn.execute(
            insert(SyncLog).values(
                tournament_id=tournament_id,
                sync_type="full",
                status="running",
                started_at=_now_iso(),
            )
        )
        return result.inserted_primary_key[0]


def _finish_sync_log(
    engine: Engine, log_id: int, status: str, message: str
) -> None:
    with engine.begin() as conn:
        conn.execute(
            update(SyncLog)
            .where(SyncLog.id == log_id)
            .values(
                status=status,
                message=message[:MAX_SYNC_MESSAGE_LENGTH],
                completed_at=_now_iso(),
            )
        )


def _fetch_detail(
    tournament_id: str,
    config: SyncConfig,
    session: Optional[requests.Session],
) -> tuple[list[dict], list[dict]]:
    """Fetch standings and pairings concurrently."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        standings_future = pool.submit(
            get_tournament_standings, tournament_id, config=config, session=session
        )
        pairings_future = pool.submit(
            get_tournament_pairings, tournament_id, config=config, session=session
        )
        return standings_future.result(), pairings_future.result()


def _replace_tournament_rows(
    engine: Engine,
    tournament_id: str,
    *,
    standing_rows: list[dict],
    card_rows: list[dict],
    pairing_rows: list[dict],
    rounds: int,
    batch_size: int,
) -> tuple[int, int, int]:
    """Swap in fresh child rows; returns the (standings, cards, pairings) stored."""
    with tournament_lock(tournament_id):
        with engine.begin() as conn:
            _advisory_lock(conn, tournament_id)
            conn.execute(
                update(Tournament)
                .where(Tournament.id == tournament_id)
                .values(
                    round_count=rounds,
                    player_count=len(standing_rows),
                    synced_at=_now_iso(),
                )
            )
            # Children before parents
            conn.execute(
                delete(DecklistCard).where(
                    DecklistCard.tournament_id == tournament_id
                )
            )
            conn.execute(
                delete(Standing).where(Standing.tournament_id == tournament_id)
            )
            conn.execute(
                delete(Pairing).where(Pairing.tournament_id == tournament_id)
            )
            return (
                batch_insert(conn, Standing, standing_rows, batch_size),
                batch_insert(conn, DecklistCard, card_rows, batch_size),
                batch_insert(conn, Pairing, pairing_rows, batch_size),
            )


def sync_single_tournament(
    engine: Engine,
    tournament_id: str,
    *,
    config: Optional[SyncConfig] = None,
    session: Optional[requests.Session] = None,
) -> SyncResult:
    """Re-sync one tournament's standings, decklist cards and pairings.

    Child rows are deleted and reinserted inside one transaction while holding
    the tournament's lock, so repeated syncs with unchanged source data leave
    the store identical. Any failure is recorded in ``sync_log`` and returned
    as ``SyncResult(success=False)``.
    """
    config = config or SyncConfig.from_env()
    log_id = _start_sync_log(engine, tournament_id)

    try:
        standings, pairings = _fetch_detail(tournament_id, config, session)

        ordered = compute_placings(standings)
        standing_rows = build_standing_rows(tournament_id, ordered)
        card_rows = build_card_rows(tournament_id, ordered)
        pairing_rows = build_pairing_rows(tournament_id, pairings)

        stored = _replace_tournament_rows(
            engine,
            tournament_id,
            standing_rows=standing_rows,
            card_rows=card_rows,
            pairing_rows=pairing_rows,
            rounds=round_count(pairings),
            batch_size=config.insert_batch_size,
        )
    except Exception as e:
        message = str(e) or e.__class__.__name__
        logger.error(f"Sync failed for tournament {tournament_id}: {message}")
        try:
            _finish_sync_log(engine, log_id, "error", message)
        except SQLAlchemyError as log_error:
            logger.error(
                f"Could not record sync failure for {tournament_id}: {log_error}"
            )
        return SyncResult(success=False, message=message)

    built = (len(standing_rows), len(card_rows), len(pairing_rows))
    for kind, n_built, n_stored in zip(
        ("standings", "cards", "pairings"), built, stored
    ):
        if n_stored < n_built:
            logger.warning(
                f"Tournament {tournament_id}: {n_built - n_stored} of {n_built} "
                f"{kind} rows collided on their primary key and were skipped"
            )
    n_standings, n_cards, n_pairings = stored
    counts = (
        f"{n_standings} standings, {n_cards} cards, {n_pairings} pairings"
    )
    _finish_sync_log(engine, log_id, "success", f"Synced {counts}")
    return SyncResult(
        success=True,
        message=f"Successfully synced tournament {tournament_id}: {counts}",
        standings=n_standings,
        cards=n_cards,
        pairings=n_pairings,
    )


def select_tournaments_to_sync(
    engine: Engine,
    *,
    limit: int = DEFAULT_SYNC_LIMIT,
    sync_all: bool = False,
) -> SyncSelection:
    """Choose which tournaments the next batch should re-sync.

    Tournaments without any standings come first (newest date first), then
    already-synced tournaments from least to most recently synced.
    """
    tournaments = load_tournaments_df(engine)
    counts = load_standing_counts_df(engine)

    unsynced = tournaments.join(
        counts, left_on="id", right_on="tournament_id", how="anti"
    ).sort(["date", "id"], descending=[True, False])
    already_synced = tournaments.join(
        counts, left_on="id", right_on="tournament_id", how="semi"
    ).sort(["synced_at", "id"])

    prioritized = pl.concat([unsynced, already_synced])
    if not sync_all:
        prioritized = prioritized.head(max(0, limit))

    return SyncSelection(
        tournaments=prioritized.select(["id", "name"]).to_dicts(),
        total_tournaments=tournaments.height,
        unsynced_count=unsynced.height,
    )


def run_sync(
    engine: Engine,
    *,
    sync_all: bool = False,
    limit: int = DEFAULT_SYNC_LIMIT,
    config: Optional[SyncConfig] = None,
    session: Optional[requests.Session] = None,
    sleep: Callable[[float], None] = time.sleep,
    progress: bool = False,
) -> dict:
    """Discover tournaments, then detail-sync a prioritized batch.

    Parameters
    ----------
    engine : Engine
        Store to write to
    sync_all : bool
        Sync every tournament instead of the first ``limit``
    limit : int
        Batch size when ``sync_all`` is False
    config : SyncConfig, optional
        Source and pacing configuration
    session : requests.Session, optional
        Shared HTTP session
    sleep : callable
        Sleep function used for pacing (injectable for tests)
    progress : bool
        Show a tqdm progress bar over the batch

    Returns
    -------
    dict
        ``tournaments_discovered``, ``total_tournaments``, ``unsynced_before``,
        ``tournaments_synced`` (list of ``{"id", "success", "message"}``) and
        ``errors``
    """
    config = config or SyncConfig.from_env()
    limiter = RateLimiter(config.api_delay, sleep=sleep)
    errors: list[str] = []
    discovered = 0

    try:
        with limiter:
            discovered = sync_tournament_list(engine, config=config, session=session)
    except Exception as e:
        message = f"Failed to fetch tournaments: {e}"
        logger.error(message)
        errors.append(message)

    selection = select_tournaments_to_sync(engine, limit=limit, sync_all=sync_all)
    batch = selection.tournaments
    total = len(batch)
    logger.info(
        f"Syncing {total} of {selection.total_tournaments} tournaments "
        f"({selection.unsynced_count} never synced)"
    )

    results: list[dict] = []
    items = tqdm(batch, desc="Syncing tournaments") if progress else batch
    for i, t in enumerate(items, start=1):
        label = t.get("name") or t["id"]
        with limiter:
            try:
                result = sync_single_tournament(
                    engine, t["id"], config=config, session=session
                )
            except Exception as e:
                logger.exception(f"Unexpected error syncing {t['id']}")
                result = SyncResult(success=False, message=str(e))
        results.append(
            {"id": t["id"], "success": result.success, "message": result.message}
        )
        if result.success:
            logger.info(f"[{i}/{total}] ✓ {label}")
        else:
            logger.warning(f"[{i}/{total}] ✗ {label}: {result.message}")

    return {
        "tournaments_discovered": discovered,
        "total_tournaments": selection.total_tournaments,
        "unsynced_before": selection.unsynced_count,
        "tournaments_synced": results,
        "errors": errors,
    }
