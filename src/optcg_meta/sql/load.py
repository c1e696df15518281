from __future__ import annotations

from typing import Any, Optional, Sequence

import pandas as pd
import polars as pl
from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

from optcg_meta.sql.constants import qualified

TOURNAMENT_COLUMNS: dict[str, pl.DataType] = {
    "id": pl.Utf8,
    "name": pl.Utf8,
    "date": pl.Utf8,
    "player_count": pl.Int64,
    "platform": pl.Utf8,
    "format": pl.Utf8,
    "round_count": pl.Int64,
    "synced_at": pl.Utf8,
}

STANDING_COLUMNS: dict[str, pl.DataType] = {
    "tournament_id": pl.Utf8,
    "tournament_name": pl.Utf8,
    "tournament_date": pl.Utf8,
    "tournament_player_count": pl.Int64,
    "player": pl.Utf8,
    "display_name": pl.Utf8,
    "country": pl.Utf8,
    "placing": pl.Int64,
    "wins": pl.Int64,
    "losses": pl.Int64,
    "ties": pl.Int64,
    "drop_round": pl.Int64,
    "deck_id": pl.Utf8,
    "deck_name": pl.Utf8,
    "leader_name": pl.Utf8,
    "leader_set": pl.Utf8,
    "leader_number": pl.Utf8,
}

PAIRING_COLUMNS: dict[str, pl.DataType] = {
    "tournament_id": pl.Utf8,
    "round": pl.Int64,
    "phase": pl.Utf8,
    "tbl": pl.Int64,
    "player1": pl.Utf8,
    "player2": pl.Utf8,
    "winner": pl.Utf8,
}

CARD_COLUMNS: dict[str, pl.DataType] = {
    "tournament_id": pl.Utf8,
    "standing_player": pl.Utf8,
    "card_type": pl.Utf8,
    "card_name": pl.Utf8,
    "card_set": pl.Utf8,
    "card_number": pl.Utf8,
    "count": pl.Int64,
    "card_id": pl.Utf8,
}

CARD_SET_COLUMNS: dict[str, pl.DataType] = {
    "card_set": pl.Utf8,
    "tournament_id": pl.Utf8,
    "tournament_date": pl.Utf8,
}


def _read_sql(
    engine: Engine,
    sql: str,
    params: Optional[dict[str, Any]] = None,
    columns: Optional[dict[str, pl.DataType]] = None,
) -> pl.DataFrame:
    """Read SQL into a Polars DataFrame via pandas for compatibility.

    Every column listed in ``columns`` is cast explicitly: aggregate and
    integer columns can come back from the driver as strings, floats (NaN for
    NULL) or Python objects, and arithmetic on them must never see anything
    but a numeric dtype.
    """
    params = dict(params or {})
    clause = text(sql)
    expanding = [k for k, v in params.items() if isinstance(v, (list, tuple))]
    if expanding:
        clause = clause.bindparams(
            *[bindparam(k, expanding=True) for k in expanding]
        )
        params = {
            k: list(v) if k in expanding else v for k, v in params.items()
        }
    with engine.connect() as conn:
        pdf = pd.read_sql_query(clause, conn, params=params)
    if pdf.empty:
        return pl.DataFrame(schema=columns or {})
    df = pl.from_pandas(pdf)
    if columns:
        df = df.with_columns(
            [
                pl.col(name).cast(dtype, strict=False)
                for name, dtype in columns.items()
                if name in df.columns
            ]
        )
    return df


def _tournament_filter(
    column: str, tournament_ids: Optional[Sequence[str]], params: dict
) -> Optional[str]:
    # None means "no restriction"; an empty sequence matches nothing
    if tournament_ids is None:
        return None
    if len(tournament_ids) == 0:
        return "1 = 0"
    params["tournament_ids"] = list(tournament_ids)
    return f"{column} IN :tournament_ids"


def load_tournaments_df(engine: Engine) -> pl.DataFrame:
    """Load all tournaments, newest first."""
    sql = f"""
        SELECT id, name, date, player_count, platform, format,
               round_count, synced_at
        FROM {qualified('tournaments')}
        ORDER BY date DESC, id
    """
    return _read_sql(engine, sql, columns=TOURNAMENT_COLUMNS)


def load_standing_counts_df(engine: Engine) -> pl.DataFrame:
    """Return ``tournament_id, standing_count`` for tournaments with standings."""
    sql = f"""
        SELECT tournament_id, COUNT(*) AS standing_count
        FROM {qualified('standings')}
        GROUP BY tournament_id
    """
    return _read_sql(
        engine,
        sql,
        columns={"tournament_id": pl.Utf8, "standing_count": pl.Int64},
    )


def load_standings_df(
    engine: Engine,
    *,
    tournament_ids: Optional[Sequence[str]] = None,
    deck_id: Optional[str] = None,
    player: Optional[str] = None,
    require_deck: bool = False,
) -> pl.DataFrame:
    """Load standings joined with their tournament's name/date/player count.

    Columns produced: see ``STANDING_COLUMNS``.
    """
    where = []
    params: dict[str, Any] = {}
    t_filter = _tournament_filter("s.tournament_id", tournament_ids, params)
    if t_filter:
        where.append(t_filter)
    if deck_id is not None:
        where.append("s.deck_id = :deck_id")
        params["deck_id"] = deck_id
    if player is not None:
        where.append("s.player = :player")
        params["player"] = player
    if require_deck:
        where.append("s.deck_id IS NOT NULL")
    where_clause = f"WHERE {' AND '.join(where)}" if where else ""

    sql = f"""
        SELECT
            s.tournament_id,
            t.name AS tournament_name,
            t.date AS tournament_date,
            t.player_count AS tournament_player_count,
            s.player,
            s.display_name,
            s.country,
            s.placing,
            s.wins,
            s.losses,
            s.ties,
            s.drop_round,
            s.deck_id,
            s.deck_name,
            s.leader_name,
            s.leader_set,
            s.leader_number
        FROM {qualified('standings')} s
        LEFT JOIN {qualified('tournaments')} t ON t.id = s.tournament_id
        {where_clause}
    """
    return _read_sql(engine, sql, params, columns=STANDING_COLUMNS)


def load_pairings_df(
    engine: Engine,
    *,
    tournament_ids: Optional[Sequence[str]] = None,
) -> pl.DataFrame:
    """Load pairings, optionally restricted to a set of tournaments."""
    params: dict[str, Any] = {}
    t_filter = _tournament_filter("tournament_id", tournament_ids, params)
    where_clause = f"WHERE {t_filter}" if t_filter else ""
    sql = f"""
        SELECT tournament_id, round, phase, tbl, player1, player2, winner
        FROM {qualified('pairings')}
        {where_clause}
    """
    return _read_sql(engine, sql, params, columns=PAIRING_COLUMNS)


def load_decklist_cards_df(
    engine: Engine,
    *,
    tournament_ids: Optional[Sequence[str]] = None,
    deck_id: Optional[str] = None,
    tournament_id: Optional[str] = None,
    player: Optional[str] = None,
) -> pl.DataFrame:
    """Load decklist cards; ``deck_id`` restricts to decks of that leader."""
    where = []
    params: dict[str, Any] = {}
    t_filter = _tournament_filter("dc.tournament_id", tournament_ids, params)
    if t_filter:
        where.append(t_filter)
    if tournament_id is not None:
        where.append("dc.tournament_id = :tournament_id")
        params["tournament_id"] = tournament_id
    if player is not None:
        where.append("dc.standing_player = :player")
        params["player"] = player
    join_clause = ""
    if deck_id is not None:
        join_clause = f"""
        JOIN {qualified('standings')} s
          ON s.tournament_id = dc.tournament_id
         AND s.player = dc.standing_player
        """
        where.append("s.deck_id = :deck_id")
        params["deck_id"] = deck_id
    where_clause = f"WHERE {' AND '.join(where)}" if where else ""

    sql = f"""
        SELECT
            dc.tournament_id,
            dc.standing_player,
            dc.card_type,
            dc.card_name,
            dc.card_set,
            dc.card_number,
            dc.count,
            dc.card_id
        FROM {qualified('decklist_cards')} dc
        {join_clause}
        {where_clause}
    """
    return _read_sql(engine, sql, params, columns=CARD_COLUMNS)


def load_card_sets_df(engine: Engine) -> pl.DataFrame:
    """Load distinct (card_set, tournament) pairs with the tournament date."""
    sql = f"""
        SELECT DISTINCT
            dc.card_set,
            dc.tournament_id,
            t.date AS tournament_date
        FROM {qualified('decklist_cards')} dc
        JOIN {qualified('tournaments')} t ON t.id = dc.tournament_id
    """
    return _read_sql(engine, sql, columns=CARD_SET_COLUMNS)


def load_sync_watermark(engine: Engine) -> tuple[int, Optional[str]]:
    """Return (tournament count, max synced_at) as a content version."""
    sql = f"""
        SELECT COUNT(*) AS n, MAX(synced_at) AS latest
        FROM {qualified('tournaments')}
    """
    with engine.connect() as conn:
        row = conn.execute(text(sql)).one()
    return int(row.n or 0), row.latest
