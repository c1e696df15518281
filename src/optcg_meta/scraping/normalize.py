"""
Normalize raw Limitless payloads into store rows.

Standings
    Placings are computed when the source omits them: non-dropped players
    first (wins descending, then losses ascending), dropped players last in
    source order. A non-null source placing is always trusted verbatim.

Decklists
    The source nests cards under ``character``/``event``/``stage`` arrays; the
    type is injected from the array a card came from.

Pairings
    Missing or zero table numbers are synthesized per (round, phase) in source
    order. Byes and draws are stored as empty strings.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional

from optcg_meta.core.constants import DECKLIST_SECTIONS, DEFAULT_PHASE


def _as_int(value: Any, default: Optional[int] = 0) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _record(standing: dict) -> dict:
    return standing.get("record") or {}


def is_dropped(standing: dict) -> bool:
    return standing.get("drop") is not None


def _placing_sort_key(standing: dict) -> tuple[int, int, int]:
    if is_dropped(standing):
        # Constant key keeps dropped players in source order (stable sort)
        return (1, 0, 0)
    record = _record(standing)
    return (0, -_as_int(record.get("wins")), _as_int(record.get("losses")))


def compute_placings(standings: Iterable[dict]) -> list[tuple[dict, int]]:
    """Order standings for placement and resolve each placing.

    Parameters
    ----------
    standings : iterable of dict
        Raw standing objects as returned by the source

    Returns
    -------
    list of (dict, int)
        Standings in placement order, paired with the source placing when
        present and ``index + 1`` otherwise
    """
    ordered = sorted(standings, key=_placing_sort_key)
    resolved = []
    for index, standing in enumerate(ordered):
        placing = _as_int(standing.get("placing"), default=None)
        resolved.append((standing, placing if placing is not None else index + 1))
    return resolved


def player_key(standing: dict, index: int) -> str:
    """Stable per-tournament player identifier used as the standing key."""
    name = standing.get("name") or ""
    return standing.get("player") or name.lower() or f"unknown-{index}"


def flatten_decklist(standing: dict) -> list[dict]:
    """Flatten the nested decklist into one dict per card with a ``type`` key."""
    decklist = standing.get("decklist") or {}
    cards = []
    for section in DECKLIST_SECTIONS:
        for card in decklist.get(section) or []:
            cards.append({**card, "type": section})
    return cards


def build_standing_rows(
    tournament_id: str, ordered: list[tuple[dict, int]]
) -> list[dict]:
    """Build ``standings`` rows from the output of ``compute_placings``."""
    rows = []
    for index, (standing, placing) in enumerate(ordered):
        record = _record(standing)
        deck = standing.get("deck") or {}
        leader = (standing.get("decklist") or {}).get("leader") or {}
        rows.append(
            {
                "tournament_id": tournament_id,
                "player": player_key(standing, index),
                "display_name": standing.get("name")
                or standing.get("player")
                or "",
                "country": standing.get("country") or "",
                "placing": placing,
                "wins": _as_int(record.get("wins")),
                "losses": _as_int(record.get("losses")),
                "ties": _as_int(record.get("ties")),
                "drop_round": _as_int(standing.get("drop"), default=None),
                "deck_id": deck.get("id"),
                "deck_name": deck.get("name"),
                "leader_name": leader.get("name"),
                "leader_set": leader.get("set"),
                "leader_number": leader.get("number"),
            }
        )
    return rows


def build_card_rows(
    tournament_id: str, ordered: list[tuple[dict, int]]
) -> list[dict]:
    """Build ``decklist_cards`` rows keyed by the same player key as standings."""
    rows = []
    for index, (standing, _placing) in enumerate(ordered):
        key = player_key(standing, index)
        for card in flatten_decklist(standing):
            card_set = str(card.get("set") or "")
            number = str(card.get("number") or "")
            rows.append(
                {
                    "tournament_id": tournament_id,
                    "standing_player": key,
                    "card_type": card["type"],
                    "card_name": card.get("name") or "",
                    "card_set": card_set,
                    "card_number": number,
                    "count": _as_int(card.get("count")),
                    "card_id": f"{card_set}-{number}",
                }
            )
    return rows


def normalize_phase(phase: Any) -> str:
    # Falsy phases (None, 0, "") all collapse to the default phase
    return str(phase or DEFAULT_PHASE)


def build_pairing_rows(tournament_id: str, pairings: Iterable[dict]) -> list[dict]:
    """Build ``pairings`` rows, synthesizing table numbers where missing.

    Counters are scoped per (round, phase), so numbering restarts at 1 for
    every new round or phase.
    """
    counters: dict[tuple[int, str], int] = {}
    rows = []
    for pairing in pairings:
        round_no = _as_int(pairing.get("round"))
        phase = normalize_phase(pairing.get("phase"))
        table = _as_int(pairing.get("table"))
        if not table:
            key = (round_no, phase)
            counters[key] = counters.get(key, 0) + 1
            table = counters[key]
        rows.append(
            {
                "tournament_id": tournament_id,
                "round": round_no,
                "phase": phase,
                "tbl": table,
                "player1": pairing.get("player1") or "",
                "player2": pairing.get("player2") or "",
                "winner": pairing.get("winner") or "",
            }
        )
    return rows


def round_count(pairings: Iterable[dict]) -> int:
    """Highest round number across pairings (0 when there are none)."""
    return max((_as_int(p.get("round")) for p in pairings), default=0)
