from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    PrimaryKeyConstraint,
    String,
    Text,
)

from .constants import SCHEMA, qualified
from .engine import Base


class Tournament(Base):
    __tablename__ = "tournaments"
    __table_args__ = (
        Index("ix_tournaments_date", "date"),
        {"schema": SCHEMA},
    )

    # Source-assigned id; stable across re-syncs
    id = Column(Text, primary_key=True)
    name = Column(Text, nullable=False)
    date = Column(Text, nullable=False)  # ISO8601
    player_count = Column(Integer, nullable=False)
    platform = Column(Text, nullable=False)
    format = Column(Text, nullable=False)
    # max(pairings.round); 0 until the first detail sync
    round_count = Column(Integer, nullable=False)
    synced_at = Column(Text, nullable=False)  # ISO8601


class Standing(Base):
    __tablename__ = "standings"
    __table_args__ = (
        PrimaryKeyConstraint("tournament_id", "player", name="standings_pk"),
        Index("ix_standings_deck_id", "deck_id"),
        {"schema": SCHEMA},
    )

    tournament_id = Column(
        Text, ForeignKey(f"{qualified('tournaments')}.id"), nullable=False
    )
    player = Column(Text, nullable=False)
    display_name = Column(Text, nullable=False)
    country = Column(Text, nullable=False)
    placing = Column(Integer, nullable=True)
    wins = Column(Integer, nullable=False)
    losses = Column(Integer, nullable=False)
    ties = Column(Integer, nullable=False)
    # Set when the player withdrew; placing is then not a competitive result
    drop_round = Column(Integer, nullable=True)
    deck_id = Column(Text, nullable=True)  # e.g. "OP02-013"
    deck_name = Column(Text, nullable=True)
    leader_name = Column(Text, nullable=True)
    leader_set = Column(Text, nullable=True)
    leader_number = Column(Text, nullable=True)


class DecklistCard(Base):
    __tablename__ = "decklist_cards"
    __table_args__ = (
        PrimaryKeyConstraint(
            "tournament_id",
            "standing_player",
            "card_name",
            "card_set",
            name="decklist_cards_pk",
        ),
        Index("decklist_cards_card_set_idx", "card_set"),
        Index("decklist_cards_tournament_id_idx", "tournament_id"),
        {"schema": SCHEMA},
    )

    tournament_id = Column(Text, nullable=False)
    standing_player = Column(Text, nullable=False)
    card_type = Column(Text, nullable=False)  # character/event/stage
    card_name = Column(Text, nullable=False)
    card_set = Column(Text, nullable=False)
    card_number = Column(Text, nullable=False)
    count = Column(Integer, nullable=False)
    card_id = Column(Text, nullable=True)  # "{set}-{number}"


class Pairing(Base):
    __tablename__ = "pairings"
    __table_args__ = (
        PrimaryKeyConstraint(
            "tournament_id", "round", "tbl", name="pairings_pk"
        ),
        {"schema": SCHEMA},
    )

    tournament_id = Column(
        Text, ForeignKey(f"{qualified('tournaments')}.id"), nullable=False
    )
    round = Column(Integer, nullable=False)
    phase = Column(Text, nullable=False)
    tbl = Column(Integer, nullable=False)
    player1 = Column(Text, nullable=False)
    player2 = Column(Text, nullable=False)  # "" = bye
    winner = Column(Text, nullable=True)  # "" or NULL = draw


class SyncLog(Base):
    __tablename__ = "sync_log"
    __table_args__ = ({"schema": SCHEMA},)

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Text, nullable=False)
    sync_type = Column(String(32), nullable=False)
    status = Column(String(16), nullable=False)  # running/success/error
    message = Column(Text, nullable=True)
    started_at = Column(Text, nullable=False)
    completed_at = Column(Text, nullable=True)
