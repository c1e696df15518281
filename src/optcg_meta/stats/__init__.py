"""Leader, matchup, decklist, format, player, tournament and card statistics."""

from __future__ import annotations

from optcg_meta.stats.cards import get_cards_by_leader, get_most_played_cards
from optcg_meta.stats.decklists import (
    GroupedDecklist,
    deck_fingerprint,
    filter_decklists,
    get_decklist_entry,
    get_decklist_for_player,
    get_decklists,
    get_grouped_decklists,
    get_top_decklists,
    group_decklists,
)
from optcg_meta.stats.formats import (
    FormatInfo,
    ResolvedFormat,
    get_all_formats,
    get_current_format,
    get_format_by_set_code,
    get_special_event_ids,
    get_standard_tournament_ids,
    is_special_event,
    resolve_format_filter,
)
from optcg_meta.stats.leaders import (
    compute_leader_stats,
    get_leader_detail,
    get_leader_name_map,
    get_leader_stats,
    get_leader_trends,
    get_meta_share,
)
from optcg_meta.stats.matchups import (
    compute_matchups,
    get_matchup_data,
    get_matchup_matrix,
)
from optcg_meta.stats.players import (
    compute_player_leaderboard,
    get_player_detail,
    get_player_leaderboard,
)
from optcg_meta.stats.tournaments import (
    compute_dashboard_stats,
    compute_recent_tournaments,
    get_dashboard_stats,
    get_recent_tournaments,
    get_tournament,
    get_tournament_standings,
    get_tournaments,
)
from optcg_meta.stats.trends import get_meta_trends, get_win_rate_trends

__all__ = [
    # Leaders
    "compute_leader_stats",
    "get_leader_stats",
    "get_leader_detail",
    "get_leader_trends",
    "get_meta_share",
    "get_leader_name_map",
    # Matchups
    "compute_matchups",
    "get_matchup_data",
    "get_matchup_matrix",
    # Decklists
    "GroupedDecklist",
    "deck_fingerprint",
    "group_decklists",
    "get_grouped_decklists",
    "get_decklist_for_player",
    "filter_decklists",
    "get_decklists",
    "get_top_decklists",
    "get_decklist_entry",
    # Formats
    "FormatInfo",
    "ResolvedFormat",
    "get_current_format",
    "get_all_formats",
    "get_format_by_set_code",
    "get_special_event_ids",
    "get_standard_tournament_ids",
    "is_special_event",
    "resolve_format_filter",
    # Players
    "compute_player_leaderboard",
    "get_player_leaderboard",
    "get_player_detail",
    # Tournaments
    "compute_dashboard_stats",
    "compute_recent_tournaments",
    "get_tournaments",
    "get_tournament",
    "get_tournament_standings",
    "get_dashboard_stats",
    "get_recent_tournaments",
    # Trends and cards
    "get_meta_trends",
    "get_win_rate_trends",
    "get_most_played_cards",
    "get_cards_by_leader",
]
