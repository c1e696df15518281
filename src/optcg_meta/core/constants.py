"""
Configuration constants for tournament ingestion and leader statistics.

This module centralizes all default parameters used by both the sync pipeline
and the statistics engine to ensure consistency and easy tuning.
"""

# =============================================================================
# Source API Configuration
# =============================================================================

LIMITLESS_HOST = "play.limitlesstcg.com"
LIMITLESS_API_BASE_URL = f"https://{LIMITLESS_HOST}/api"

# Circuit filter: organizer id on Limitless plus a name substring
DEFAULT_GAME = "OP"
DEFAULT_ORGANIZER_ID = "2339"
DEFAULT_NAME_FILTER = "chinoize"
DEFAULT_LIST_LIMIT = 500

# HTTP defaults
DEFAULT_TIMEOUT = 30.0

# =============================================================================
# Sync Configuration
# =============================================================================

# Seconds between calls to the source (pipeline-level pacing, not a retry)
DEFAULT_API_DELAY: float = 4.0

# Rows per INSERT statement
DEFAULT_INSERT_BATCH_SIZE: int = 100

# Tournaments per sync request
DEFAULT_SYNC_LIMIT: int = 5
MAX_SYNC_LIMIT: int = 50

# sync_log.message is truncated to this many characters
MAX_SYNC_MESSAGE_LENGTH: int = 1000

DEFAULT_PLATFORM = "online"
DEFAULT_FORMAT_LABEL = "OP"
DEFAULT_PHASE = 1

# Decklist sections in the source payload, in insertion order
DECKLIST_SECTIONS = ("character", "event", "stage")

# Card types that never count toward a deck's fingerprint
EXCLUDED_CARD_TYPES = frozenset({"leader", "don", "don!!"})

# =============================================================================
# Leader Statistics Parameters
# =============================================================================

# Leaders below this entry count are unranked (tier "U")
MIN_ENTRIES_FOR_TIER: int = 5

# Composite score weights
WEIGHT_WIN_RATE: float = 0.40
WEIGHT_TOP4_RATE: float = 0.30
WEIGHT_TOURNAMENT_WINS: float = 0.20
WEIGHT_PLAY_RATE: float = 0.10

# Placing points for weighted top-4 score (1st..4th)
TOP4_PLACING_POINTS = {1: 4, 2: 3, 3: 2, 4: 1}

# Divisor used to map average placing onto [0, 1]
PLACING_NORMALIZATION_SPAN: int = 63

# Percentile floors for each tier, best first
TIER_PERCENTILES = [0.90, 0.65, 0.35]
TIER_LABELS = ["S", "A", "B", "C"]
UNRANKED_TIER = "U"

# Maximum archetype groups returned for a leader
MAX_GROUPED_DECKLISTS: int = 50

# Row cap for decklist browsing, and the default size of a leader's best lists
MAX_DECKLIST_ROWS: int = 500
DEFAULT_TOP_DECKLISTS: int = 50

# Dashboard: recent winners and recent tournaments shown
RECENT_WINNERS_LIMIT: int = 10
DEFAULT_RECENT_TOURNAMENTS: int = 10

# =============================================================================
# Player Leaderboard Parameters
# =============================================================================

# (max placing, points), checked in order; dropped entries score 0
PLAYER_POINTS_TABLE = [
    (1, 16),
    (2, 12),
    (4, 8),
    (8, 6),
    (16, 4),
    (32, 2),
    (64, 1),
]

# =============================================================================
# Format Resolution
# =============================================================================

FORMAT_SET_PATTERN = r"^(OP|EB)[0-9]+$"

# EB04 is a split release; half its cards dropped during OP14, so its first
# appearance does not mark a format boundary.
IGNORED_SETS = ["EB04"]

# Exhibition events kept in tournament lists but excluded from statistics
SPECIAL_EVENT_NAMES = ["Heroine Battles"]
