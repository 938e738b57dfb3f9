"""Global constants for the bracketeer application."""

# Firestore collections
TOURNAMENTS_COLLECTION = "tournaments"
USERS_COLLECTION = "users"

# Tournament lifecycle
STATUS_REGISTRATION = "registration"
STATUS_STARTED = "started"
STATUS_FINISHED = "finished"
ACTIVE_STATUSES = (STATUS_REGISTRATION, STATUS_STARTED)

# Match lifecycle
MATCH_PENDING = "pending"
MATCH_COMPLETED = "completed"

COMPLETED_BY_CONSENSUS = "consensus"
COMPLETED_BY_ADMIN = "admin"
COMPLETED_BY_GAMEPLAY = "gameplay"
COMPLETED_BY_GAME_REPORT = "report"

# Sides a game server reports a winner by, in player1, player2 order
GAME_REPORT_SIDES = ("white", "black")

MIN_PARTICIPANTS = 2
AUTO_START_SIZES = (2, 4, 8, 16, 32, 64)

# Field limits
MAX_USERNAME_LENGTH = 50
MAX_GAMERTAG_LENGTH = 50
MAX_TOURNAMENT_NAME_LENGTH = 100
GAMERTAG_PLATFORMS = ("playstation", "xbox", "steam")

# Default games catalog
DEFAULT_GAMES = {
    "fifa": "FIFA",
    "cod": "Call of Duty",
    "chess": "Chess",
    "tiktaktoe": "TikTakToe",
}

# Auto-tournament defaults
AUTO_TOURNAMENT_GAMES = ("fifa", "cod", "chess", "tiktaktoe")
AUTO_TOURNAMENT_SIZES = (2, 4, 8, 16)
AUTO_TOURNAMENT_INTERVAL_SECONDS = 6 * 60 * 60
AUTO_TOURNAMENT_RETENTION_HOURS = 24
AUTO_TOURNAMENT_REPLACEMENT_DELAY = 1.0

ADMIN_TOKEN_HEADER = "X-Admin-Token"  # nosec B105
