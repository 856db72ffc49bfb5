"""Constants for the ranker module."""

# Day counts per ranking period; None means "since the epoch year"
DEFAULT_PERIOD_DAYS: dict[str, int | None] = {
    "1w": 7,
    "1m": 30,
    "3m": 90,
    "6m": 180,
    "1y": 365,
    "3y": 1095,
    "all": None,
}

# Start year of the "all" period
DEFAULT_EPOCH_YEAR: int = 2020

# Rows returned by ranking queries
DEFAULT_RANKING_LIMIT: int = 50

# History rows older than this are purged
DEFAULT_HISTORY_RETENTION_DAYS: int = 365

# Look-back window of history queries
DEFAULT_HISTORY_DAYS: int = 30

# Rows returned by riser/faller queries
DEFAULT_CHANGE_LIMIT: int = 10

# Company scores are rounded to this many decimals
SCORE_DECIMALS: int = 2

DEFAULT_PLATFORM_WEIGHTS: dict[str, float] = {
    "qiita": 1.0,
    "zenn": 1.0,
    "hatena": 0.8,
}
DEFAULT_UNKNOWN_PLATFORM_WEIGHT: float = 0.5
DEFAULT_TIME_DECAY_FLOOR: float = 0.1
DEFAULT_OUTSIDE_WINDOW_WEIGHT: float = 0.5
