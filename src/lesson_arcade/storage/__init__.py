from .kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore, KeyValueStore
from .leaderboard import LeaderboardEntry, LeaderboardStore, rank_entries

__all__ = [
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "LeaderboardEntry",
    "LeaderboardStore",
    "rank_entries",
]
