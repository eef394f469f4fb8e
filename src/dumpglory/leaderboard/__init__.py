"""Leaderboard module — incremental ranking by average DUMP held."""

from dumpglory.leaderboard.skiplist import LeaderboardIndex

__all__ = ["LeaderboardIndex"]
