"""Proximity search, leaderboard cache, and retention jobs for the Omni marketplace."""

__version__ = "0.1.0"
