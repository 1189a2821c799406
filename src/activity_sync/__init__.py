"""Activity Sync - incremental, rate-limited sync of GitHub activity."""

__version__ = "0.1.0"
