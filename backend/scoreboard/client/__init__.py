"""Python client for the scoreboard API: sync agent, local cache and CLI."""
from .cache import LocalCache
from .sync import ScoreSyncAgent, time_ago

__all__ = ['LocalCache', 'ScoreSyncAgent', 'time_ago']
