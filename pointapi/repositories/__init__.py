# Repository layer - Balance store / history log implementations

from .base import BaseRepository, BalanceStore, HistoryLog
from .memory import InMemoryBalanceStore, InMemoryHistoryLog
from .points_repository import UserPointRepository, PointHistoryRepository

__all__ = [
    "BaseRepository",
    "BalanceStore",
    "HistoryLog",
    "InMemoryBalanceStore",
    "InMemoryHistoryLog",
    "UserPointRepository",
    "PointHistoryRepository",
]
