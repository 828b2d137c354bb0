"""
Queue domain module containing queue entries, backend stores and the lifecycle service.
"""

from .entities import QueueEntry, QueuePosition, QueueStats, QueueStatus
from .repositories import QueueStore, InMemoryQueueStore
from .services import QueueLifecycle, QueueSweeper, is_compatible_session

__all__ = [
    "QueueEntry",
    "QueuePosition",
    "QueueStats",
    "QueueStatus",
    "QueueStore",
    "InMemoryQueueStore",
    "QueueLifecycle",
    "QueueSweeper",
    "is_compatible_session",
]
