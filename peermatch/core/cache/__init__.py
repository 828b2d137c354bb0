"""
Shared queue backend for multi-node deployments.
"""

from .redis_queue_store import RedisQueueStore

__all__ = ["RedisQueueStore"]
