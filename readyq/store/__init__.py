"""
Store module.
Contains the sorted-set store protocol, its implementations and lifecycle.
"""

from readyq.store.base import ScoredMember, SortedSetStore
from readyq.store.connection import close_store, create_store, get_store, init_store
from readyq.store.memory import InMemorySortedSetStore
from readyq.store.redis import RedisSortedSetStore

__all__ = [
    "SortedSetStore",
    "ScoredMember",
    "InMemorySortedSetStore",
    "RedisSortedSetStore",
    "create_store",
    "init_store",
    "close_store",
    "get_store",
]
