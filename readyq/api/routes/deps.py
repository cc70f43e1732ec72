"""
Shared route dependencies.
"""

from typing import Annotated

from fastapi import Depends

from readyq.config import get_settings
from readyq.queue.client import QueueClient
from readyq.store import SortedSetStore, get_store


def get_queue_client(store: Annotated[SortedSetStore, Depends(get_store)]) -> QueueClient:
    """Queue client for the configured queue, bound to the process-wide store."""
    settings = get_settings()
    return QueueClient(store, settings.queue_name, lease_seconds=settings.lease_seconds)


QueueClientDep = Annotated[QueueClient, Depends(get_queue_client)]
