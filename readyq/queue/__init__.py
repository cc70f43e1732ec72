"""
Queue module.
Contains the score codec, task serializers, retry policy and queue client.
"""

from readyq.queue.client import QueueClient
from readyq.queue.codec import ScoreCodec, from_millis, to_millis
from readyq.queue.retry import BackoffConfig, RetryDecision, RetryPolicy
from readyq.queue.serializers import JSONTaskSerializer, TaskSerializer

__all__ = [
    "QueueClient",
    "ScoreCodec",
    "to_millis",
    "from_millis",
    "RetryPolicy",
    "RetryDecision",
    "BackoffConfig",
    "TaskSerializer",
    "JSONTaskSerializer",
]
