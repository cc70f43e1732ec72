"""
readyq - Retryable Delayed Task Queue

A task queue built on a sorted-set store, ordering work by ready-time,
with atomic claim-and-remove, retry backoff and at-least-once delivery.
"""

__version__ = "1.0.0"
