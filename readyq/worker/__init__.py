"""
Worker module.
Contains the poll loop, the consumer stream and the worker process.
"""

from readyq.worker.stream import Delivery, PollLoop, TaskStream

__all__ = ["PollLoop", "Delivery", "TaskStream"]
