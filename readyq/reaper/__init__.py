"""
Reaper module.
Contains the lease reaper returning expired claims to the queue.
"""

from readyq.reaper.main import Reaper, run

__all__ = ["Reaper", "run"]
