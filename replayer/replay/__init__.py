"""
Replay loop and its collaborators.

The runner paces events by event time, dispatches them asynchronously, and
periodically fans watermark records out to every shard.
"""

from .dispatcher import Dispatcher
from .watermark import WatermarkEmitter, EmissionResult
from .stats import StatisticsReporter
from .runner import StreamPopulator, ReplayResult, ReplayState

__all__ = [
    "Dispatcher",
    "WatermarkEmitter",
    "EmissionResult",
    "StatisticsReporter",
    "StreamPopulator",
    "ReplayResult",
    "ReplayState",
]
