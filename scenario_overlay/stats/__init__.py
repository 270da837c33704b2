"""Throttled statistics aggregation."""

from .aggregator import StatisticsAggregator, bus_stats, noise_stats
from .throttle import AsyncioScheduler, ManualScheduler, Scheduler, Throttle

__all__ = [
    "StatisticsAggregator",
    "bus_stats",
    "noise_stats",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "Throttle",
]
