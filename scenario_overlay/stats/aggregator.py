"""
Statistics aggregation over membership sets.

The aggregator owns the latest immutable snapshot and the throttle that
decides when to recompute it. Snapshot builders are plain functions of the
membership sets so they can be tested without any timer.
"""

import logging
from typing import Callable, Generic, TypeVar

from scenario_overlay.models.data_models import (
    BusStats,
    NoiseLevel,
    NoiseStats,
    percentage,
)
from scenario_overlay.models.membership import MembershipSets
from scenario_overlay.stats.throttle import Scheduler, Throttle

logger = logging.getLogger(__name__)

S = TypeVar("S")


# ═══════════════════════════════════════════════════════════════════════════
# 📊 SNAPSHOT BUILDERS
# ═══════════════════════════════════════════════════════════════════════════


def bus_stats(sets: MembershipSets, decimals: int = 1) -> BusStats:
    """Inside/outside snapshot for boolean membership sets."""
    inside = sets.count(True)
    outside = sets.count(False)
    total = sets.total
    return BusStats(
        total=total,
        inside=inside,
        outside=outside,
        coverage_percent=percentage(inside, total, decimals),
    )


def noise_stats(sets: MembershipSets, decimals: int = 1) -> NoiseStats:
    """Per-severity snapshot; coverage_percent is the high-noise share."""
    high = sets.count(NoiseLevel.HIGH)
    total = sets.total
    return NoiseStats(
        total=total,
        high=high,
        medium=sets.count(NoiseLevel.MEDIUM),
        low=sets.count(NoiseLevel.LOW),
        outside=sets.count(NoiseLevel.NONE),
        coverage_percent=percentage(high, total, decimals),
    )


# ═══════════════════════════════════════════════════════════════════════════
# 🚦 THROTTLED AGGREGATOR
# ═══════════════════════════════════════════════════════════════════════════


class StatisticsAggregator(Generic[S]):
    """
    Throttled recomputation of one stats snapshot.

    Args:
        compute: Builds a fresh snapshot from the session's state
        initial: Snapshot exposed before the first recompute (all zero)
        scheduler: Clock and timer source for the throttle
        interval_s: Throttle window in seconds
    """

    def __init__(
        self,
        compute: Callable[[], S],
        initial: S,
        scheduler: Scheduler,
        interval_s: float = 1.0,
    ) -> None:
        self._compute = compute
        self._snapshot: S = initial
        self._alive = True
        self._throttle = Throttle(interval_s, self._recompute, scheduler)
        self.recompute_count = 0

    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def has_pending(self) -> bool:
        return self._throttle.has_pending

    def schedule_recompute(self) -> None:
        """Recompute now if the window has elapsed, else once at its end."""
        if not self._alive:
            return
        self._throttle.trigger()

    def recompute_now(self) -> None:
        """Recompute immediately, dropping any pending trailing recompute."""
        if not self._alive:
            return
        self._throttle.flush()

    def get_stats(self) -> S:
        """Latest published snapshot (never blocks)."""
        return self._snapshot

    def close(self) -> None:
        """Cancel the pending timer; later recomputes become no-ops."""
        self._alive = False
        self._throttle.cancel()

    def _recompute(self) -> None:
        # A timer can still fire after close() on some schedulers
        if not self._alive:
            logger.debug("Stats recompute after close ignored")
            return
        self._snapshot = self._compute()
        self.recompute_count += 1

