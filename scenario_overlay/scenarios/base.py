#!/usr/bin/env python3
"""
Scenario Overlay - Scenario Session Base

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: One activated scenario. A session owns everything that
must disappear on teardown: tile subscription, membership sets, zone
reference, cached seeds and the stats timer.

Session lifecycle:
    created --init(tileset)--> active --dispose()--> disposed
dispose() is idempotent and never raises.

Key Features:
1. ScenarioSession: shared init/dispose contract and stats access
2. ZoneScenarioSession: seed load -> zone build -> scanner start, with a
   degraded empty zone when the seed source fails

Navigation Guide:
- ScenarioSession.init / dispose: Lifecycle hooks used by the controller
- ZoneScenarioSession.rebuild_zone: Zone swap for parameterized scenarios

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, TypeVar

import geopandas as gpd

from scenario_overlay.classification.classifier import FeatureClassifier
from scenario_overlay.classification.tile_scanner import IncrementalTileScanner
from scenario_overlay.config_types import AppConfig
from scenario_overlay.models.data_models import (
    InvalidGeometryError,
    Label,
    SeedSourceError,
)
from scenario_overlay.models.membership import MembershipSets
from scenario_overlay.stats.aggregator import StatisticsAggregator
from scenario_overlay.stats.throttle import Scheduler
from scenario_overlay.zones.seed_loader import empty_seed_frame, fetch_seed_collection
from scenario_overlay.zones.zone_builder import build_zone
from scenario_overlay.zones.zone_types import EmptyZone, ZoneGeometry, ZoneParameter

logger = logging.getLogger(__name__)

S = TypeVar("S")

SeedLoader = Callable[[str], Awaitable[gpd.GeoDataFrame]]


# ═══════════════════════════════════════════════════════════════════════════
# 🎬 SESSION BASE
# ═══════════════════════════════════════════════════════════════════════════


class ScenarioSession(Generic[S]):
    """
    Base class for activated scenarios.

    Args:
        config: Application configuration
        scheduler: Timer source for the stats throttle
        seed_loader: Awaitable seed source reader (path/URL -> GeoDataFrame)
    """

    scenario_id = ""
    has_parameter = False

    def __init__(
        self,
        config: AppConfig,
        scheduler: Scheduler,
        seed_loader: Optional[SeedLoader] = None,
    ) -> None:
        self.config = config
        self.scheduler = scheduler
        self.seed_loader: SeedLoader = seed_loader or fetch_seed_collection
        self.degraded = False
        self.disposed = False
        self.aggregator: Optional[StatisticsAggregator[S]] = None

    async def init(self, tileset: Any) -> None:
        raise NotImplementedError

    def dispose(self) -> None:
        raise NotImplementedError

    def initial_stats(self) -> S:
        raise NotImplementedError

    def get_stats(self) -> S:
        """Latest snapshot; all-zero before the first recompute."""
        if self.aggregator is None:
            return self.initial_stats()
        return self.aggregator.get_stats()

    async def set_zone_parameter(self, value: Any) -> bool:
        """Apply a new zone parameter. Returns False when not supported."""
        logger.info(f"ℹ️ Scenario '{self.scenario_id}' has no zone parameter, ignoring")
        return False

    def _make_aggregator(self, compute: Callable[[], S]) -> StatisticsAggregator[S]:
        return StatisticsAggregator(
            compute,
            self.initial_stats(),
            self.scheduler,
            self.config.stats.update_interval_s,
        )


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ ZONE-DRIVEN SESSIONS
# ═══════════════════════════════════════════════════════════════════════════


class ZoneScenarioSession(ScenarioSession[S]):
    """
    Session that classifies buildings against a zone built from seeds.

    Subclasses provide the seed source, the label set, the classifier and
    the zone parameter.
    """

    labels: Iterable[Label] = ()

    def __init__(
        self,
        config: AppConfig,
        scheduler: Scheduler,
        seed_loader: Optional[SeedLoader] = None,
    ) -> None:
        super().__init__(config, scheduler, seed_loader)
        self.membership: MembershipSets = MembershipSets(self.labels)
        self.scanner: Optional[IncrementalTileScanner] = None
        self._seeds: Optional[gpd.GeoDataFrame] = None

    # Subclass hooks
    def seed_source(self) -> str:
        raise NotImplementedError

    def zone_parameter(self) -> ZoneParameter:
        raise NotImplementedError

    def make_classifier(self) -> FeatureClassifier:
        raise NotImplementedError

    def compute_stats(self) -> S:
        raise NotImplementedError

    @property
    def zone(self) -> ZoneGeometry:
        if self.scanner is None:
            return EmptyZone("inactive")
        return self.scanner.zone

    async def init(self, tileset: Any) -> None:
        """
        Load seeds, build the zone and start scanning tileset.

        A failing seed source or zone build leaves the session degraded with
        an empty zone; no exception reaches the caller.
        """
        logger.info(f"🚀 Initialising scenario '{self.scenario_id}'")
        self.membership.clear()
        self._seeds = await self._load_seeds()
        if self.disposed:
            logger.info(f"   Scenario '{self.scenario_id}' disposed during seed load")
            return

        zone = self._build(self.zone_parameter())
        self.aggregator = self._make_aggregator(self.compute_stats)
        self.scanner = IncrementalTileScanner(
            self.make_classifier(),
            self.membership,
            on_classified=self.aggregator.schedule_recompute,
            on_rewalked=self.aggregator.recompute_now,
        )
        self.scanner.start(tileset)
        # Classify whatever the renderer already holds resident
        self.scanner.on_zone_rebuilt(zone)
        logger.info(
            f"   ✅ Scenario '{self.scenario_id}' active"
            + (" (degraded: empty zone)" if self.degraded else "")
        )

    async def _load_seeds(self) -> gpd.GeoDataFrame:
        source = self.seed_source()
        try:
            return await self.seed_loader(source)
        except SeedSourceError as e:
            logger.error(f"❌ Seed source unavailable for '{self.scenario_id}': {e}")
            self.degraded = True
            return empty_seed_frame()

    def _build(self, parameter: ZoneParameter) -> ZoneGeometry:
        try:
            return build_zone(
                self._seeds, parameter, self.config.bus_buffer.buffer_resolution
            )
        except InvalidGeometryError as e:
            logger.error(f"❌ Zone build failed for '{self.scenario_id}': {e}")
            self.degraded = True
            return EmptyZone(str(e))

    def rebuild_zone(self, parameter: ZoneParameter) -> int:
        """Build a zone for parameter and hand it to the scanner."""
        if self.disposed or self.scanner is None:
            logger.debug("Zone rebuild on inactive session ignored")
            return 0
        zone = self._build(parameter)
        return self.scanner.on_zone_rebuilt(zone)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        if self.scanner is not None:
            self.scanner.stop()
        if self.aggregator is not None:
            self.aggregator.close()
        self.membership.clear()
        self._seeds = None
        self.scanner = None
        logger.info(f"🧹 Scenario '{self.scenario_id}' disposed")
