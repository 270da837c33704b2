"""
Bus stop coverage scenario.

Buildings are labelled with whether they fall inside a radius buffer
around the bus stops. The radius is the only user-controlled zone
parameter; changing it rebuilds the zone and re-walks resident tiles.
The current buffer is also exposed as GeoJSON for the map layer.
"""

import logging
import math
from typing import Any, Callable, Dict, List, Optional

from shapely.geometry import mapping

from scenario_overlay.classification.classifier import FeatureClassifier
from scenario_overlay.config_types import AppConfig
from scenario_overlay.models.data_models import BusStats
from scenario_overlay.scenarios.base import SeedLoader, ZoneScenarioSession
from scenario_overlay.stats.aggregator import bus_stats
from scenario_overlay.stats.throttle import Scheduler
from scenario_overlay.zones.zone_types import BufferZone, RadiusParameter, ZoneParameter

logger = logging.getLogger(__name__)

BufferListener = Callable[[Dict[str, Any], float], None]


class BusScenarioSession(ZoneScenarioSession[BusStats]):
    """Radius buffer around bus stops, boolean label per building."""

    scenario_id = "bus"
    has_parameter = True
    labels = (True, False)

    def __init__(
        self,
        config: AppConfig,
        scheduler: Scheduler,
        seed_loader: Optional[SeedLoader] = None,
    ) -> None:
        super().__init__(config, scheduler, seed_loader)
        self.radius_m = config.bus_buffer.default_radius_m
        self._on_buffer_updated: Optional[BufferListener] = None

    def seed_source(self) -> str:
        return self.config.bus_buffer.seed_source

    def zone_parameter(self) -> RadiusParameter:
        return RadiusParameter(self.radius_m)

    def make_classifier(self) -> FeatureClassifier:
        return FeatureClassifier(
            self.config.properties.bus_label,
            outside_label=False,
            properties=self.config.properties,
            config=self.config.classifier,
        )

    def initial_stats(self) -> BusStats:
        return BusStats()

    def compute_stats(self) -> BusStats:
        return bus_stats(self.membership, self.config.stats.percent_decimals)

    # ─────────────────────────────────────────────────────────────────────
    # Buffer layer
    # ─────────────────────────────────────────────────────────────────────

    def set_on_buffer_updated(self, callback: Optional[BufferListener]) -> None:
        """Register callback(buffer_geojson, radius_m), called after each build."""
        self._on_buffer_updated = callback

    def buffer_geojson(self) -> Dict[str, Any]:
        """Current buffer as a GeoJSON FeatureCollection (empty when degraded)."""
        zone = self.zone
        features: List[Dict[str, Any]] = []
        if isinstance(zone, BufferZone):
            for index, geom in enumerate(zone.geometries):
                features.append(
                    {
                        "type": "Feature",
                        "properties": {
                            "id": f"bus_buffer_{index}",
                            "radius_m": zone.radius_m,
                        },
                        "geometry": mapping(geom),
                    }
                )
        return {"type": "FeatureCollection", "features": features}

    def _notify_buffer(self) -> None:
        if self._on_buffer_updated is None or self.scanner is None:
            return
        self._on_buffer_updated(self.buffer_geojson(), self.radius_m)

    async def init(self, tileset: Any) -> None:
        await super().init(tileset)
        self._notify_buffer()

    def rebuild_zone(self, parameter: ZoneParameter) -> int:
        reclassified = super().rebuild_zone(parameter)
        self._notify_buffer()
        return reclassified

    # ─────────────────────────────────────────────────────────────────────
    # Radius parameter
    # ─────────────────────────────────────────────────────────────────────

    async def set_zone_parameter(self, value: Any) -> bool:
        """
        Change the buffer radius.

        Args:
            value: Radius in metres; clamped to the configured bounds and
                rounded to the slider step

        Returns:
            True if the zone was rebuilt
        """
        try:
            requested = float(value)
        except (TypeError, ValueError):
            logger.warning(f"⚠️ Ignoring non-numeric radius: {value!r}")
            return False
        if not math.isfinite(requested):
            logger.warning(f"⚠️ Ignoring non-finite radius: {value!r}")
            return False

        bounds = self.config.bus_buffer
        radius = bounds.snap_radius(requested)
        if radius != bounds.clamp_radius(requested):
            logger.info(
                f"   Radius {requested:g}m snapped to {radius:g}m "
                f"(step {bounds.step_m:g}m)"
            )
        elif radius != requested:
            logger.warning(
                f"⚠️ Radius {requested:g}m outside {bounds.min_radius_m:g}-"
                f"{bounds.max_radius_m:g}m, clamped to {radius:g}m"
            )

        logger.info(f"🔵 Bus buffer radius {self.radius_m:g}m -> {radius:g}m")
        self.radius_m = radius
        self.rebuild_zone(RadiusParameter(radius))
        return True
