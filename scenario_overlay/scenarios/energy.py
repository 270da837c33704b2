#!/usr/bin/env python3
"""
Scenario Overlay - Energy Demand Scenario

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Estimate per-building volume, envelope surface and heating
demand from tile feature attributes, and aggregate them across every
unique building seen so far. No zone is involved.

Estimation chain per building:
1. Footprint: Grundflaeche attribute, else storeys x 100 m2 when the
   building has coordinates, else max(50, storeys x 30) m2
2. Volume = height x footprint
3. Surface = footprint + 4 * sqrt(footprint) * height (square plan)
4. Energy = volume x kWh/m3

Navigation Guide:
- estimate_building_metrics: Pure per-feature estimate
- compute_energy_stats: Aggregate snapshot over collected buildings
- energy_legend: Legend table for a visualization mode
- EnergyScenarioSession: Tile-driven collection + throttled stats

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from scenario_overlay.classification.tile_scanner import TileSubscriber
from scenario_overlay.config_types import AppConfig, EnergyConfig, PropertyNamesConfig
from scenario_overlay.models.data_models import EnergyStats, FeatureAccessor
from scenario_overlay.scenarios.base import ScenarioSession, SeedLoader
from scenario_overlay.stats.throttle import Scheduler

logger = logging.getLogger(__name__)

VOLUME_PROPERTY = "calculated_volume"
SURFACE_PROPERTY = "calculated_surface"
ENERGY_PROPERTY = "calculated_energy"


# ═══════════════════════════════════════════════════════════════════════════
# 🏗️ PER-BUILDING METRICS
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class BuildingMetrics:
    """Derived metrics for one building."""

    height: float
    storeys: float
    roof_type: Optional[str]
    function: str
    footprint: float
    volume: float
    surface: float
    energy: float


def estimate_building_metrics(
    accessor: FeatureAccessor,
    properties: PropertyNamesConfig,
    config: EnergyConfig,
) -> BuildingMetrics:
    """
    Estimate volume, surface and energy demand for one building.

    Missing or zero height counts as 0 m; missing or zero storeys as 1.

    Args:
        accessor: Typed view of the feature
        properties: Feature property names
        config: Energy coefficients

    Returns:
        BuildingMetrics
    """
    height = accessor.number(properties.height) or 0.0
    storeys = accessor.number(properties.storeys) or 1.0
    roof_type = accessor.text(properties.roof_type)
    function = accessor.text(properties.function) or "other"

    footprint = accessor.number(properties.footprint) or 0.0
    if footprint <= 0:
        if accessor.coordinates() is not None and storeys > 0:
            footprint = storeys * config.floor_area_per_storey_m2
        else:
            footprint = max(
                config.min_footprint_m2, storeys * config.fallback_area_per_storey_m2
            )

    volume = height * footprint
    surface = footprint + 4.0 * math.sqrt(footprint) * height
    return BuildingMetrics(
        height=height,
        storeys=storeys,
        roof_type=roof_type,
        function=function,
        footprint=footprint,
        volume=volume,
        surface=surface,
        energy=volume * config.kwh_per_m3,
    )


def _is_flat_roof(roof_type: Optional[str], flat_roof_code: str) -> bool:
    if roof_type is None:
        return False
    # Tiles deliver the code as 1000, 1000.0 or "1000"
    try:
        return float(roof_type) == float(flat_roof_code)
    except ValueError:
        return roof_type == flat_roof_code


def compute_energy_stats(
    buildings: List[BuildingMetrics], config: EnergyConfig, decimals: int = 1
) -> EnergyStats:
    """Aggregate snapshot; all zero when no building was collected."""
    total = len(buildings)
    if total == 0:
        return EnergyStats()

    total_volume = sum(b.volume for b in buildings)
    total_surface = sum(b.surface for b in buildings)
    flat_roofs = sum(1 for b in buildings if _is_flat_roof(b.roof_type, config.flat_roof_code))
    demand = total_volume * config.kwh_per_m3

    return EnergyStats(
        total_buildings=total,
        total_volume=total_volume,
        total_surface=total_surface,
        flat_roof_count=flat_roofs,
        flat_roof_percent=round(flat_roofs / total * 100.0, decimals),
        total_energy_demand=demand,
        annual_cost=demand * config.eur_per_kwh,
        co2_emissions=demand * config.co2_kg_per_kwh,
        avg_height=round(sum(b.height for b in buildings) / total, decimals),
        avg_storeys=round(sum(b.storeys for b in buildings) / total, decimals),
    )


# ═══════════════════════════════════════════════════════════════════════════
# 🎨 VISUALIZATION LEGENDS
# ═══════════════════════════════════════════════════════════════════════════

VISUALIZATION_MODES = ("solar", "height", "storeys", "function", "energy", "default")

_LEGENDS: Dict[str, Tuple[str, Tuple[Tuple[str, str], ...]]] = {
    "solar": (
        "Solar Suitability",
        (("#FFD700", "Flat Roofs"), ("#808080", "Other Roofs")),
    ),
    "height": (
        "Building Height (m)",
        (
            ("#800000", "50+ m"),
            ("#FF8C00", "30-49 m"),
            ("#FFFF00", "15-29 m"),
            ("#ADD8E6", "<15 m"),
        ),
    ),
    "storeys": (
        "Storeys Above Ground",
        (("#800080", "10+"), ("#FF0000", "6-9"), ("#FFA500", "3-5"), ("#008000", "<3")),
    ),
    "function": (
        "Building Function",
        (("#00FFFF", "Residential"), ("#FFA500", "Office"), ("#808080", "Other")),
    ),
    "energy": (
        "Energy Demand (kWh/year)",
        (
            ("#8B0000", ">=30,000"),
            ("#FF4500", "15,000-29,999"),
            ("#FFD700", "<15,000"),
            ("#90EE90", "No data"),
        ),
    ),
}


def energy_legend(mode: str) -> Optional[Dict[str, Any]]:
    """
    Legend for a visualization mode.

    Returns:
        {"title": str, "items": [{"color": hex, "label": str}, ...]}, or None
        for "default" and unknown modes
    """
    entry = _LEGENDS.get(mode)
    if entry is None:
        return None
    title, items = entry
    return {
        "title": title,
        "items": [{"color": color, "label": label} for color, label in items],
    }


# ═══════════════════════════════════════════════════════════════════════════
# ⚡ SESSION
# ═══════════════════════════════════════════════════════════════════════════


class EnergyCollector(TileSubscriber):
    """Collects metrics once per unique building identifier."""

    def __init__(
        self,
        properties: PropertyNamesConfig,
        config: EnergyConfig,
        on_collected: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__()
        self.properties = properties
        self.config = config
        self._on_collected = on_collected
        self.buildings: Dict[str, BuildingMetrics] = {}

    def _process_tile(self, tile: Any) -> bool:
        content = tile.content
        added = False
        for index in range(content.feature_count):
            feature = content.get_feature(index)
            if feature is None:
                continue
            accessor = FeatureAccessor(
                feature,
                id_property=self.properties.feature_id,
                lat_property=self.properties.latitude,
                lon_property=self.properties.longitude,
            )
            feature_id = accessor.feature_id()
            if feature_id is None:
                logger.debug("Skipping feature without identifier")
                continue

            metrics = self.buildings.get(feature_id)
            if metrics is None:
                metrics = estimate_building_metrics(accessor, self.properties, self.config)
                self.buildings[feature_id] = metrics
                added = True
            _write_metrics(accessor, metrics)
        return added

    def _on_processed(self) -> None:
        if self._on_collected is not None:
            self._on_collected()

    def _reset(self) -> None:
        self.buildings.clear()


def _write_metrics(accessor: FeatureAccessor, metrics: BuildingMetrics) -> None:
    accessor.set(VOLUME_PROPERTY, metrics.volume)
    accessor.set(SURFACE_PROPERTY, metrics.surface)
    accessor.set(ENERGY_PROPERTY, metrics.energy)


class EnergyScenarioSession(ScenarioSession[EnergyStats]):
    """Per-building energy estimates with throttled aggregate stats."""

    scenario_id = "energy"

    def __init__(
        self,
        config: AppConfig,
        scheduler: Scheduler,
        seed_loader: Optional[SeedLoader] = None,
    ) -> None:
        super().__init__(config, scheduler, seed_loader)
        self.collector: Optional[EnergyCollector] = None
        self.visualization = "default"

    def initial_stats(self) -> EnergyStats:
        return EnergyStats()

    def compute_stats(self) -> EnergyStats:
        buildings = list(self.collector.buildings.values()) if self.collector else []
        return compute_energy_stats(
            buildings, self.config.energy, self.config.stats.percent_decimals
        )

    async def init(self, tileset: Any) -> None:
        logger.info(f"🚀 Initialising scenario '{self.scenario_id}'")
        self.visualization = "default"
        self.aggregator = self._make_aggregator(self.compute_stats)
        self.collector = EnergyCollector(
            self.config.properties,
            self.config.energy,
            on_collected=self.aggregator.schedule_recompute,
        )
        self.collector.start(tileset)
        self.collector.walk_loaded_tiles()
        self.aggregator.recompute_now()
        logger.info(
            f"   ✅ Scenario '{self.scenario_id}' active: "
            f"{len(self.collector.buildings)} resident building(s)"
        )

    def set_visualization(self, mode: str) -> Optional[Dict[str, Any]]:
        """Select a visualization mode; returns its legend."""
        if mode not in VISUALIZATION_MODES:
            logger.warning(f"⚠️ Unknown energy visualization '{mode}', using default")
            mode = "default"
        self.visualization = mode
        return energy_legend(mode)

    def legend(self) -> Optional[Dict[str, Any]]:
        return energy_legend(self.visualization)

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        if self.collector is not None:
            self.collector.stop()
        if self.aggregator is not None:
            self.aggregator.close()
        self.collector = None
        logger.info(f"🧹 Scenario '{self.scenario_id}' disposed")
