#!/usr/bin/env python3
"""
Offline Scenario Replay Entry Point

═══════════════════════════════════════════════════════════════════════════════
ARCHITECTURAL OVERVIEW
═══════════════════════════════════════════════════════════════════════════════

Responsibility: Run a scenario against a building GeoJSON without a
renderer. Buildings are split into in-memory tiles, revealed one by one
on a manual clock, and the resulting statistics are logged.

Usage:
    python -m scenario_overlay.replay bus buildings.geojson
    python -m scenario_overlay.replay bus buildings.geojson --radius 400 800
    python -m scenario_overlay.replay noise buildings.geojson --tile-size 50

Buildings need a gml:id property; Latitude/Longitude are taken from the
properties or, when missing, from a representative point of the geometry.

For Navigation: Use VS Code outline (Ctrl+Shift+O)

═══════════════════════════════════════════════════════════════════════════════
"""

import argparse
import asyncio
import logging
import math
import sys
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional, Sequence

import geopandas as gpd

from scenario_overlay.config_types import AppConfig, LoggingConfig, load_app_config
from scenario_overlay.lifecycle import ScenarioLifecycleController
from scenario_overlay.renderer import InMemoryFeature, InMemoryTileset
from scenario_overlay.stats.throttle import ManualScheduler
from scenario_overlay.zones.seed_loader import load_seed_collection

DEFAULT_TILE_SIZE = 100


# ═══════════════════════════════════════════════════════════════════════════════
# 📋 LOGGING SETUP
# ═══════════════════════════════════════════════════════════════════════════════


def setup_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """Configure the package logger with console and optional file output.

    Args:
        config: Logging settings (default: CONFIG["logging"])

    Returns:
        The "scenario_overlay" package logger
    """
    config = config or load_app_config().logging
    level = config.effective_level

    logger = logging.getLogger("scenario_overlay")
    logger.setLevel(level)
    logger.handlers.clear()

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(level)
    ch.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(ch)

    if config.log_file:
        fh = logging.FileHandler(config.log_file, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(fh)

    return logger


# ═══════════════════════════════════════════════════════════════════════════════
# 🏢 BUILDING TILES
# ═══════════════════════════════════════════════════════════════════════════════


def _is_missing(value) -> bool:
    # Columns absent on some features come back as NaN
    return isinstance(value, float) and math.isnan(value)


def buildings_to_features(
    buildings: gpd.GeoDataFrame, config: AppConfig
) -> List[InMemoryFeature]:
    """Convert building rows to in-memory features with lat/lon properties."""
    props = config.properties
    features = []
    for _, row in buildings.iterrows():
        properties = {
            key: value
            for key, value in row.items()
            if key != buildings.geometry.name and not _is_missing(value)
        }
        geom = row.geometry
        if geom is not None and not geom.is_empty:
            point = geom if geom.geom_type == "Point" else geom.representative_point()
            properties.setdefault(props.latitude, point.y)
            properties.setdefault(props.longitude, point.x)
        features.append(InMemoryFeature(properties))
    return features


def build_tileset(
    features: Sequence[InMemoryFeature], tile_size: int = DEFAULT_TILE_SIZE
) -> InMemoryTileset:
    """Split features into loaded child tiles of at most tile_size features."""
    if tile_size <= 0:
        raise ValueError(f"tile_size must be > 0, got {tile_size}")
    batches = [features[i : i + tile_size] for i in range(0, len(features), tile_size)]
    return InMemoryTileset.from_feature_batches(batches)


# ═══════════════════════════════════════════════════════════════════════════════
# 🎬 REPLAY
# ═══════════════════════════════════════════════════════════════════════════════


async def replay(
    scenario_id: str,
    tileset: InMemoryTileset,
    config: AppConfig,
    radii: Sequence[float] = (),
    scheduler: Optional[ManualScheduler] = None,
) -> List[dict]:
    """
    Activate scenario_id, reveal every tile and apply each radius in turn.

    Returns:
        One stats dict per step (initial reveal, then one per radius)
    """
    logger = logging.getLogger("scenario_overlay")
    scheduler = scheduler or ManualScheduler()
    controller = ScenarioLifecycleController(tileset, config=config, scheduler=scheduler)
    snapshots = []

    try:
        await controller.activate(scenario_id)
        revealed = tileset.reveal_all()
        # Let the trailing stats recompute fire
        scheduler.advance(config.stats.update_interval_s)
        logger.info(f"📊 Revealed {revealed} tile(s): {controller.get_stats()}")
        snapshots.append(_as_dict(controller.get_stats()))

        for radius in radii:
            await controller.set_zone_parameter(radius)
            logger.info(f"📊 Radius {radius:g}m: {controller.get_stats()}")
            snapshots.append(_as_dict(controller.get_stats()))
    finally:
        await controller.deactivate()

    return snapshots


def _as_dict(stats) -> dict:
    return asdict(stats) if stats is not None else {}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Replay a scenario offline")
    parser.add_argument("scenario", help="Scenario id (bus, noise, energy)")
    parser.add_argument("buildings", help="Building GeoJSON path or URL")
    parser.add_argument(
        "--radius", type=float, nargs="*", default=[], help="Radii to apply in order"
    )
    parser.add_argument("--tile-size", type=int, default=DEFAULT_TILE_SIZE)
    args = parser.parse_args(argv)

    config = load_app_config()
    logger = setup_logging(config.logging)

    logger.info("=" * 60)
    logger.info(f"🚀 SCENARIO REPLAY: {args.scenario}")
    logger.info("=" * 60)
    logger.info(f"⏰ Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    try:
        buildings = load_seed_collection(args.buildings)
        features = buildings_to_features(buildings, config)
        tileset = build_tileset(features, args.tile_size)
        logger.info(f"🏢 {len(features)} building(s) in {len(tileset.root.children)} tile(s)")
        asyncio.run(replay(args.scenario, tileset, config, args.radius))
    except Exception as e:
        logger.error(f"❌ ERROR: {e}")
        return 1

    logger.info("✅ REPLAY COMPLETE")
    return 0


if __name__ == "__main__":
    sys.exit(main())
