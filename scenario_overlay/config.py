#!/usr/bin/env python3
"""
Scenario Overlay - Configuration

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Centralized configuration for the tile-driven building
classifier. Single source of truth for feature property names, zone
parameters, seed sources, stats cadence and energy coefficients.

Configuration Sections (ordered by how often they are tuned):
1. stats: Throttle interval for aggregate statistics
2. bus_buffer: Radius slider bounds and bus stop seed source
3. noise_zones: Noise polygon source and severity ordering
4. classifier: Fallback bounding box half-size
5. energy: Energy demand coefficients
6. properties: Tile feature property names (bottom - rarely changed)
7. logging: Log levels and optional log file (bottom)

Navigation Guide:
- Use VS Code outline (Ctrl+Shift+O) to jump between sections
"""

import os
from typing import Dict, Any, TypeVar, Callable, Optional

T = TypeVar("T")


def _env_or_default(
    key: str, default: T, type_fn: Optional[Callable[[str], T]] = None
) -> T:
    """
    Get value from environment variable or use default.

    Args:
        key: Environment variable name (e.g., "SCENARIO_STATS_INTERVAL_S")
        default: Default value if env var not set
        type_fn: Optional type conversion function (e.g., float, int)

    Returns:
        Value from environment (converted) or default

    Example:
        >>> _env_or_default("SCENARIO_STATS_INTERVAL_S", 1.0, float)
        1.0  # If env var not set
    """
    val = os.getenv(key)
    if val is not None:
        if type_fn is not None:
            return type_fn(val)
        return val  # type: ignore
    return default


def _env_bool(key: str, default: bool) -> bool:
    """
    Get boolean value from environment variable.

    Treats "true", "1", "yes" as True (case-insensitive).
    Any other value or unset returns default.
    """
    val = os.getenv(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


# ═══════════════════════════════════════════════════════════════════════════
# 🔧 ENVIRONMENT VARIABLE OVERRIDES
# ═══════════════════════════════════════════════════════════════════════════
# SCENARIO_STATS_INTERVAL_S   - float, stats throttle window (default: 1.0)
# SCENARIO_BUS_STOPS_SOURCE   - path or URL of bus stop GeoJSON
# SCENARIO_NOISE_SOURCE       - path or URL of noise polygon GeoJSON
# SCENARIO_LOG_FILE           - optional log file path for replay runs
# SCENARIO_DEBUG              - "true" to log per-feature skips
#
# Example usage:
#   export SCENARIO_BUS_STOPS_SOURCE=data/busstops.geojson
#   python -m scenario_overlay.replay bus buildings.geojson
# ═══════════════════════════════════════════════════════════════════════════

# ═══════════════════════════════════════════════════════════════════════════
# ⚙️ MASTER CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

CONFIG: Dict[str, Any] = {
    # ═══════════════════════════════════════════════════════════════════════
    # 📊 STATISTICS CADENCE
    # ═══════════════════════════════════════════════════════════════════════
    # Classification bursts are coalesced to at most one recompute per window
    "stats": {
        "update_interval_s": _env_or_default("SCENARIO_STATS_INTERVAL_S", 1.0, float),
        # Percentages are published rounded to this many decimals
        "percent_decimals": 1,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🚌 BUS STOP BUFFER ZONE
    # ═══════════════════════════════════════════════════════════════════════
    "bus_buffer": {
        "seed_source": _env_or_default(
            "SCENARIO_BUS_STOPS_SOURCE", "public/busstops.geojson"
        ),
        "default_radius_m": 400.0,
        # Slider bounds - values outside are clamped
        "min_radius_m": 400.0,
        "max_radius_m": 800.0,
        "step_m": 50.0,
        # Segments per quarter circle when buffering seed points
        "buffer_resolution": 32,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🔊 NOISE ZONES
    # ═══════════════════════════════════════════════════════════════════════
    "noise_zones": {
        "seed_source": _env_or_default(
            "SCENARIO_NOISE_SOURCE", "public/noise_zones.geojson"
        ),
        # Attribute names searched (in order) for the severity value
        "level_fields": ["level", "severity"],
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🏢 CLASSIFIER
    # ═══════════════════════════════════════════════════════════════════════
    "classifier": {
        # Approximate building half-width in degrees (~20m) for bbox fallback
        "fallback_half_size_deg": 0.00018,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # ⚡ ENERGY DEMAND
    # ═══════════════════════════════════════════════════════════════════════
    "energy": {
        "kwh_per_m3": 15.0,
        "eur_per_kwh": 0.40,
        "co2_kg_per_kwh": 0.31,
        "flat_roof_code": "1000",
        # Footprint estimate when Grundflaeche is missing
        "floor_area_per_storey_m2": 100.0,
        "min_footprint_m2": 50.0,
        "fallback_area_per_storey_m2": 30.0,
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 🏷️ TILE FEATURE PROPERTY NAMES
    # ═══════════════════════════════════════════════════════════════════════
    "properties": {
        "feature_id": "gml:id",
        "latitude": "Latitude",
        "longitude": "Longitude",
        "bus_label": "is_near_busstop",
        "noise_label": "noise_level",
        "height": "bldg:measuredheight",
        "storeys": "bldg:storeysaboveground",
        "roof_type": "bldg:rooftype",
        "function": "bldg:function",
        "footprint": "Grundflaeche",
    },
    # ═══════════════════════════════════════════════════════════════════════
    # 📋 LOGGING
    # ═══════════════════════════════════════════════════════════════════════
    "logging": {
        "level": "INFO",
        "log_file": _env_or_default("SCENARIO_LOG_FILE", ""),
        "debug": _env_bool("SCENARIO_DEBUG", False),
    },
}
