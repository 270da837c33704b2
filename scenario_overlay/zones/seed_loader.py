#!/usr/bin/env python3
"""
Scenario Overlay - Seed Feature Loader

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Load the static seed collections that zones are built from
(bus stop points, noise level polygons). Sources are GeoJSON
FeatureCollections given as a local path or an http(s) URL.

Key Features:
1. File or HTTP source, same parsing path
2. Features without geometry are skipped, never fatal
3. Async wrapper so the event loop is not blocked during the fetch
4. All failures surface as SeedSourceError

Navigation Guide:
- load_seed_collection: Blocking load (file/URL -> GeoDataFrame)
- fetch_seed_collection: Awaitable wrapper used by scenario sessions
- geojson_to_gdf: FeatureCollection dict -> GeoDataFrame

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import geopandas as gpd
import requests
from shapely.errors import ShapelyError
from shapely.geometry import shape

from scenario_overlay.models.data_models import SeedSourceError

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

CRS_WGS84 = "EPSG:4326"

DEFAULT_TIMEOUT_S = 30.0

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# 🗺️ GEOJSON CONVERSION
# ═══════════════════════════════════════════════════════════════════════════


def empty_seed_frame() -> gpd.GeoDataFrame:
    """Empty WGS84 GeoDataFrame with a geometry column."""
    return gpd.GeoDataFrame(geometry=[], crs=CRS_WGS84)


def geojson_to_gdf(geojson: Dict[str, Any]) -> gpd.GeoDataFrame:
    """
    Convert GeoJSON FeatureCollection to a WGS84 GeoDataFrame.

    Args:
        geojson: GeoJSON FeatureCollection dict

    Returns:
        GeoDataFrame in EPSG:4326 (GeoJSON is WGS84 by definition)

    Raises:
        SeedSourceError: If the document is not a FeatureCollection or its
            features member is not a list
    """
    if not isinstance(geojson, dict) or geojson.get("type") != "FeatureCollection":
        raise SeedSourceError("Seed source is not a GeoJSON FeatureCollection")

    features = geojson.get("features") or []
    if not isinstance(features, list):
        raise SeedSourceError("FeatureCollection 'features' is not a list")

    geometries = []
    properties_list = []
    skipped = 0

    for feature in features:
        if not isinstance(feature, dict):
            skipped += 1
            continue
        geometry = feature.get("geometry")
        properties = feature.get("properties") or {}
        if not geometry or not isinstance(properties, dict):
            skipped += 1
            continue
        try:
            geom = shape(geometry)
        except (ShapelyError, ValueError, TypeError, AttributeError, KeyError) as e:
            logger.debug(f"Skipping seed feature with invalid geometry: {e}")
            skipped += 1
            continue
        geometries.append(geom)
        properties_list.append(properties)

    if skipped:
        logger.warning(f"⚠️ Skipped {skipped} malformed seed feature(s)")

    if not geometries:
        return empty_seed_frame()

    return gpd.GeoDataFrame(properties_list, geometry=geometries, crs=CRS_WGS84)


# ═══════════════════════════════════════════════════════════════════════════
# 📂 LOADING
# ═══════════════════════════════════════════════════════════════════════════


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def load_seed_collection(
    source: Union[str, Path],
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> gpd.GeoDataFrame:
    """
    Load a seed FeatureCollection from a path or http(s) URL.

    Args:
        source: Local file path or URL of a GeoJSON FeatureCollection
        timeout_s: HTTP timeout in seconds

    Returns:
        GeoDataFrame in EPSG:4326 (possibly empty)

    Raises:
        SeedSourceError: On network, file or parse failures
    """
    source_str = str(source)
    logger.info(f"📂 Loading seed features: {source_str}")

    try:
        if _is_url(source_str):
            response = requests.get(source_str, timeout=timeout_s)
            response.raise_for_status()
            data = response.json()
        else:
            with open(source_str, "r", encoding="utf-8") as f:
                data = json.load(f)
    except requests.RequestException as e:
        raise SeedSourceError(f"Failed to fetch {source_str}: {e}") from e
    except OSError as e:
        raise SeedSourceError(f"Failed to read {source_str}: {e}") from e
    except ValueError as e:
        raise SeedSourceError(f"Invalid JSON in {source_str}: {e}") from e

    gdf = geojson_to_gdf(data)
    logger.info(f"   ✅ Loaded {len(gdf)} seed feature(s)")
    return gdf


async def fetch_seed_collection(
    source: Union[str, Path],
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> gpd.GeoDataFrame:
    """Awaitable load_seed_collection; the read runs in a worker thread."""
    return await asyncio.to_thread(load_seed_collection, source, timeout_s)
