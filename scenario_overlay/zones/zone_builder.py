#!/usr/bin/env python3
"""
Scenario Overlay - Zone Geometry Builder

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Turn seed feature collections plus a zone parameter into
immutable zone geometry that the feature classifier tests against.

Key Features:
1. Radius zones: buffer every seed in a metric CRS (local UTM), transform
   back to WGS84 degrees and union into one polygon
2. Union fallback: bulk unary_union first, then pairwise union where a
   failing pair leaves its polygon unreduced instead of aborting
3. Category zones: noise polygons grouped per severity, no cross-level union
4. Empty seeds produce EmptyZone, never an exception

Navigation Guide:
- build_zone: Dispatch on ZoneParameter
- build_buffer_zone: Radius buffer + union
- build_category_zone: Severity partition

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import geopandas as gpd
import numpy as np
import shapely
from pyproj import Transformer
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid

from scenario_overlay.models.data_models import InvalidGeometryError, NoiseLevel
from scenario_overlay.zones.zone_types import (
    BufferZone,
    CategoryParameter,
    CategoryZone,
    EmptyZone,
    RadiusParameter,
    ZoneGeometry,
    ZoneParameter,
)

# ═══════════════════════════════════════════════════════════════════════════
# 🔧 CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

CRS_WGS84 = "EPSG:4326"

# Default buffer resolution (segments per quarter circle)
BUFFER_RESOLUTION = 32

POLYGON_TYPES = ("Polygon", "MultiPolygon")

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# 📐 COORDINATE UTILITIES
# ═══════════════════════════════════════════════════════════════════════════


def _ensure_wgs84(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Ensure GeoDataFrame is in WGS84 (EPSG:4326).

    Args:
        gdf: Input GeoDataFrame in any CRS

    Returns:
        GeoDataFrame reprojected to WGS84
    """
    if gdf.crs is None:
        logger.warning("⚠️ Seed GeoDataFrame has no CRS, assuming EPSG:4326")
        return gdf.set_crs(CRS_WGS84)

    if gdf.crs.to_epsg() != 4326:
        logger.info(f"🔄 Reprojecting seeds from {gdf.crs} to WGS84 (EPSG:4326)")
        return gdf.to_crs(CRS_WGS84)

    return gdf


def _meters_to_degrees(meters: float, latitude: float) -> float:
    """
    Convert meters to approximate degrees at given latitude.

    Uses simple spherical Earth approximation, averaging the latitude and
    longitude degree lengths. Only used when no metric CRS can be estimated.

    Args:
        meters: Distance in meters
        latitude: Latitude in degrees

    Returns:
        Approximate distance in degrees
    """
    earth_radius = 6371000.0
    lat_rad = np.radians(latitude)

    deg_lat = meters / (earth_radius * np.pi / 180.0)
    deg_lon = meters / (earth_radius * np.cos(lat_rad) * np.pi / 180.0)

    return float((deg_lat + deg_lon) / 2.0)


def _apply_transformer(transformer: Transformer):
    """Coordinate-array callback for shapely.transform."""

    def _apply(coords: np.ndarray) -> np.ndarray:
        x, y = transformer.transform(coords[:, 0], coords[:, 1])
        return np.column_stack([x, y])

    return _apply


def _buffer_seeds(
    seeds: gpd.GeoDataFrame, radius_m: float, resolution: int
) -> List[BaseGeometry]:
    """Buffer seeds by radius_m and return WGS84 polygons.

    Buffers in the estimated local UTM zone so the radius is exact in
    metres. Falls back to a degree approximation at the seeds' mean latitude
    if no UTM zone can be estimated.
    """
    try:
        utm_crs = seeds.estimate_utm_crs()
        to_utm = Transformer.from_crs(CRS_WGS84, utm_crs, always_xy=True)
        to_wgs84 = Transformer.from_crs(utm_crs, CRS_WGS84, always_xy=True)
    except Exception as e:
        logger.warning(f"⚠️ No metric CRS for seeds ({e}), using degree approximation")
        mean_lat = float(seeds.geometry.centroid.y.mean())
        radius_deg = _meters_to_degrees(radius_m, mean_lat)
        return [geom.buffer(radius_deg, quad_segs=resolution) for geom in seeds.geometry]

    logger.debug(f"Buffering in {utm_crs.name}")
    projected = shapely.transform(
        np.asarray(seeds.geometry, dtype=object), _apply_transformer(to_utm)
    )
    buffered = shapely.buffer(projected, radius_m, quad_segs=resolution)
    return list(shapely.transform(buffered, _apply_transformer(to_wgs84)))


# ═══════════════════════════════════════════════════════════════════════════
# 🔗 UNION WITH FALLBACK
# ═══════════════════════════════════════════════════════════════════════════


def _union_pair(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry:
    return a.union(b)


def _pairwise_union(
    polygons: Sequence[BaseGeometry],
) -> Tuple[Tuple[BaseGeometry, ...], bool]:
    """Fold polygons into one union; a failing pair keeps its polygon apart.

    Returns:
        (parts, fully_unioned) where parts[0] is the accumulated union and
        any further parts are polygons that could not be merged
    """
    accumulated: Optional[BaseGeometry] = None
    unreduced: List[BaseGeometry] = []

    for polygon in polygons:
        if accumulated is None:
            accumulated = polygon
            continue
        try:
            accumulated = _union_pair(accumulated, polygon)
        except Exception as e:
            logger.debug(f"Pairwise union failed, keeping polygon separate: {e}")
            unreduced.append(polygon)

    if accumulated is None:
        return (), True
    return tuple([accumulated] + unreduced), not unreduced


def union_polygons(
    polygons: Sequence[BaseGeometry],
) -> Tuple[Tuple[BaseGeometry, ...], bool]:
    """Union polygons, degrading to pairwise union with per-pair fallback.

    Args:
        polygons: Buffer polygons in WGS84

    Returns:
        (parts, fully_unioned)
    """
    cleaned = [p if p.is_valid else make_valid(p) for p in polygons if not p.is_empty]
    if not cleaned:
        return (), True

    try:
        return (unary_union(cleaned),), True
    except Exception as e:
        logger.warning(f"⚠️ Bulk union failed ({e}), falling back to pairwise union")

    parts, fully_unioned = _pairwise_union(cleaned)
    if not fully_unioned:
        logger.warning(
            f"⚠️ {len(parts) - 1} polygon(s) could not be unioned; "
            f"zone keeps {len(parts)} separate parts"
        )
    return parts, fully_unioned


# ═══════════════════════════════════════════════════════════════════════════
# 🔵 RADIUS ZONES
# ═══════════════════════════════════════════════════════════════════════════


def build_buffer_zone(
    seeds: Optional[gpd.GeoDataFrame],
    radius_m: float,
    resolution: int = BUFFER_RESOLUTION,
) -> ZoneGeometry:
    """
    Build a buffer zone of radius_m around every seed feature.

    Args:
        seeds: Seed features (points or polygons), any CRS
        radius_m: Buffer radius in metres
        resolution: Segments per quarter circle

    Returns:
        BufferZone, or EmptyZone when there are no usable seeds

    Raises:
        InvalidGeometryError: If radius_m is not a positive finite number
    """
    if radius_m is None or not math.isfinite(radius_m) or radius_m <= 0:
        raise InvalidGeometryError(f"Buffer radius must be > 0, got {radius_m}")

    if seeds is None or len(seeds) == 0:
        logger.info("📐 No seed features - building empty zone")
        return EmptyZone()

    seeds = _ensure_wgs84(seeds)
    valid = seeds[seeds.geometry.notna() & ~seeds.geometry.is_empty]
    if len(valid) == 0:
        logger.warning("⚠️ Seed features have no usable geometry - empty zone")
        return EmptyZone("seed geometries empty")

    logger.info(f"📐 Buffering {len(valid)} seed(s) with radius {radius_m:.0f}m")
    buffers = _buffer_seeds(valid, radius_m, resolution)
    parts, fully_unioned = union_polygons(buffers)

    if not parts:
        return EmptyZone("buffers empty")

    for part in parts:
        shapely.prepare(part)

    logger.info(
        f"   ✅ Buffer zone ready: {len(parts)} part(s), unioned={fully_unioned}"
    )
    return BufferZone(geometries=parts, radius_m=float(radius_m), unioned=fully_unioned)


# ═══════════════════════════════════════════════════════════════════════════
# 🔊 CATEGORY ZONES
# ═══════════════════════════════════════════════════════════════════════════


def _row_level(row, level_fields: Sequence[str]) -> Optional[NoiseLevel]:
    for field_name in level_fields:
        if field_name in row.index:
            level = NoiseLevel.from_string(row[field_name])
            if level is not None:
                return level
    return None


def build_category_zone(
    collection: Optional[gpd.GeoDataFrame],
    level_fields: Sequence[str] = ("level", "severity"),
) -> ZoneGeometry:
    """
    Group noise polygons by severity, most severe first.

    Args:
        collection: Polygon features with a level/severity attribute
        level_fields: Attribute names searched in order for the level

    Returns:
        CategoryZone, or EmptyZone when no polygon has a known level
    """
    if collection is None or len(collection) == 0:
        logger.info("📐 No noise polygons - building empty zone")
        return EmptyZone()

    collection = _ensure_wgs84(collection)
    grouped: Dict[NoiseLevel, List[BaseGeometry]] = {
        level: [] for level in NoiseLevel.severities()
    }
    skipped = 0

    for _, row in collection.iterrows():
        geom = row.geometry
        if geom is None or geom.is_empty or geom.geom_type not in POLYGON_TYPES:
            skipped += 1
            continue
        level = _row_level(row, level_fields)
        if level is None:
            skipped += 1
            continue
        if not geom.is_valid:
            geom = make_valid(geom)
        shapely.prepare(geom)
        grouped[level].append(geom)

    if skipped:
        logger.warning(f"⚠️ Skipped {skipped} noise feature(s) without polygon/level")

    levels = tuple(
        (level, tuple(grouped[level]))
        for level in NoiseLevel.severities()
        if grouped[level]
    )
    if not levels:
        return EmptyZone("no polygons with a known level")

    zone = CategoryZone(levels=levels)
    logger.info(
        "   ✅ Category zone ready: "
        + ", ".join(f"{level.value}={len(polys)}" for level, polys in levels)
    )
    return zone


# ═══════════════════════════════════════════════════════════════════════════
# 🧭 DISPATCH
# ═══════════════════════════════════════════════════════════════════════════


def build_zone(
    seeds: Optional[gpd.GeoDataFrame],
    parameter: ZoneParameter,
    resolution: int = BUFFER_RESOLUTION,
) -> ZoneGeometry:
    """Build zone geometry for the given parameter kind.

    Raises:
        InvalidGeometryError: For an invalid radius or unknown parameter kind
    """
    if isinstance(parameter, RadiusParameter):
        return build_buffer_zone(seeds, parameter.radius_m, resolution)
    if isinstance(parameter, CategoryParameter):
        return build_category_zone(seeds, parameter.level_fields)
    raise InvalidGeometryError(f"Unsupported zone parameter: {parameter!r}")
