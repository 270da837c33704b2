"""
Shared fixtures for the scenario overlay tests.

Geography: three bus stops on one parallel near Munich, ~7 km apart, so
every test building has one unambiguous nearest stop.
"""

from types import SimpleNamespace
from typing import Callable, Dict, List, Optional, Tuple

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

from scenario_overlay.config_types import AppConfig
from scenario_overlay.models.data_models import SeedSourceError
from scenario_overlay.renderer import InMemoryFeature
from scenario_overlay.stats.throttle import ManualScheduler

# ═══════════════════════════════════════════════════════════════════════════
# GEOGRAPHY CONSTANTS
# ═══════════════════════════════════════════════════════════════════════════

STOP_LAT = 48.137
STOP_LONS = (11.50, 11.60, 11.70)

# Meridional degree length at ~48 N
METERS_PER_DEG_LAT = 111_200.0


def north_of(lon: float, lat: float, meters: float) -> Tuple[float, float]:
    """(lon, lat) shifted meters due north."""
    return lon, lat + meters / METERS_PER_DEG_LAT


# ═══════════════════════════════════════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def app_config() -> AppConfig:
    """Default configuration (not read from the environment)."""
    return AppConfig()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def bus_stops() -> gpd.GeoDataFrame:
    """Three bus stop points in WGS84."""
    return gpd.GeoDataFrame(
        {"name": ["A", "B", "C"]},
        geometry=[Point(lon, STOP_LAT) for lon in STOP_LONS],
        crs="EPSG:4326",
    )


@pytest.fixture
def noise_polygons() -> gpd.GeoDataFrame:
    """Nested noise polygons around stop B: high inside medium inside low."""
    lon, lat = STOP_LONS[1], STOP_LAT
    return gpd.GeoDataFrame(
        {"level": ["low", "high", "medium", "unknown"]},
        geometry=[
            box(lon - 0.03, lat - 0.03, lon + 0.03, lat + 0.03),
            box(lon - 0.01, lat - 0.01, lon + 0.01, lat + 0.01),
            box(lon - 0.02, lat - 0.02, lon + 0.02, lat + 0.02),
            box(lon + 0.5, lat + 0.5, lon + 0.6, lat + 0.6),
        ],
        crs="EPSG:4326",
    )


@pytest.fixture
def make_building() -> Callable[..., InMemoryFeature]:
    """Factory for building features with id and coordinates."""

    def _make(
        feature_id: Optional[str],
        lon: Optional[float],
        lat: Optional[float],
        **extra,
    ) -> InMemoryFeature:
        properties: Dict[str, object] = dict(extra)
        if feature_id is not None:
            properties["gml:id"] = feature_id
        if lon is not None:
            properties["Longitude"] = lon
        if lat is not None:
            properties["Latitude"] = lat
        return InMemoryFeature(properties)

    return _make


@pytest.fixture
def three_buildings(make_building) -> List[InMemoryFeature]:
    """Buildings at 0 m, 600 m and 1000 m from their nearest stop."""
    return [
        make_building("bldg_0m", STOP_LONS[0], STOP_LAT),
        make_building("bldg_600m", *north_of(STOP_LONS[1], STOP_LAT, 600.0)),
        make_building("bldg_1000m", *north_of(STOP_LONS[2], STOP_LAT, 1000.0)),
    ]


@pytest.fixture
def seed_loader_for() -> Callable[[gpd.GeoDataFrame], Callable]:
    """Build an async seed loader returning a fixed frame for any source."""

    def _factory(frame: gpd.GeoDataFrame, calls: Optional[List[str]] = None):
        async def _load(source: str) -> gpd.GeoDataFrame:
            if calls is not None:
                calls.append(source)
            return frame

        return _load

    return _factory


@pytest.fixture
def failing_seed_loader():
    """Async seed loader that always fails like an unreachable source."""

    async def _load(source: str) -> gpd.GeoDataFrame:
        raise SeedSourceError(f"Failed to fetch {source}: connection refused")

    return _load


@pytest.fixture
def geo() -> SimpleNamespace:
    """Geography constants and helpers for tests that place their own points."""
    return SimpleNamespace(
        stop_lat=STOP_LAT,
        stop_lons=STOP_LONS,
        north_of=north_of,
    )
