"""Zone geometry: seed loading and buffer/category zone construction."""

from .seed_loader import fetch_seed_collection, geojson_to_gdf, load_seed_collection
from .zone_builder import build_buffer_zone, build_category_zone, build_zone
from .zone_types import (
    BufferZone,
    CategoryParameter,
    CategoryZone,
    EmptyZone,
    RadiusParameter,
)

__all__ = [
    "fetch_seed_collection",
    "geojson_to_gdf",
    "load_seed_collection",
    "build_buffer_zone",
    "build_category_zone",
    "build_zone",
    "BufferZone",
    "CategoryParameter",
    "CategoryZone",
    "EmptyZone",
    "RadiusParameter",
]
