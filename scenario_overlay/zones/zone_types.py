"""
Zone geometry containers.

Zones are immutable once built. A rebuild produces a new object and the
tile scanner swaps its reference in one assignment, so a classification
pass never sees a half-built zone.
"""

from dataclasses import dataclass
from typing import Tuple, Union

from shapely.geometry.base import BaseGeometry

from scenario_overlay.models.data_models import NoiseLevel


@dataclass(frozen=True)
class EmptyZone:
    """No seeds: every feature classifies as not-a-member."""

    reason: str = "no seed features"


@dataclass(frozen=True)
class BufferZone:
    """Radius buffer around seed features.

    Attributes:
        geometries: One unioned polygon, or the unreduced polygons when
            part of the union failed
        radius_m: Buffer radius in metres
        unioned: True when geometries holds a single fully unioned polygon
    """

    geometries: Tuple[BaseGeometry, ...]
    radius_m: float
    unioned: bool = True


@dataclass(frozen=True)
class CategoryZone:
    """Severity-partitioned polygons, most severe level first.

    No cross-level union: membership is tested level by level and the
    first match wins.
    """

    levels: Tuple[Tuple[NoiseLevel, Tuple[BaseGeometry, ...]], ...]

    @property
    def polygon_count(self) -> int:
        return sum(len(polygons) for _, polygons in self.levels)


ZoneGeometry = Union[EmptyZone, BufferZone, CategoryZone]


@dataclass(frozen=True)
class RadiusParameter:
    """User-controlled buffer radius in metres."""

    radius_m: float


@dataclass(frozen=True)
class CategoryParameter:
    """Fixed categorical partition read from the seed attributes."""

    level_fields: Tuple[str, ...] = ("level", "severity")


ZoneParameter = Union[RadiusParameter, CategoryParameter]
