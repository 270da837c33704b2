"""
Typed data models for tile feature classification.

Architectural Overview:
=======================
This module contains the enums, exceptions and immutable records shared by
the zone builder, the classifier, the tile scanner and the statistics
aggregator. Renderer features are opaque key-value handles; FeatureAccessor
gives them typed, nullable getters so missing or malformed properties never
leak NaN or None into the classification path.

Key Interactions:
-----------------
- Input: renderer feature handles (get_property / set_property)
- Output: ClassificationResult per feature, stats snapshots for the UI
- Navigation: Use VS Code outline (Ctrl+Shift+O) for quick navigation

MODIFICATION POINT: Add new label enums here for future zone scenarios
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Union


# ═══════════════════════════════════════════════════════════════════════════
# ⚠️ EXCEPTIONS SECTION
# ═══════════════════════════════════════════════════════════════════════════


class ScenarioOverlayError(Exception):
    """Base class for all scenario overlay errors."""


class InvalidGeometryError(ScenarioOverlayError):
    """Zone geometry could not be built from the given seeds/parameter."""


class SeedSourceError(ScenarioOverlayError):
    """Seed feature collection could not be fetched or parsed."""


class UnknownScenarioError(ScenarioOverlayError):
    """Requested scenario id is not in the registry."""


# ═══════════════════════════════════════════════════════════════════════════
# 🏷️ ENUMS SECTION
# ═══════════════════════════════════════════════════════════════════════════


class NoiseLevel(Enum):
    """Noise severity label, declared from most to least severe.

    NONE is the "outside every noise polygon" bucket so that
    total == high + medium + low + none holds for every snapshot.
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @classmethod
    def from_string(cls, s: Any) -> Optional["NoiseLevel"]:
        """Convert a polygon attribute to a NoiseLevel.

        Args:
            s: Attribute value like "high", "Medium", " LOW "

        Returns:
            Matching severity (never NONE), or None if not recognised
        """
        if s is None:
            return None
        value = str(s).strip().lower()
        for member in cls:
            if member is not cls.NONE and member.value == value:
                return member
        return None

    @classmethod
    def severities(cls) -> Tuple["NoiseLevel", ...]:
        """Zone levels in decreasing severity (NONE excluded)."""
        return (cls.HIGH, cls.MEDIUM, cls.LOW)


class MembershipOutcome(Enum):
    """Which tier of the membership test produced a classification."""

    PRIMARY = "primary"  # point-in-polygon succeeded
    FALLBACK = "fallback"  # bbox intersection after primary failure
    MISS = "miss"  # both tiers failed - conservative not-a-member
    UNCLASSIFIED = "unclassified"  # feature had no usable coordinates


Label = Union[bool, NoiseLevel]


# ═══════════════════════════════════════════════════════════════════════════
# 🔍 FEATURE ACCESS SECTION
# ═══════════════════════════════════════════════════════════════════════════


def _as_float(value: Any) -> Optional[float]:
    """Convert a property value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class FeatureAccessor:
    """Typed view over an opaque renderer feature handle.

    The accessor never stores anything beyond the handle it wraps and is
    created per callback, so no feature reference outlives a tile callback.

    Args:
        feature: Object exposing get_property(name) / set_property(name, value)
        id_property: Name of the stable identifier property
        lat_property: Name of the latitude property
        lon_property: Name of the longitude property
    """

    __slots__ = ("_feature", "_id_property", "_lat_property", "_lon_property")

    def __init__(
        self,
        feature: Any,
        id_property: str = "gml:id",
        lat_property: str = "Latitude",
        lon_property: str = "Longitude",
    ) -> None:
        self._feature = feature
        self._id_property = id_property
        self._lat_property = lat_property
        self._lon_property = lon_property

    def get(self, name: str) -> Any:
        """Raw property value, None when missing."""
        return self._feature.get_property(name)

    def set(self, name: str, value: Any) -> None:
        self._feature.set_property(name, value)

    def text(self, name: str) -> Optional[str]:
        """Property as non-empty string, or None."""
        value = self.get(name)
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    def number(self, name: str) -> Optional[float]:
        """Property as finite float, or None."""
        return _as_float(self.get(name))

    def feature_id(self) -> Optional[str]:
        """Stable building identifier, or None."""
        return self.text(self._id_property)

    def coordinates(self) -> Optional[Tuple[float, float]]:
        """(lon, lat) in WGS84 degrees, or None if either is unusable."""
        lat = self.number(self._lat_property)
        lon = self.number(self._lon_property)
        if lat is None or lon is None:
            return None
        return (lon, lat)


# ═══════════════════════════════════════════════════════════════════════════
# 🎯 CLASSIFICATION RESULT SECTION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one feature against one zone.

    Attributes:
        label: True/False for buffer zones, a NoiseLevel for category zones,
            None when the feature was not classified.
        outcome: Which test tier produced the label.
    """

    label: Optional[Label]
    outcome: MembershipOutcome

    @classmethod
    def unclassified(cls) -> "ClassificationResult":
        return cls(label=None, outcome=MembershipOutcome.UNCLASSIFIED)

    @property
    def is_classified(self) -> bool:
        return self.outcome is not MembershipOutcome.UNCLASSIFIED


# ═══════════════════════════════════════════════════════════════════════════
# 📊 STATS SNAPSHOT SECTION
# ═══════════════════════════════════════════════════════════════════════════


def percentage(count: int, total: int, decimals: int = 1) -> float:
    """100 x count / total, rounded; 0.0 when total is 0."""
    if total <= 0:
        return 0.0
    return round(count / total * 100.0, decimals)


@dataclass(frozen=True)
class BusStats:
    """Bus stop coverage snapshot."""

    total: int = 0
    inside: int = 0
    outside: int = 0
    coverage_percent: float = 0.0


@dataclass(frozen=True)
class NoiseStats:
    """Noise exposure snapshot. coverage_percent is the high-noise share."""

    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    outside: int = 0
    coverage_percent: float = 0.0


@dataclass(frozen=True)
class EnergyStats:
    """Energy demand snapshot over all unique buildings seen so far."""

    total_buildings: int = 0
    total_volume: float = 0.0
    total_surface: float = 0.0
    flat_roof_count: int = 0
    flat_roof_percent: float = 0.0
    total_energy_demand: float = 0.0
    annual_cost: float = 0.0
    co2_emissions: float = 0.0
    avg_height: float = 0.0
    avg_storeys: float = 0.0


AggregateStats = Union[BusStats, NoiseStats, EnergyStats]
