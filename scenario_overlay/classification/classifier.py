#!/usr/bin/env python3
"""
Scenario Overlay - Feature Classifier

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Decide which zone a building feature falls into and write
the label back onto the feature for renderer-side styling.

Membership test chain (each tier is a first-class outcome):
1. PRIMARY   - point-in-polygon (covers) on the feature's lon/lat
2. FALLBACK  - bbox of +/- half_size degrees intersected with the zone,
               used only when the primary primitive raises
3. MISS      - both tiers raised: not-a-member, logged, never propagated
Features without usable coordinates are UNCLASSIFIED and left untouched.

Navigation Guide:
- FeatureClassifier.classify: Classify + write label
- FeatureClassifier.evaluate: Pure test without side effects
- check_membership: Two-tier test for a geometry sequence

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from typing import Any, Callable, Optional, Sequence, Tuple

from shapely.geometry import Point, box
from shapely.geometry.base import BaseGeometry

from scenario_overlay.config_types import ClassifierConfig, PropertyNamesConfig
from scenario_overlay.models.data_models import (
    ClassificationResult,
    FeatureAccessor,
    Label,
    NoiseLevel,
    MembershipOutcome,
)
from scenario_overlay.zones.zone_types import (
    BufferZone,
    CategoryZone,
    EmptyZone,
    ZoneGeometry,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# 📐 MEMBERSHIP PRIMITIVES
# ═══════════════════════════════════════════════════════════════════════════


def _point_in_any(geometries: Sequence[BaseGeometry], point: Point) -> bool:
    return any(geom.covers(point) for geom in geometries)


def _box_intersects_any(geometries: Sequence[BaseGeometry], bbox: BaseGeometry) -> bool:
    return any(geom.intersects(bbox) for geom in geometries)


def check_membership(
    geometries: Sequence[BaseGeometry],
    lon: float,
    lat: float,
    half_size: float,
    primary: Optional[Callable[[Sequence[BaseGeometry], Point], bool]] = None,
    fallback: Optional[Callable[[Sequence[BaseGeometry], BaseGeometry], bool]] = None,
) -> Tuple[bool, MembershipOutcome]:
    """
    Two-tier membership test of one point against a geometry sequence.

    Args:
        geometries: Zone polygons (any match counts)
        lon: Longitude in WGS84 degrees
        lat: Latitude in WGS84 degrees
        half_size: Bounding-box half size in degrees for the fallback
        primary: Point-in-polygon primitive (default: covers)
        fallback: Bounding-box intersection primitive (default: intersects)

    Returns:
        (is_member, outcome)
    """
    primary = primary or _point_in_any
    fallback = fallback or _box_intersects_any

    try:
        return primary(geometries, Point(lon, lat)), MembershipOutcome.PRIMARY
    except Exception as e:
        logger.debug(f"Point-in-polygon failed at ({lon}, {lat}): {e}")

    try:
        bbox = box(lon - half_size, lat - half_size, lon + half_size, lat + half_size)
        return fallback(geometries, bbox), MembershipOutcome.FALLBACK
    except Exception as e:
        logger.warning(
            f"⚠️ Bounding-box fallback failed at ({lon:.6f}, {lat:.6f}): {e} "
            f"- treating as outside"
        )
    return False, MembershipOutcome.MISS


# ═══════════════════════════════════════════════════════════════════════════
# 🏢 FEATURE CLASSIFIER
# ═══════════════════════════════════════════════════════════════════════════


class FeatureClassifier:
    """
    Classify building features against a zone.

    Buffer and empty zones produce boolean labels; category zones produce a
    NoiseLevel (NONE when outside every level). The label is written to
    label_property on every classification, so repeated calls are safe.

    Args:
        label_property: Feature property receiving the label
        label_encoder: Converts the label to the renderer-facing value
        outside_label: Label for features outside every zone (False for
            buffer zones, NoiseLevel.NONE for category zones)
        properties: Feature property names
        config: Classifier settings (fallback bbox half size)
    """

    def __init__(
        self,
        label_property: str,
        label_encoder: Optional[Callable[[Label], Any]] = None,
        outside_label: Label = False,
        properties: Optional[PropertyNamesConfig] = None,
        config: Optional[ClassifierConfig] = None,
    ) -> None:
        self.label_property = label_property
        self.properties = properties or PropertyNamesConfig()
        self.config = config or ClassifierConfig()
        self._encode = label_encoder or _default_encoder
        self.outside_label = outside_label

    def accessor(self, feature: Any) -> FeatureAccessor:
        """Typed accessor for a raw renderer feature."""
        return FeatureAccessor(
            feature,
            id_property=self.properties.feature_id,
            lat_property=self.properties.latitude,
            lon_property=self.properties.longitude,
        )

    def evaluate(
        self, coordinates: Optional[Tuple[float, float]], zone: ZoneGeometry
    ) -> ClassificationResult:
        """Pure membership evaluation for (lon, lat) against zone."""
        if coordinates is None:
            return ClassificationResult.unclassified()

        lon, lat = coordinates
        half_size = self.config.fallback_half_size_deg

        if isinstance(zone, EmptyZone):
            return ClassificationResult(
                label=self.outside_label, outcome=MembershipOutcome.PRIMARY
            )

        if isinstance(zone, BufferZone):
            inside, outcome = check_membership(zone.geometries, lon, lat, half_size)
            return ClassificationResult(label=inside, outcome=outcome)

        if isinstance(zone, CategoryZone):
            return self._evaluate_category(zone, lon, lat, half_size)

        raise TypeError(f"Unsupported zone type: {type(zone).__name__}")

    def _evaluate_category(
        self, zone: CategoryZone, lon: float, lat: float, half_size: float
    ) -> ClassificationResult:
        # Most severe level wins; later levels are only tested on a miss.
        worst = MembershipOutcome.PRIMARY
        for level, polygons in zone.levels:
            inside, outcome = check_membership(polygons, lon, lat, half_size)
            if inside:
                return ClassificationResult(label=level, outcome=outcome)
            if outcome is MembershipOutcome.MISS:
                worst = outcome
            elif outcome is MembershipOutcome.FALLBACK and worst is MembershipOutcome.PRIMARY:
                worst = outcome
        return ClassificationResult(label=NoiseLevel.NONE, outcome=worst)

    def classify(self, feature: Any, zone: ZoneGeometry) -> ClassificationResult:
        """
        Classify feature against zone and write the label onto it.

        Args:
            feature: Renderer feature handle (or a FeatureAccessor)
            zone: Current zone geometry

        Returns:
            ClassificationResult; UNCLASSIFIED features are not modified
        """
        if isinstance(feature, FeatureAccessor):
            accessor = feature
        else:
            accessor = self.accessor(feature)
        result = self.evaluate(accessor.coordinates(), zone)
        if result.is_classified:
            self.write_label(accessor, result.label)
        return result

    def write_label(self, accessor: FeatureAccessor, label: Label) -> None:
        """Write an already-known label without re-testing geometry."""
        accessor.set(self.label_property, self._encode(label))


def _default_encoder(label: Label) -> Any:
    if isinstance(label, NoiseLevel):
        return label.value
    return label
