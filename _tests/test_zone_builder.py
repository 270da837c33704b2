"""
Unit tests for the Zone Geometry Builder.

Tests:
1. Empty seeds produce EmptyZone, invalid radius raises
2. Buffer radius is metric (a point 600 m away is outside 400 m, inside 800 m)
3. Overlapping buffers are unioned into one part
4. Union fallback keeps unreduced polygons when pairs fail
5. Category zones are ordered by severity and skip unknown levels
6. Same inputs produce geometrically equal zones

Run with: python -m pytest _tests/test_zone_builder.py -v
"""

import math

import geopandas as gpd
import pytest
from shapely.geometry import Point, box

from scenario_overlay.models.data_models import InvalidGeometryError, NoiseLevel
from scenario_overlay.zones import zone_builder
from scenario_overlay.zones.zone_builder import (
    build_buffer_zone,
    build_category_zone,
    build_zone,
    union_polygons,
)
from scenario_overlay.zones.zone_types import (
    BufferZone,
    CategoryParameter,
    CategoryZone,
    EmptyZone,
    RadiusParameter,
)


class TestBufferZone:
    """Radius buffers around seed points."""

    def test_empty_seeds_give_empty_zone(self):
        """No seeds is not an error."""
        empty = gpd.GeoDataFrame(geometry=[], crs="EPSG:4326")
        assert isinstance(build_buffer_zone(empty, 400.0), EmptyZone)
        assert isinstance(build_buffer_zone(None, 400.0), EmptyZone)

    @pytest.mark.parametrize("radius", [0.0, -50.0, math.nan, math.inf])
    def test_invalid_radius_raises(self, bus_stops, radius):
        """Non-positive or non-finite radius is rejected."""
        with pytest.raises(InvalidGeometryError):
            build_buffer_zone(bus_stops, radius)

    def test_radius_is_metric(self, bus_stops, geo):
        """600 m north of a stop is outside 400 m and inside 800 m."""
        lon, lat = geo.north_of(geo.stop_lons[1], geo.stop_lat, 600.0)
        point = Point(lon, lat)

        small = build_buffer_zone(bus_stops, 400.0)
        large = build_buffer_zone(bus_stops, 800.0)

        assert not any(g.covers(point) for g in small.geometries)
        assert any(g.covers(point) for g in large.geometries)

    def test_separate_stops_union_into_single_geometry(self, bus_stops):
        """Distant stops still yield one (multi)polygon part."""
        zone = build_buffer_zone(bus_stops, 400.0)
        assert isinstance(zone, BufferZone)
        assert zone.unioned
        assert len(zone.geometries) == 1
        assert zone.geometries[0].geom_type == "MultiPolygon"
        assert zone.radius_m == 400.0

    def test_buffering_uses_current_shapely_api(self, bus_stops, recwarn):
        """No deprecated shapely calls on the buffering path."""
        build_buffer_zone(bus_stops, 400.0, resolution=8)
        deprecated = [
            w
            for w in recwarn.list
            if issubclass(w.category, DeprecationWarning)
            and w.filename.endswith("zone_builder.py")
        ]
        assert deprecated == []

    def test_overlapping_stops_merge(self, geo):
        """Two stops 100 m apart merge into a single polygon."""
        lon, lat = geo.stop_lons[0], geo.stop_lat
        seeds = gpd.GeoDataFrame(
            geometry=[Point(lon, lat), Point(*geo.north_of(lon, lat, 100.0))],
            crs="EPSG:4326",
        )
        zone = build_buffer_zone(seeds, 400.0)
        assert zone.geometries[0].geom_type == "Polygon"

    def test_projected_seeds_are_reprojected(self, bus_stops, geo):
        """Seeds in a metric CRS give the same membership as WGS84 seeds."""
        projected = bus_stops.to_crs(bus_stops.estimate_utm_crs())
        zone = build_buffer_zone(projected, 800.0)
        point = Point(*geo.north_of(geo.stop_lons[1], geo.stop_lat, 600.0))
        assert any(g.covers(point) for g in zone.geometries)

    def test_build_is_deterministic(self, bus_stops):
        """Same seeds and radius give equal geometry."""
        first = build_buffer_zone(bus_stops, 550.0)
        second = build_buffer_zone(bus_stops, 550.0)
        assert first.geometries[0].equals(second.geometries[0])


class TestUnionFallback:
    """Bulk union failure degrades to pairwise union."""

    def test_bulk_failure_uses_pairwise(self, monkeypatch):
        """When unary_union raises, pairwise union still reduces the set."""

        def broken_union(_):
            raise ValueError("TopologyException")

        monkeypatch.setattr(zone_builder, "unary_union", broken_union)
        polygons = [box(0, 0, 2, 2), box(1, 1, 3, 3)]

        parts, fully_unioned = union_polygons(polygons)

        assert fully_unioned
        assert len(parts) == 1
        assert parts[0].area == pytest.approx(7.0)

    def test_failing_pair_keeps_polygon_unreduced(self, monkeypatch):
        """A pair that cannot be unioned leaves that polygon as its own part."""
        bad = box(10, 10, 11, 11)

        def broken_union(_):
            raise ValueError("TopologyException")

        def picky_pair(a, b):
            if b.equals(bad):
                raise ValueError("non-noded intersection")
            return a.union(b)

        monkeypatch.setattr(zone_builder, "unary_union", broken_union)
        monkeypatch.setattr(zone_builder, "_union_pair", picky_pair)

        parts, fully_unioned = union_polygons([box(0, 0, 2, 2), bad, box(1, 1, 3, 3)])

        assert not fully_unioned
        assert len(parts) == 2
        assert parts[1].equals(bad)

    def test_buffer_zone_records_partial_union(self, bus_stops, monkeypatch):
        """BufferZone.unioned is False when every pair failed."""

        def broken(*_):
            raise ValueError("boom")

        monkeypatch.setattr(zone_builder, "unary_union", broken)
        monkeypatch.setattr(zone_builder, "_union_pair", broken)

        zone = build_buffer_zone(bus_stops, 400.0)

        assert isinstance(zone, BufferZone)
        assert not zone.unioned
        assert len(zone.geometries) == 3

    def test_empty_input(self):
        """No polygons, nothing to union."""
        assert union_polygons([]) == ((), True)


class TestCategoryZone:
    """Severity-partitioned noise polygons."""

    def test_levels_ordered_most_severe_first(self, noise_polygons):
        """Input order does not matter; output is high, medium, low."""
        zone = build_category_zone(noise_polygons)
        assert isinstance(zone, CategoryZone)
        assert [level for level, _ in zone.levels] == [
            NoiseLevel.HIGH,
            NoiseLevel.MEDIUM,
            NoiseLevel.LOW,
        ]

    def test_unknown_level_skipped(self, noise_polygons):
        """The 'unknown' polygon is dropped, the rest kept."""
        zone = build_category_zone(noise_polygons)
        assert zone.polygon_count == 3

    def test_severity_field_is_accepted(self):
        """Polygons may carry 'severity' instead of 'level'."""
        frame = gpd.GeoDataFrame(
            {"severity": ["Medium"]}, geometry=[box(0, 0, 1, 1)], crs="EPSG:4326"
        )
        zone = build_category_zone(frame)
        assert zone.levels[0][0] is NoiseLevel.MEDIUM

    def test_points_are_not_noise_polygons(self):
        """Non-polygon geometries are skipped."""
        frame = gpd.GeoDataFrame(
            {"level": ["high"]}, geometry=[Point(0, 0)], crs="EPSG:4326"
        )
        assert isinstance(build_category_zone(frame), EmptyZone)

    def test_no_cross_level_union(self):
        """Overlapping polygons of different levels stay separate."""
        frame = gpd.GeoDataFrame(
            {"level": ["high", "low"]},
            geometry=[box(0, 0, 2, 2), box(1, 1, 3, 3)],
            crs="EPSG:4326",
        )
        zone = build_category_zone(frame)
        assert zone.levels[0][1][0].equals(box(0, 0, 2, 2))
        assert zone.levels[1][1][0].equals(box(1, 1, 3, 3))


class TestBuildZoneDispatch:
    """build_zone picks the builder from the parameter kind."""

    def test_radius_parameter(self, bus_stops):
        zone = build_zone(bus_stops, RadiusParameter(400.0))
        assert isinstance(zone, BufferZone)

    def test_category_parameter(self, noise_polygons):
        zone = build_zone(noise_polygons, CategoryParameter())
        assert isinstance(zone, CategoryZone)

    def test_unknown_parameter(self, bus_stops):
        """Anything else is an InvalidGeometryError."""
        with pytest.raises(InvalidGeometryError):
            build_zone(bus_stops, "400")
