"""
Unit tests for the Incremental Tile Scanner.

Tests:
1. Subscription lifecycle: start/stop, double stop, stop before start
2. Revisiting a tile does not re-classify (idempotent revisit)
3. Zone rebuild re-walks resident tiles (zone shrink propagates)
4. Buildings whose tiles were evicted follow the new zone as well
5. Features without id or coordinates are skipped
6. Callbacks after stop are ignored
7. A rebuild during a tile pass does not mix zones within that pass

Run with: python -m pytest _tests/test_tile_scanner.py -v
"""

import pytest
from shapely.geometry import box

from scenario_overlay.classification.classifier import FeatureClassifier
from scenario_overlay.classification.tile_scanner import (
    IncrementalTileScanner,
    ScannerState,
)
from scenario_overlay.models.membership import MembershipSets
from scenario_overlay.renderer import (
    InMemoryFeature,
    InMemoryTile,
    InMemoryTileset,
    iter_loaded_tiles,
)
from scenario_overlay.zones.zone_types import BufferZone, EmptyZone

LABEL = "is_near_busstop"

BIG = BufferZone(geometries=(box(-10, -10, 10, 10),), radius_m=800.0)
SMALL = BufferZone(geometries=(box(-1, -1, 1, 1),), radius_m=400.0)


# ============================================================================
# FIXTURES
# ============================================================================


class CountingClassifier(FeatureClassifier):
    """FeatureClassifier that counts geometry evaluations."""

    def __init__(self):
        super().__init__(LABEL)
        self.evaluations = 0

    def evaluate(self, coordinates, zone):
        self.evaluations += 1
        return super().evaluate(coordinates, zone)


class RebuildOnFirstRead(InMemoryFeature):
    """Feature whose first id read runs a callback (a rebuild mid-tile)."""

    def __init__(self, properties, callback):
        super().__init__(properties)
        self._callback = callback

    def get_property(self, name):
        if name == "gml:id" and self._callback is not None:
            callback, self._callback = self._callback, None
            callback()
        return super().get_property(name)


@pytest.fixture
def classifier():
    return CountingClassifier()


@pytest.fixture
def membership():
    return MembershipSets((True, False))


@pytest.fixture
def recompute_log():
    return []


@pytest.fixture
def scanner(classifier, membership, recompute_log):
    return IncrementalTileScanner(
        classifier,
        membership,
        on_classified=lambda: recompute_log.append("scheduled"),
        on_rewalked=lambda: recompute_log.append("now"),
        zone=BIG,
    )


@pytest.fixture
def tileset(make_building):
    """Root with two loaded children; b_far is outside SMALL."""
    near = InMemoryTile([make_building("b_near", 0.5, 0.5)])
    far = InMemoryTile([make_building("b_far", 5.0, 5.0)])
    return InMemoryTileset(InMemoryTile(children=[near, far]))


class TestSubscription:
    """UNREGISTERED <-> SCANNING transitions."""

    def test_start_subscribes(self, scanner, tileset):
        scanner.start(tileset)
        assert scanner.state is ScannerState.SCANNING
        assert tileset.tile_visible.listener_count == 1

    def test_stop_unsubscribes(self, scanner, tileset):
        scanner.start(tileset)
        scanner.stop()
        assert scanner.state is ScannerState.UNREGISTERED
        assert tileset.tile_visible.listener_count == 0

    def test_stop_is_safe_before_start_and_twice(self, scanner, tileset):
        """Unconditional unsubscribe never raises."""
        scanner.stop()
        scanner.start(tileset)
        scanner.stop()
        scanner.stop()
        assert tileset.tile_visible.listener_count == 0

    def test_restart_keeps_single_listener(self, scanner, tileset):
        scanner.start(tileset)
        scanner.start(tileset)
        assert tileset.tile_visible.listener_count == 1

    def test_callback_after_stop_is_noop(self, scanner, tileset, membership):
        """A tile event delivered after stop() changes nothing."""
        tile = tileset.root.children[0]
        scanner.start(tileset)
        scanner.stop()
        scanner.on_tile_visible(tile)
        assert membership.total == 0


class TestIncrementalClassification:
    """Once per id per generation."""

    def test_revisit_does_not_reclassify(self, scanner, tileset, classifier, membership):
        """Revealing the same tile again evaluates nothing new."""
        scanner.start(tileset)
        tile = tileset.root.children[0]

        tileset.reveal(tile)
        tileset.reveal(tile)
        tileset.reveal(tile)

        assert classifier.evaluations == 1
        assert membership.total == 1
        assert membership.members(True) == {"b_near"}

    def test_one_recompute_request_per_tile(self, scanner, tileset, recompute_log):
        """Stats are requested once per tile that classified something."""
        scanner.start(tileset)
        tileset.reveal_all()
        tileset.reveal_all()
        assert recompute_log == ["scheduled", "scheduled"]

    def test_duplicate_feature_in_other_tile_gets_label(
        self, scanner, classifier, make_building
    ):
        """A second copy of a building is styled without re-testing geometry."""
        first = make_building("dup", 0.5, 0.5)
        second = make_building("dup", 0.5, 0.5)
        tileset = InMemoryTileset(
            InMemoryTile(children=[InMemoryTile([first]), InMemoryTile([second])])
        )
        scanner.start(tileset)
        tileset.reveal_all()

        assert classifier.evaluations == 1
        assert second.get_property(LABEL) is True

    def test_features_without_id_or_coordinates_skipped(
        self, scanner, membership, make_building
    ):
        tile = InMemoryTile(
            [
                make_building(None, 0.5, 0.5),
                make_building("no_coords", None, None),
                make_building("ok", 0.5, 0.5),
            ]
        )
        tileset = InMemoryTileset(tile)
        scanner.start(tileset)
        tileset.reveal(tile)

        assert membership.total == 1
        assert scanner.skipped_count == 2

    def test_unloaded_tile_ignored(self, scanner, tileset, membership):
        tile = tileset.root.children[0]
        tile.unload()
        scanner.start(tileset)
        tileset.reveal(tile)
        assert membership.total == 0


class TestZoneRebuild:
    """Generation bump + eager re-walk."""

    def test_zone_shrink_propagates_to_resident_tiles(
        self, scanner, tileset, membership
    ):
        """Shrinking the zone moves b_far outside without any new tile event."""
        scanner.start(tileset)
        tileset.reveal_all()
        assert membership.count(True) == 2

        scanner.on_zone_rebuilt(SMALL)

        assert membership.members(True) == {"b_near"}
        assert membership.members(False) == {"b_far"}
        far_feature = tileset.root.children[1].content.get_feature(0)
        assert far_feature.get_property(LABEL) is False

    def test_rebuild_requests_immediate_recompute(self, scanner, tileset, recompute_log):
        scanner.start(tileset)
        scanner.on_zone_rebuilt(SMALL)
        assert recompute_log[-1] == "now"

    def test_generation_increments(self, scanner, tileset):
        scanner.start(tileset)
        assert scanner.generation == 0
        scanner.on_zone_rebuilt(SMALL)
        scanner.on_zone_rebuilt(BIG)
        assert scanner.generation == 2
        assert scanner.zone is BIG

    def test_evicted_tiles_follow_new_zone(self, scanner, tileset, membership):
        """Buildings seen earlier but no longer resident are re-evaluated too."""
        scanner.start(tileset)
        tileset.reveal_all()
        tileset.root.children[1].unload()

        scanner.on_zone_rebuilt(SMALL)

        assert membership.label_of("b_far") is False
        assert membership.total == 2

    def test_revisit_after_rebuild_is_idempotent(
        self, scanner, tileset, classifier
    ):
        """After the eager walk, revealing resident tiles classifies nothing."""
        scanner.start(tileset)
        scanner.on_zone_rebuilt(SMALL)
        before = classifier.evaluations
        tileset.reveal_all()
        assert classifier.evaluations == before

    def test_empty_zone_marks_everything_outside(self, scanner, tileset, membership):
        scanner.start(tileset)
        tileset.reveal_all()
        scanner.on_zone_rebuilt(EmptyZone())
        assert membership.count(False) == membership.total == 2


class TestRebuildDuringPass:
    """A tile pass reads (zone, generation) once at entry."""

    def test_streamed_tile_finishes_with_old_zone(
        self, scanner, tileset, membership, make_building
    ):
        """Rest of the tile keeps the old zone; the next reveal catches up."""
        trigger = RebuildOnFirstRead(
            {"gml:id": "t_first", "Longitude": 0.5, "Latitude": 0.5},
            lambda: scanner.on_zone_rebuilt(SMALL),
        )
        rest = make_building("t_rest", 5.0, 5.0)
        # Not attached to the resident hierarchy, so the rebuild walk misses it
        streamed = InMemoryTile([trigger, rest])
        scanner.start(tileset)

        tileset.reveal(streamed)

        assert scanner.generation == 1
        assert rest.get_property(LABEL) is True
        assert membership.label_of("t_rest") is True
        assert not scanner.is_current("t_rest")

        tileset.reveal(streamed)

        assert rest.get_property(LABEL) is False
        assert membership.label_of("t_rest") is False
        assert scanner.is_current("t_rest")
        assert scanner.is_current("t_first")

    def test_resident_tile_not_downgraded(
        self, scanner, tileset, membership, classifier, make_building
    ):
        """Features the rebuild walk already handled keep the newer label."""
        trigger = RebuildOnFirstRead(
            {"gml:id": "t_first", "Longitude": 0.5, "Latitude": 0.5},
            lambda: scanner.on_zone_rebuilt(SMALL),
        )
        rest = make_building("t_rest", 5.0, 5.0)
        resident = InMemoryTile([trigger, rest])
        tileset.root.children.append(resident)
        scanner.start(tileset)

        tileset.reveal(resident)

        assert rest.get_property(LABEL) is False
        assert membership.label_of("t_rest") is False
        assert scanner.is_current("t_rest")
        # near, far, t_first, t_rest once each, all by the rebuild walk
        assert classifier.evaluations == 4


class TestTraversal:
    """Depth-first walk of resident tiles."""

    def test_descends_through_unloaded_parents(self, make_building):
        leaf = InMemoryTile([make_building("leaf", 0.0, 0.0)])
        middle = InMemoryTile(children=[leaf])
        root = InMemoryTile([make_building("root", 0.0, 0.0)], children=[middle])
        assert list(iter_loaded_tiles(root)) == [root, leaf]

    def test_none_root(self):
        assert list(iter_loaded_tiles(None)) == []
