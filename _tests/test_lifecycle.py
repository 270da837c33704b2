"""
Unit tests for the Scenario Lifecycle Controller.

Tests:
1. Switching scenarios tears the previous one down before init
2. Unknown scenario ids raise and leave the active scenario untouched
3. Degraded activation when the seed source fails
4. Zone parameter on idle / fixed-zone scenarios is a no-op
5. deactivate() is idempotent; stray timers after deactivate are no-ops

Run with: python -m pytest _tests/test_lifecycle.py -v
"""

import asyncio
import json

import pytest

from scenario_overlay.config_types import AppConfig
from scenario_overlay.lifecycle import ScenarioLifecycleController
from scenario_overlay.models.data_models import (
    BusStats,
    NoiseStats,
    UnknownScenarioError,
)
from scenario_overlay.renderer import InMemoryTile, InMemoryTileset
from scenario_overlay.scenarios.registry import SCENARIOS, get_scenario
from scenario_overlay.zones.zone_types import EmptyZone


@pytest.fixture
def tileset(three_buildings):
    return InMemoryTileset.from_feature_batches([three_buildings])


@pytest.fixture
def controller(tileset, app_config, scheduler, bus_stops, seed_loader_for):
    return ScenarioLifecycleController(
        tileset, app_config, scheduler, seed_loader_for(bus_stops)
    )


class TestActivation:
    """activate() / deactivate() transitions."""

    def test_idle_controller_has_no_stats(self, controller):
        assert controller.get_stats() is None
        assert controller.active_scenario is None

    def test_activate_bus(self, controller, tileset):
        async def scenario():
            await controller.activate("bus")

        asyncio.run(scenario())

        assert controller.active_scenario == "bus"
        assert tileset.tile_visible.listener_count == 1
        assert isinstance(controller.get_stats(), BusStats)

    def test_switch_tears_down_previous(self, controller, tileset, three_buildings):
        """bus -> energy leaves exactly one listener and a fresh session."""

        async def scenario():
            bus = await controller.activate("bus")
            energy = await controller.activate("energy")
            return bus, energy

        bus, energy = asyncio.run(scenario())

        assert bus.disposed
        assert bus.membership.total == 0
        assert bus.scanner is None
        assert not energy.disposed
        assert tileset.tile_visible.listener_count == 1
        assert controller.get_stats().total_buildings == 3

    def test_reactivating_same_scenario_starts_fresh(self, controller, tileset):
        async def scenario():
            first = await controller.activate("bus")
            second = await controller.activate("bus")
            return first, second

        first, second = asyncio.run(scenario())
        assert first is not second
        assert first.disposed
        assert tileset.tile_visible.listener_count == 1

    def test_unknown_scenario_keeps_current(self, controller):
        async def scenario():
            await controller.activate("bus")
            with pytest.raises(UnknownScenarioError):
                await controller.activate("traffic")

        asyncio.run(scenario())
        assert controller.active_scenario == "bus"

    def test_ifc_only_tears_down(self, controller, tileset):
        """Scenarios without a classification core have no session."""

        async def scenario():
            await controller.activate("bus")
            return await controller.activate("ifc")

        session = asyncio.run(scenario())

        assert session is None
        assert controller.active_scenario == "ifc"
        assert controller.get_stats() is None
        assert tileset.tile_visible.listener_count == 0

    def test_deactivate_is_idempotent(self, controller, tileset):
        async def scenario():
            await controller.deactivate()
            await controller.activate("bus")
            await controller.deactivate()
            await controller.deactivate()

        asyncio.run(scenario())
        assert controller.active_scenario is None
        assert controller.get_stats() is None
        assert tileset.tile_visible.listener_count == 0

    def test_init_failure_leaves_nothing_subscribed(
        self, tileset, app_config, scheduler
    ):
        """An unexpected seed loader error propagates after full teardown."""

        async def exploding_loader(source):
            raise RuntimeError("disk on fire")

        controller = ScenarioLifecycleController(
            tileset, app_config, scheduler, exploding_loader
        )

        async def scenario():
            with pytest.raises(RuntimeError):
                await controller.activate("bus")

        asyncio.run(scenario())
        assert controller.active_scenario is None
        assert tileset.tile_visible.listener_count == 0


class TestDegradedSeeds:
    """Seed source failures never reach the caller."""

    def test_bus_without_seeds_is_all_outside(
        self, tileset, app_config, scheduler, failing_seed_loader, three_buildings
    ):
        controller = ScenarioLifecycleController(
            tileset, app_config, scheduler, failing_seed_loader
        )

        async def scenario():
            session = await controller.activate("bus")
            return session, controller.get_stats()

        session, stats = asyncio.run(scenario())

        assert session.degraded
        assert stats == BusStats(total=3, inside=0, outside=3, coverage_percent=0.0)
        assert [f.get_property("is_near_busstop") for f in three_buildings] == [
            False,
            False,
            False,
        ]

    @pytest.mark.parametrize(
        "document",
        [
            {"type": "FeatureCollection", "features": [1]},
            {"type": "FeatureCollection", "features": "stops"},
        ],
    )
    def test_malformed_seed_file_does_not_escape(
        self, tileset, scheduler, tmp_path, document
    ):
        """A seed file that parses as JSON but is not usable GeoJSON degrades."""
        path = tmp_path / "busstops.geojson"
        path.write_text(json.dumps(document), encoding="utf-8")
        config = AppConfig.from_dict({"bus_buffer": {"seed_source": str(path)}})
        controller = ScenarioLifecycleController(tileset, config, scheduler)

        async def scenario():
            session = await controller.activate("bus")
            return session, controller.get_stats()

        session, stats = asyncio.run(scenario())

        assert controller.active_scenario == "bus"
        assert isinstance(session.zone, EmptyZone)
        assert stats == BusStats(total=3, inside=0, outside=3, coverage_percent=0.0)

    def test_noise_without_seeds_is_all_none(
        self, tileset, app_config, scheduler, failing_seed_loader
    ):
        controller = ScenarioLifecycleController(
            tileset, app_config, scheduler, failing_seed_loader
        )

        async def scenario():
            await controller.activate("noise")
            return controller.get_stats()

        stats = asyncio.run(scenario())
        assert stats == NoiseStats(total=3, outside=3, coverage_percent=0.0)

    def test_degraded_bus_still_accepts_radius(
        self, tileset, app_config, scheduler, failing_seed_loader
    ):
        controller = ScenarioLifecycleController(
            tileset, app_config, scheduler, failing_seed_loader
        )

        async def scenario():
            await controller.activate("bus")
            await controller.set_zone_parameter(800)
            return controller.get_stats()

        stats = asyncio.run(scenario())
        assert stats.inside == 0
        assert stats.total == 3


class TestZoneParameter:
    """set_zone_parameter outside parameterized scenarios."""

    def test_idle_is_noop(self, controller):
        assert asyncio.run(controller.set_zone_parameter(600)) is False

    def test_energy_is_noop(self, controller):
        async def scenario():
            await controller.activate("energy")
            return await controller.set_zone_parameter(600)

        assert asyncio.run(scenario()) is False

    def test_seed_source_read_once(
        self, tileset, app_config, scheduler, bus_stops, seed_loader_for
    ):
        """Radius changes reuse the cached seeds."""
        calls = []
        controller = ScenarioLifecycleController(
            tileset, app_config, scheduler, seed_loader_for(bus_stops, calls)
        )

        async def scenario():
            await controller.activate("bus")
            await controller.set_zone_parameter(500)
            await controller.set_zone_parameter(700)

        asyncio.run(scenario())
        assert calls == [app_config.bus_buffer.seed_source]


class TestTeardownRaces:
    """Timers and tile events arriving after deactivation."""

    def test_pending_stats_timer_after_deactivate(
        self, controller, tileset, scheduler, make_building
    ):
        """A trailing recompute scheduled before deactivate never runs."""

        async def scenario():
            session = await controller.activate("bus")
            late = InMemoryTile([make_building("late", 11.6, 48.137)])
            tileset.root.children.append(late)
            tileset.reveal(late)
            pending = session.aggregator.has_pending
            count = session.aggregator.recompute_count
            await controller.deactivate()
            scheduler.advance(10.0)
            return session, pending, count

        session, pending, count = asyncio.run(scenario())

        assert pending
        assert session.aggregator.recompute_count == count
        assert scheduler.pending == 0

    def test_tile_event_after_deactivate(self, controller, tileset):
        async def scenario():
            session = await controller.activate("bus")
            await controller.deactivate()
            return session

        session = asyncio.run(scenario())
        tileset.reveal_all()
        assert session.membership.total == 0


class TestRegistry:
    """Declarative scenario table."""

    def test_known_scenarios(self):
        assert set(SCENARIOS) == {"bus", "noise", "energy", "ifc"}
        assert get_scenario("bus").title == "Bus Stops"
        assert not get_scenario("ifc").has_session
        assert get_scenario("ifc").options.enable_itwin

    def test_unknown(self):
        with pytest.raises(UnknownScenarioError):
            get_scenario("traffic")
