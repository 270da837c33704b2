#!/usr/bin/env python3
"""
Scenario Overlay - Scenario Lifecycle Controller

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Own the single active scenario session. Switching
scenarios fully tears the previous session down before the next one is
initialised, so no subscription, timer or membership set outlives its
scenario.

Controller states:
    IDLE --activate(id)--> ACTIVE(id) --deactivate()--> IDLE
    ACTIVE(a) --activate(b)--> [teardown a] --> ACTIVE(b)

Key Features:
1. asyncio.Lock serialises activate / deactivate / parameter changes
2. Unknown scenario ids raise UnknownScenarioError before any teardown
3. Parameter changes on idle or fixed-zone scenarios are logged no-ops
4. Degraded sessions (seed source down) still activate with empty zones

Navigation Guide:
- ScenarioLifecycleController.activate: Teardown -> init
- ScenarioLifecycleController.set_zone_parameter: Zone rebuild
- ScenarioLifecycleController.get_stats: Latest snapshot or None

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from scenario_overlay.config_types import AppConfig, load_app_config
from scenario_overlay.models.data_models import AggregateStats
from scenario_overlay.scenarios.base import ScenarioSession, SeedLoader
from scenario_overlay.scenarios.registry import (
    SCENARIOS,
    ScenarioDefinition,
    get_scenario,
)
from scenario_overlay.stats.throttle import AsyncioScheduler, Scheduler

logger = logging.getLogger(__name__)


class ScenarioLifecycleController:
    """
    Activate, switch and deactivate scenarios over one building tileset.

    Args:
        tileset: Renderer tileset exposing tile_visible and root
        config: Application configuration (default: CONFIG)
        scheduler: Timer source (default: running asyncio loop)
        seed_loader: Awaitable seed reader override (tests, replay)
        scenarios: Scenario table override
    """

    def __init__(
        self,
        tileset: Any,
        config: Optional[AppConfig] = None,
        scheduler: Optional[Scheduler] = None,
        seed_loader: Optional[SeedLoader] = None,
        scenarios: Optional[Dict[str, ScenarioDefinition]] = None,
    ) -> None:
        self.tileset = tileset
        self.config = config or load_app_config()
        self.scheduler = scheduler or AsyncioScheduler()
        self.seed_loader = seed_loader
        self.scenarios = SCENARIOS if scenarios is None else scenarios
        self._lock = asyncio.Lock()
        self._active_id: Optional[str] = None
        self._session: Optional[ScenarioSession] = None

    @property
    def active_scenario(self) -> Optional[str]:
        return self._active_id

    @property
    def session(self) -> Optional[ScenarioSession]:
        return self._session

    async def activate(self, scenario_id: str) -> Optional[ScenarioSession]:
        """
        Switch to scenario_id.

        Returns:
            The new session, or None for scenarios without a classification core

        Raises:
            UnknownScenarioError: If scenario_id is not registered (the current
                scenario stays active)
        """
        definition = get_scenario(scenario_id, self.scenarios)

        async with self._lock:
            self._teardown()
            logger.info(f"🎬 Activating scenario '{definition.id}' ({definition.title})")
            self._active_id = definition.id

            if not definition.has_session:
                logger.info(f"   ℹ️ '{definition.id}' has no classification session")
                return None

            session = definition.session_class(
                self.config, self.scheduler, self.seed_loader
            )
            self._session = session
            try:
                await session.init(self.tileset)
            except BaseException:
                # Includes cancellation: nothing may stay subscribed
                logger.exception(f"❌ Scenario '{definition.id}' failed to initialise")
                self._teardown()
                raise
            return session

    async def set_zone_parameter(self, value: Any) -> bool:
        """Apply a zone parameter to the active scenario.

        Returns:
            True if the active session rebuilt its zone
        """
        async with self._lock:
            if self._session is None:
                logger.info("ℹ️ No active scenario, ignoring zone parameter")
                return False
            if not self._session.has_parameter:
                logger.info(
                    f"ℹ️ Scenario '{self._active_id}' has a fixed zone, ignoring parameter"
                )
                return False
            return await self._session.set_zone_parameter(value)

    async def deactivate(self) -> None:
        """Tear down the active scenario; no-op when idle."""
        async with self._lock:
            if self._active_id is None:
                logger.debug("Deactivate while idle ignored")
                return
            self._teardown()

    def get_stats(self) -> Optional[AggregateStats]:
        """Latest stats snapshot of the active session, None when idle."""
        if self._session is None:
            return None
        return self._session.get_stats()

    def _teardown(self) -> None:
        session, self._session = self._session, None
        previous, self._active_id = self._active_id, None
        if session is not None:
            session.dispose()
        if previous is not None:
            logger.info(f"⏹️ Scenario '{previous}' deactivated")
