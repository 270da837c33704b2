"""
Scenario Overlay

Tile-driven incremental building classification for a streamed 3D city
model: zone geometry, per-feature membership, throttled statistics and
scenario lifecycle.
"""

from scenario_overlay.config import CONFIG
from scenario_overlay.config_types import AppConfig
from scenario_overlay.lifecycle import ScenarioLifecycleController
from scenario_overlay.models.data_models import (
    BusStats,
    EnergyStats,
    NoiseLevel,
    NoiseStats,
    ScenarioOverlayError,
    UnknownScenarioError,
)

__all__ = [
    "CONFIG",
    "AppConfig",
    "ScenarioLifecycleController",
    "BusStats",
    "EnergyStats",
    "NoiseLevel",
    "NoiseStats",
    "ScenarioOverlayError",
    "UnknownScenarioError",
]
