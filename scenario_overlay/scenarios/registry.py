"""
Declarative scenario table.

Each entry describes what the front end shows for a scenario and which
session class (if any) runs the tile classification core. Scenarios
without a session (IFC/BIM overlays) only tear down the previous one.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Type

from scenario_overlay.models.data_models import UnknownScenarioError
from scenario_overlay.scenarios.base import ScenarioSession
from scenario_overlay.scenarios.bus import BusScenarioSession
from scenario_overlay.scenarios.energy import EnergyScenarioSession
from scenario_overlay.scenarios.noise import NoiseScenarioSession


@dataclass(frozen=True)
class ScenarioOptions:
    """UI options attached to a scenario."""

    enable_picking: bool = True
    enable_dashboard: bool = False
    camera_preset: str = "iso"
    enable_itwin: bool = False


@dataclass(frozen=True)
class ScenarioDefinition:
    """One row of the scenario table."""

    id: str
    title: str
    description: str = ""
    options: ScenarioOptions = field(default_factory=ScenarioOptions)
    session_class: Optional[Type[ScenarioSession]] = None

    @property
    def has_session(self) -> bool:
        return self.session_class is not None


SCENARIOS: Dict[str, ScenarioDefinition] = {
    "bus": ScenarioDefinition(
        id="bus",
        title="Bus Stops",
        description=(
            "Which buildings are in the vicinity of different buffer zones "
            "around bus stops."
        ),
        options=ScenarioOptions(enable_dashboard=True),
        session_class=BusScenarioSession,
    ),
    "noise": ScenarioDefinition(
        id="noise",
        title="Noise Levels",
        description="Which buildings are in the high noise zones around major roads.",
        options=ScenarioOptions(enable_dashboard=True),
        session_class=NoiseScenarioSession,
    ),
    "energy": ScenarioDefinition(
        id="energy",
        title="Energy Consumption",
        description="Building-level energy demand & solar.",
        options=ScenarioOptions(enable_dashboard=True),
        session_class=EnergyScenarioSession,
    ),
    "ifc": ScenarioDefinition(
        id="ifc",
        title="IFC Models",
        description=(
            "Geospatial overlay of BIM models with the land use planning layer."
        ),
        options=ScenarioOptions(enable_itwin=True),
    ),
}


def get_scenario(
    scenario_id: str, table: Optional[Dict[str, ScenarioDefinition]] = None
) -> ScenarioDefinition:
    """Look up a scenario definition.

    Raises:
        UnknownScenarioError: If scenario_id is not in the table
    """
    table = SCENARIOS if table is None else table
    try:
        return table[scenario_id]
    except KeyError:
        raise UnknownScenarioError(
            f"Unknown scenario '{scenario_id}'. Available: {sorted(table)}"
        ) from None
