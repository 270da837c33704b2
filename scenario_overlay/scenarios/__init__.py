"""Scenario sessions and the scenario table."""

from .registry import SCENARIOS, ScenarioDefinition, ScenarioOptions, get_scenario

__all__ = ["SCENARIOS", "ScenarioDefinition", "ScenarioOptions", "get_scenario"]
