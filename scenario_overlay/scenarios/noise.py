"""
Noise exposure scenario.

Noise polygons are loaded once and partitioned by severity; the zone never
changes while the scenario is active. Buildings outside every polygon are
counted in the NONE bucket.
"""

from scenario_overlay.classification.classifier import FeatureClassifier
from scenario_overlay.models.data_models import NoiseLevel, NoiseStats
from scenario_overlay.scenarios.base import ZoneScenarioSession
from scenario_overlay.stats.aggregator import noise_stats
from scenario_overlay.zones.zone_types import CategoryParameter


class NoiseScenarioSession(ZoneScenarioSession[NoiseStats]):
    """Fixed severity partition, NoiseLevel label per building."""

    scenario_id = "noise"
    labels = tuple(NoiseLevel)

    def seed_source(self) -> str:
        return self.config.noise_zones.seed_source

    def zone_parameter(self) -> CategoryParameter:
        return CategoryParameter(self.config.noise_zones.level_fields)

    def make_classifier(self) -> FeatureClassifier:
        return FeatureClassifier(
            self.config.properties.noise_label,
            outside_label=NoiseLevel.NONE,
            properties=self.config.properties,
            config=self.config.classifier,
        )

    def initial_stats(self) -> NoiseStats:
        return NoiseStats()

    def compute_stats(self) -> NoiseStats:
        return noise_stats(self.membership, self.config.stats.percent_decimals)
