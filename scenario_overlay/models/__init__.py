"""Data models package for typed feature, label and statistics structures."""

from .data_models import (
    AggregateStats,
    BusStats,
    ClassificationResult,
    EnergyStats,
    FeatureAccessor,
    MembershipOutcome,
    NoiseLevel,
    NoiseStats,
    # Exceptions
    InvalidGeometryError,
    ScenarioOverlayError,
    SeedSourceError,
    UnknownScenarioError,
    percentage,
)
from .membership import MembershipSets

__all__ = [
    # Records
    "AggregateStats",
    "BusStats",
    "ClassificationResult",
    "EnergyStats",
    "FeatureAccessor",
    "MembershipOutcome",
    "NoiseLevel",
    "NoiseStats",
    "percentage",
    # Exceptions
    "InvalidGeometryError",
    "ScenarioOverlayError",
    "SeedSourceError",
    "UnknownScenarioError",
    # Membership
    "MembershipSets",
]
