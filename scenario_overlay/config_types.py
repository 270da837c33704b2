"""
═══════════════════════════════════════════════════════════════════════════════
📋 UNIFIED CONFIGURATION TYPES
═══════════════════════════════════════════════════════════════════════════════

ARCHITECTURAL OVERVIEW
----------------------
Responsibility: Define typed configuration dataclasses for the scenario
overlay package. Wraps the CONFIG dictionary in frozen, validated objects.

Usage:
    from scenario_overlay.config import CONFIG
    from scenario_overlay.config_types import AppConfig

    # Create once at application startup
    app_config = AppConfig.from_dict(CONFIG)

    radius = app_config.bus_buffer.snap_radius(630.0)  # -> 650.0

For Navigation: Use VS Code outline (Ctrl+Shift+O)

NAVIGATION GUIDE
----------------
# ═════ 1. PROPERTY NAMES CONFIGURATION
# ═════ 2. ZONE CONFIGURATION
# ═════ 3. CLASSIFIER / STATS CONFIGURATION
# ═════ 4. ENERGY CONFIGURATION
# ═════ 5. LOGGING CONFIGURATION
# ═════ 6. APP CONFIG (MASTER FACADE)

═══════════════════════════════════════════════════════════════════════════════
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Tuple
import logging


# ═══════════════════════════════════════════════════════════════════════════════
# 🏷️ 1. PROPERTY NAMES CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class PropertyNamesConfig:
    """
    Names of the tile feature properties read and written by the classifier.

    Attributes:
        feature_id: Stable building identifier (CityGML gml:id).
        latitude: Representative latitude in WGS84 degrees.
        longitude: Representative longitude in WGS84 degrees.
        bus_label: Boolean label written by the bus scenario.
        noise_label: Severity label written by the noise scenario.
        height, storeys, roof_type, function, footprint: Energy inputs.
    """

    feature_id: str = "gml:id"
    latitude: str = "Latitude"
    longitude: str = "Longitude"
    bus_label: str = "is_near_busstop"
    noise_label: str = "noise_level"
    height: str = "bldg:measuredheight"
    storeys: str = "bldg:storeysaboveground"
    roof_type: str = "bldg:rooftype"
    function: str = "bldg:function"
    footprint: str = "Grundflaeche"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PropertyNamesConfig":
        """Create PropertyNamesConfig from CONFIG['properties'] dictionary."""
        defaults = cls()
        return cls(
            **{
                name: d.get(name, getattr(defaults, name))
                for name in defaults.__dataclass_fields__
            }
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🔷 2. ZONE CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class BufferZoneConfig:
    """
    Bus stop buffer zone configuration.

    Attributes:
        seed_source: Path or http(s) URL of the bus stop GeoJSON.
        default_radius_m: Radius applied on scenario activation.
        min_radius_m: Lower slider bound.
        max_radius_m: Upper slider bound.
        step_m: Slider step granularity (0 disables snapping).
        buffer_resolution: Segments per quarter circle in buffer polygons.
    """

    seed_source: str = "public/busstops.geojson"
    default_radius_m: float = 400.0
    min_radius_m: float = 400.0
    max_radius_m: float = 800.0
    step_m: float = 50.0
    buffer_resolution: int = 32

    def __post_init__(self) -> None:
        """Validate radius bounds."""
        if self.min_radius_m <= 0 or self.max_radius_m < self.min_radius_m:
            raise ValueError(
                f"Invalid radius bounds: {self.min_radius_m}-{self.max_radius_m}"
            )
        if not self.min_radius_m <= self.default_radius_m <= self.max_radius_m:
            raise ValueError(
                f"default_radius_m {self.default_radius_m} outside bounds "
                f"{self.min_radius_m}-{self.max_radius_m}"
            )
        if self.step_m < 0:
            raise ValueError(f"step_m must be >= 0, got {self.step_m}")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "BufferZoneConfig":
        """Create BufferZoneConfig from CONFIG['bus_buffer'] dictionary."""
        return cls(
            seed_source=d.get("seed_source", "public/busstops.geojson"),
            default_radius_m=float(d.get("default_radius_m", 400.0)),
            min_radius_m=float(d.get("min_radius_m", 400.0)),
            max_radius_m=float(d.get("max_radius_m", 800.0)),
            step_m=float(d.get("step_m", 50.0)),
            buffer_resolution=int(d.get("buffer_resolution", 32)),
        )

    def clamp_radius(self, radius_m: float) -> float:
        """Clamp a requested radius into the slider bounds."""
        return min(max(radius_m, self.min_radius_m), self.max_radius_m)

    def snap_radius(self, radius_m: float) -> float:
        """Clamp a requested radius and round it to the slider step."""
        clamped = self.clamp_radius(radius_m)
        if self.step_m <= 0:
            return clamped
        steps = round((clamped - self.min_radius_m) / self.step_m)
        return self.clamp_radius(self.min_radius_m + steps * self.step_m)


@dataclass(frozen=True)
class NoiseZoneConfig:
    """
    Noise zone configuration.

    Attributes:
        seed_source: Path or http(s) URL of the noise polygon GeoJSON.
        level_fields: Attribute names searched in order for the severity.
    """

    seed_source: str = "public/noise_zones.geojson"
    level_fields: Tuple[str, ...] = ("level", "severity")

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "NoiseZoneConfig":
        """Create NoiseZoneConfig from CONFIG['noise_zones'] dictionary."""
        return cls(
            seed_source=d.get("seed_source", "public/noise_zones.geojson"),
            level_fields=tuple(d.get("level_fields", ("level", "severity"))),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 🏢 3. CLASSIFIER / STATS CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ClassifierConfig:
    """Feature classifier settings.

    Attributes:
        fallback_half_size_deg: Half-width of the bounding box used when the
            point-in-polygon test fails (~20m at mid latitudes).
    """

    fallback_half_size_deg: float = 0.00018

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ClassifierConfig":
        """Create ClassifierConfig from CONFIG['classifier'] dictionary."""
        return cls(
            fallback_half_size_deg=float(d.get("fallback_half_size_deg", 0.00018)),
        )


@dataclass(frozen=True)
class StatsConfig:
    """Statistics aggregator settings.

    Attributes:
        update_interval_s: Throttle window for stats recomputation.
        percent_decimals: Rounding applied to published percentages.
    """

    update_interval_s: float = 1.0
    percent_decimals: int = 1

    def __post_init__(self) -> None:
        """Validate the throttle window."""
        if self.update_interval_s < 0:
            raise ValueError(
                f"update_interval_s must be >= 0, got {self.update_interval_s}"
            )

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StatsConfig":
        """Create StatsConfig from CONFIG['stats'] dictionary."""
        return cls(
            update_interval_s=float(d.get("update_interval_s", 1.0)),
            percent_decimals=int(d.get("percent_decimals", 1)),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# ⚡ 4. ENERGY CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EnergyConfig:
    """
    Energy demand coefficients.

    Attributes:
        kwh_per_m3: Annual heating demand per cubic metre of building volume.
        eur_per_kwh: Energy price used for annual cost.
        co2_kg_per_kwh: Emission factor.
        flat_roof_code: CityGML roof type code for flat roofs.
        floor_area_per_storey_m2: Footprint estimate per storey when the
            building has coordinates but no footprint attribute.
        min_footprint_m2: Lower bound for the last-resort footprint estimate.
        fallback_area_per_storey_m2: Per-storey area for the last resort.
    """

    kwh_per_m3: float = 15.0
    eur_per_kwh: float = 0.40
    co2_kg_per_kwh: float = 0.31
    flat_roof_code: str = "1000"
    floor_area_per_storey_m2: float = 100.0
    min_footprint_m2: float = 50.0
    fallback_area_per_storey_m2: float = 30.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EnergyConfig":
        """Create EnergyConfig from CONFIG['energy'] dictionary."""
        return cls(
            kwh_per_m3=float(d.get("kwh_per_m3", 15.0)),
            eur_per_kwh=float(d.get("eur_per_kwh", 0.40)),
            co2_kg_per_kwh=float(d.get("co2_kg_per_kwh", 0.31)),
            flat_roof_code=str(d.get("flat_roof_code", "1000")),
            floor_area_per_storey_m2=float(d.get("floor_area_per_storey_m2", 100.0)),
            min_footprint_m2=float(d.get("min_footprint_m2", 50.0)),
            fallback_area_per_storey_m2=float(
                d.get("fallback_area_per_storey_m2", 30.0)
            ),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# 📋 5. LOGGING CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings for replay runs.

    Attributes:
        level: Root level name for the package logger.
        log_file: Optional log file path (empty = console only).
        debug: Force DEBUG level (per-feature skip messages).
    """

    level: str = "INFO"
    log_file: str = ""
    debug: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoggingConfig":
        """Create LoggingConfig from CONFIG['logging'] dictionary."""
        return cls(
            level=d.get("level", "INFO"),
            log_file=d.get("log_file", ""),
            debug=bool(d.get("debug", False)),
        )

    @property
    def effective_level(self) -> int:
        """Resolved numeric logging level."""
        if self.debug:
            return logging.DEBUG
        return logging.getLevelName(self.level.upper())


# ═══════════════════════════════════════════════════════════════════════════════
# 🏛️ 6. APP CONFIG (MASTER FACADE)
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AppConfig:
    """
    Master configuration facade.

    Every session and the lifecycle controller receive one AppConfig so the
    CONFIG dictionary is parsed exactly once per process.
    """

    properties: PropertyNamesConfig = field(default_factory=PropertyNamesConfig)
    bus_buffer: BufferZoneConfig = field(default_factory=BufferZoneConfig)
    noise_zones: NoiseZoneConfig = field(default_factory=NoiseZoneConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    stats: StatsConfig = field(default_factory=StatsConfig)
    energy: EnergyConfig = field(default_factory=EnergyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AppConfig":
        """Create AppConfig from the master CONFIG dictionary."""
        return cls(
            properties=PropertyNamesConfig.from_dict(d.get("properties", {})),
            bus_buffer=BufferZoneConfig.from_dict(d.get("bus_buffer", {})),
            noise_zones=NoiseZoneConfig.from_dict(d.get("noise_zones", {})),
            classifier=ClassifierConfig.from_dict(d.get("classifier", {})),
            stats=StatsConfig.from_dict(d.get("stats", {})),
            energy=EnergyConfig.from_dict(d.get("energy", {})),
            logging=LoggingConfig.from_dict(d.get("logging", {})),
        )


def load_app_config() -> AppConfig:
    """Build the AppConfig from the module-level CONFIG dictionary."""
    from scenario_overlay.config import CONFIG

    return AppConfig.from_dict(CONFIG)
