#!/usr/bin/env python3
"""
Scenario Overlay - Incremental Tile Scanner

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Drive per-feature work from the renderer's tile-visible
events so each building is processed once per zone generation, however
often its tile is revealed.

State machine:
    UNREGISTERED --start()--> SCANNING --stop()--> UNREGISTERED
Callbacks arriving while UNREGISTERED are no-ops.

Key Features:
1. TileSubscriber: subscription + state handling shared by every
   tile-driven session (classification and energy metrics)
2. IncrementalTileScanner: zone classification keyed by (id, generation)
3. Atomic zone swap: (zone, generation) replaced in one assignment; each
   callback reads it once at entry
4. Eager re-walk of resident tiles on zone rebuild, then re-evaluation of
   known but non-resident ids from their cached coordinates

Navigation Guide:
- TileSubscriber.start / stop: Subscription lifecycle
- IncrementalTileScanner.on_tile_visible: Per-tile classification
- IncrementalTileScanner.on_zone_rebuilt: Generation bump + eager walk

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

from scenario_overlay.classification.classifier import FeatureClassifier
from scenario_overlay.models.data_models import FeatureAccessor, Label
from scenario_overlay.models.membership import MembershipSets
from scenario_overlay.renderer import Subscription, iter_loaded_tiles
from scenario_overlay.zones.zone_types import EmptyZone, ZoneGeometry

logger = logging.getLogger(__name__)


class ScannerState(Enum):
    """Subscription state of a tile-driven session."""

    UNREGISTERED = "unregistered"
    SCANNING = "scanning"


# ═══════════════════════════════════════════════════════════════════════════
# 📡 TILE SUBSCRIBER BASE
# ═══════════════════════════════════════════════════════════════════════════


class TileSubscriber:
    """
    Owns one tile-visible subscription and the scanning state.

    Subclasses implement _process_tile(tile) -> bool (True when anything
    changed) and may override _on_processed().
    """

    def __init__(self) -> None:
        self.state = ScannerState.UNREGISTERED
        self._subscription: Optional[Subscription] = None
        self._tileset: Any = None

    @property
    def is_scanning(self) -> bool:
        return self.state is ScannerState.SCANNING

    def start(self, tileset: Any) -> None:
        """Subscribe to tileset.tile_visible and enter SCANNING.

        Raises whatever the event source raises on subscription; the state
        stays UNREGISTERED in that case.
        """
        if self.is_scanning:
            logger.debug("Scanner already subscribed, re-subscribing")
            self.stop()
        self._subscription = Subscription(tileset.tile_visible, self.on_tile_visible)
        self._tileset = tileset
        self.state = ScannerState.SCANNING
        logger.info(f"📡 {type(self).__name__} subscribed to tile events")

    def stop(self) -> None:
        """Unsubscribe unconditionally; safe before start() and when repeated."""
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None
        was_scanning = self.is_scanning
        self._tileset = None
        self.state = ScannerState.UNREGISTERED
        self._reset()
        if was_scanning:
            logger.info(f"🔌 {type(self).__name__} unsubscribed from tile events")

    def on_tile_visible(self, tile: Any) -> None:
        if not self.is_scanning:
            logger.debug("Tile event after unsubscribe ignored")
            return
        if getattr(tile, "content", None) is None:
            return
        if self._process_tile(tile):
            self._on_processed()

    def walk_loaded_tiles(self) -> int:
        """Process every resident tile of the subscribed tileset."""
        if not self.is_scanning or self._tileset is None:
            return 0
        walked = 0
        for tile in iter_loaded_tiles(getattr(self._tileset, "root", None)):
            self._process_tile(tile)
            walked += 1
        return walked

    def _process_tile(self, tile: Any) -> bool:
        raise NotImplementedError

    def _on_processed(self) -> None:
        pass

    def _reset(self) -> None:
        pass


# ═══════════════════════════════════════════════════════════════════════════
# 🏢 INCREMENTAL ZONE CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class _FeatureRecord:
    """What the scanner remembers per identifier (values only, no handles)."""

    coordinates: Tuple[float, float]
    generation: int
    label: Label


class IncrementalTileScanner(TileSubscriber):
    """
    Classify each revealed building once per zone generation.

    Args:
        classifier: Feature classifier writing the label attribute
        membership: Disjoint label sets owned by the session
        on_classified: Called once per tile that produced new classifications
            (the session's throttled stats recompute)
        on_rewalked: Called after a zone rebuild walk (immediate recompute)
        zone: Initial zone (EmptyZone until the session builds one)
    """

    def __init__(
        self,
        classifier: FeatureClassifier,
        membership: MembershipSets,
        on_classified: Optional[Callable[[], None]] = None,
        on_rewalked: Optional[Callable[[], None]] = None,
        zone: Optional[ZoneGeometry] = None,
    ) -> None:
        super().__init__()
        self.classifier = classifier
        self.membership = membership
        self._on_classified = on_classified
        self._on_rewalked = on_rewalked
        self._active: Tuple[ZoneGeometry, int] = (zone or EmptyZone(), 0)
        self._records: Dict[str, _FeatureRecord] = {}
        self.classified_count = 0
        self.skipped_count = 0

    @property
    def zone(self) -> ZoneGeometry:
        return self._active[0]

    @property
    def generation(self) -> int:
        return self._active[1]

    def is_current(self, feature_id: str) -> bool:
        """True if feature_id was classified under the current generation."""
        record = self._records.get(feature_id)
        return record is not None and record.generation == self._active[1]

    # ─────────────────────────────────────────────────────────────────────
    # Tile callbacks
    # ─────────────────────────────────────────────────────────────────────

    def _process_tile(self, tile: Any) -> bool:
        # Single read: a rebuild during this pass does not mix zones
        zone, generation = self._active
        content = tile.content
        changed = False

        for index in range(content.feature_count):
            feature = content.get_feature(index)
            if feature is None:
                continue
            accessor = self.classifier.accessor(feature)
            feature_id = accessor.feature_id()
            if feature_id is None:
                self.skipped_count += 1
                logger.debug("Skipping feature without identifier")
                continue

            record = self._records.get(feature_id)
            if record is not None and record.generation > generation:
                # A rebuild during this pass already classified it under the
                # newer zone; never overwrite with the older one
                continue
            if record is not None and record.generation == generation:
                # Another copy of an already classified building: style it
                # without re-testing geometry
                self.classifier.write_label(accessor, record.label)
                continue

            coordinates = accessor.coordinates()
            if coordinates is None:
                self.skipped_count += 1
                logger.debug(f"Skipping {feature_id}: no usable coordinates")
                continue

            result = self.classifier.classify(accessor, zone)
            self._remember(feature_id, coordinates, generation, result.label)
            changed = True

        return changed

    def _remember(
        self,
        feature_id: str,
        coordinates: Tuple[float, float],
        generation: int,
        label: Label,
    ) -> None:
        self._records[feature_id] = _FeatureRecord(coordinates, generation, label)
        self.membership.assign(feature_id, label)
        self.classified_count += 1

    def _on_processed(self) -> None:
        if self._on_classified is not None:
            self._on_classified()

    # ─────────────────────────────────────────────────────────────────────
    # Zone rebuild
    # ─────────────────────────────────────────────────────────────────────

    def on_zone_rebuilt(self, zone: ZoneGeometry) -> int:
        """
        Install a new zone and bring every known building up to date.

        Resident tiles are walked depth-first and re-classified (labels are
        rewritten on the features). Buildings known from earlier visits whose
        tiles are no longer resident are re-evaluated from their cached
        coordinates so the membership sets match the new zone everywhere.

        Returns:
            Number of identifiers re-evaluated
        """
        generation = self._active[1] + 1
        self._active = (zone, generation)

        if not self.is_scanning:
            logger.debug("Zone swapped while unsubscribed; nothing to walk")
            return 0

        before = self.classified_count
        tiles = self.walk_loaded_tiles()

        offline = 0
        for feature_id, record in self._records.items():
            if record.generation == generation:
                continue
            result = self.classifier.evaluate(record.coordinates, zone)
            record.generation = generation
            record.label = result.label
            self.membership.assign(feature_id, result.label)
            offline += 1

        reclassified = self.classified_count - before + offline
        logger.info(
            f"🔄 Zone generation {generation}: walked {tiles} resident tile(s), "
            f"re-classified {reclassified} building(s) ({offline} from cache)"
        )
        if self._on_rewalked is not None:
            self._on_rewalked()
        return reclassified

    def _reset(self) -> None:
        self._records.clear()
