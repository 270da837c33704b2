"""Feature classification and incremental tile scanning."""

from .classifier import FeatureClassifier, check_membership
from .tile_scanner import IncrementalTileScanner, ScannerState, TileSubscriber

__all__ = [
    "FeatureClassifier",
    "check_membership",
    "IncrementalTileScanner",
    "ScannerState",
    "TileSubscriber",
]
