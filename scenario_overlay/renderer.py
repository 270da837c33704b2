#!/usr/bin/env python3
"""
Scenario Overlay - Renderer Interface

ARCHITECTURAL OVERVIEW:
=======================
Responsibility: Describe the slice of the 3D-tile renderer the classifier
depends on, and provide an in-memory implementation of it for offline
replay and tests.

Renderer contract:
- Tileset.tile_visible: event fired once per tile the renderer reveals
- Tileset.root: root of the tile hierarchy (children reachable via .children)
- Tile.content: None while unloaded, else feature_count / get_feature(i)
- Feature: get_property(name) / set_property(name, value)

Navigation Guide:
- TileEvent: add/remove listener pairs, raise_event
- Subscription: scoped acquisition of one listener registration
- iter_loaded_tiles: depth-first walk over tiles whose content is loaded
- InMemoryFeature / InMemoryContent / InMemoryTile / InMemoryTileset

For Navigation: Use VS Code outline (Ctrl+Shift+O)
"""

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)

TileListener = Callable[[Any], None]


# ═══════════════════════════════════════════════════════════════════════════
# 📡 EVENTS & SUBSCRIPTIONS
# ═══════════════════════════════════════════════════════════════════════════


class TileEvent:
    """Minimal multicast event mirroring the renderer's tileVisible event."""

    def __init__(self) -> None:
        self._listeners: List[TileListener] = []

    def add_listener(self, listener: TileListener) -> Callable[[], bool]:
        """Register listener; returns a callable that removes it again."""
        self._listeners.append(listener)
        return lambda: self.remove_listener(listener)

    def remove_listener(self, listener: TileListener) -> bool:
        """Remove listener; False if it was not registered."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def raise_event(self, tile: Any) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            listener(tile)


class Subscription:
    """
    One listener registration on a TileEvent.

    release() is unconditional and idempotent, so it can sit on every
    teardown path (including error paths) without bookkeeping at the caller.
    Also usable as a context manager.
    """

    def __init__(self, event: Any, listener: TileListener) -> None:
        self._event = event
        self._listener = listener
        event.add_listener(listener)
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        try:
            self._event.remove_listener(self._listener)
        except Exception as e:
            logger.warning(f"⚠️ Error removing tile listener: {e}")
        finally:
            self._event = None
            self._listener = None

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


# ═══════════════════════════════════════════════════════════════════════════
# 🌳 TILE HIERARCHY TRAVERSAL
# ═══════════════════════════════════════════════════════════════════════════


def iter_loaded_tiles(root: Any) -> Iterator[Any]:
    """Depth-first walk yielding every tile whose content is loaded.

    Unloaded tiles are still descended into: a parent can be evicted while
    its children stay resident.
    """
    if root is None:
        return
    stack = [root]
    while stack:
        tile = stack.pop()
        if getattr(tile, "content", None) is not None:
            yield tile
        children = getattr(tile, "children", None) or ()
        # Reverse so children are visited in declaration order
        stack.extend(reversed(list(children)))


# ═══════════════════════════════════════════════════════════════════════════
# 🧪 IN-MEMORY RENDERER
# ═══════════════════════════════════════════════════════════════════════════


class InMemoryFeature:
    """Feature handle backed by a property dict."""

    def __init__(self, properties: Optional[Dict[str, Any]] = None) -> None:
        self.properties: Dict[str, Any] = dict(properties or {})

    def get_property(self, name: str) -> Any:
        return self.properties.get(name)

    def set_property(self, name: str, value: Any) -> None:
        self.properties[name] = value

    def __repr__(self) -> str:
        return f"InMemoryFeature({self.properties!r})"


class InMemoryContent:
    """Loaded tile content: an indexed batch of features."""

    def __init__(self, features: Sequence[InMemoryFeature]) -> None:
        self._features = list(features)

    @property
    def feature_count(self) -> int:
        return len(self._features)

    def get_feature(self, index: int) -> InMemoryFeature:
        return self._features[index]


class InMemoryTile:
    """Tile node; content is None while unloaded."""

    def __init__(
        self,
        features: Optional[Sequence[InMemoryFeature]] = None,
        children: Optional[Sequence["InMemoryTile"]] = None,
    ) -> None:
        self.content: Optional[InMemoryContent] = (
            InMemoryContent(features) if features is not None else None
        )
        self.children: List["InMemoryTile"] = list(children or [])

    def unload(self) -> None:
        self.content = None

    def load(self, features: Sequence[InMemoryFeature]) -> None:
        self.content = InMemoryContent(features)


class InMemoryTileset:
    """Tileset with a tile_visible event and a root tile."""

    def __init__(self, root: Optional[InMemoryTile] = None) -> None:
        self.root = root or InMemoryTile()
        self.tile_visible = TileEvent()

    def reveal(self, tile: InMemoryTile) -> None:
        """Simulate the renderer showing tile."""
        self.tile_visible.raise_event(tile)

    def reveal_all(self) -> int:
        """Reveal every loaded tile; returns the number of tiles revealed."""
        count = 0
        for tile in iter_loaded_tiles(self.root):
            self.reveal(tile)
            count += 1
        return count

    @classmethod
    def from_feature_batches(
        cls, batches: Sequence[Sequence[InMemoryFeature]]
    ) -> "InMemoryTileset":
        """Root without content and one loaded child tile per batch."""
        return cls(InMemoryTile(children=[InMemoryTile(batch) for batch in batches]))
