"""
Membership sets for incremental classification.

Keeps one identifier set per label plus the "all seen" superset. Every
mutation goes through assign(), which moves an identifier into exactly one
label set, so the sets stay disjoint under any interleaving of tile
callbacks and zone re-walks.
"""

from typing import Dict, FrozenSet, Generic, Hashable, Iterable, Set, TypeVar

L = TypeVar("L", bound=Hashable)


class MembershipSets(Generic[L]):
    """Disjoint label sets plus the superset of observed identifiers.

    Args:
        labels: Every label an identifier can be assigned to
    """

    def __init__(self, labels: Iterable[L]) -> None:
        self._sets: Dict[L, Set[str]] = {label: set() for label in labels}
        if not self._sets:
            raise ValueError("MembershipSets needs at least one label")
        self._label_of: Dict[str, L] = {}
        self._all_ids: Set[str] = set()

    @property
    def labels(self) -> FrozenSet[L]:
        return frozenset(self._sets)

    def assign(self, feature_id: str, label: L) -> None:
        """Move feature_id into the set for label (and into the superset)."""
        if label not in self._sets:
            raise KeyError(f"Unknown label: {label!r}")
        previous = self._label_of.get(feature_id)
        if previous is not None and previous != label:
            self._sets[previous].discard(feature_id)
        self._sets[label].add(feature_id)
        self._label_of[feature_id] = label
        self._all_ids.add(feature_id)

    def label_of(self, feature_id: str):
        """Current label of feature_id, or None if never assigned."""
        return self._label_of.get(feature_id)

    def count(self, label: L) -> int:
        return len(self._sets[label])

    def members(self, label: L) -> FrozenSet[str]:
        return frozenset(self._sets[label])

    @property
    def total(self) -> int:
        return len(self._all_ids)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._all_ids

    def clear(self) -> None:
        for ids in self._sets.values():
            ids.clear()
        self._label_of.clear()
        self._all_ids.clear()
