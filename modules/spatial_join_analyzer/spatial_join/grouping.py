"""Grouping and count aggregation for matched target features.

A group key is the tuple of resolved values of a dataset's ``group_by_fields``.
Two GroupCounter accumulators are fed from the same pass over matched
features: one scoped to a (reference, dataset) pair and one analysis-wide.
"""

from collections import Counter
from typing import Dict, Iterable, Mapping, Optional, Sequence

from ..models import Feature, UNKNOWN_VALUE
from .spatial_join_models import GroupKey, GROUP_KEY_SEPARATOR

__all__ = [
    "UNKNOWN_VALUE",
    "GROUP_KEY_SEPARATOR",
    "GroupCounter",
    "build_group_key",
    "serialize_group_key",
    "parse_group_key",
    "aggregate_matches",
]


def build_group_key(feature: Feature, group_by_fields: Sequence[str]) -> GroupKey:
    """Resolve each grouping field in order; missing or falsy values become ``"Unknown"``."""
    return tuple(feature.get_group_value(field_name) for field_name in group_by_fields)


def serialize_group_key(key: GroupKey) -> str:
    """Join a key for reports. The empty key serializes to the empty string."""
    return GROUP_KEY_SEPARATOR.join(key)


def parse_group_key(text: str) -> GroupKey:
    """Split a serialized key back into segments.
    
    Values that themselves contain ``" - "`` cannot be recovered exactly.
    """
    if not text:
        return ()
    return tuple(text.split(GROUP_KEY_SEPARATOR))


class GroupCounter:
    """Insertion-ordered count of group keys."""
    
    def __init__(self, counts: Optional[Mapping[GroupKey, int]] = None):
        self._counts: Counter = Counter()
        if counts:
            self.update(counts)
    
    def increment(self, key: GroupKey, amount: int = 1) -> None:
        self._counts[tuple(key)] += amount
    
    def update(self, counts: Mapping[GroupKey, int]) -> None:
        for key, count in counts.items():
            self.increment(key, count)
    
    def get(self, key: GroupKey) -> int:
        return self._counts.get(tuple(key), 0)
    
    def total(self) -> int:
        return sum(self._counts.values())
    
    def as_dict(self) -> Dict[GroupKey, int]:
        return dict(self._counts)
    
    def __len__(self) -> int:
        return len(self._counts)
    
    def __repr__(self) -> str:
        return f"GroupCounter({dict(self._counts)!r})"


def aggregate_matches(matched_features: Iterable[Feature],
                      group_by_fields: Sequence[str],
                      local_counter: GroupCounter,
                      summary_counter: GroupCounter) -> int:
    """Count each matched feature under its group key in both counters.
    
    Returns:
        Number of features aggregated
    """
    aggregated = 0
    for feature in matched_features:
        key = build_group_key(feature, group_by_fields)
        local_counter.increment(key)
        summary_counter.increment(key)
        aggregated += 1
    return aggregated
