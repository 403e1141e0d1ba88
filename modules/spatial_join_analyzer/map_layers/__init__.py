"""Map layer sources built from spatial join results."""

from .layer_builder import (
    MATCH_COUNT_PROPERTY,
    REFERENCE_SOURCE_ID,
    MapLayerSet,
    build_map_layers,
    matched_target_source_id,
    target_source_id,
)

__all__ = [
    'MATCH_COUNT_PROPERTY',
    'REFERENCE_SOURCE_ID',
    'MapLayerSet',
    'build_map_layers',
    'matched_target_source_id',
    'target_source_id',
]
