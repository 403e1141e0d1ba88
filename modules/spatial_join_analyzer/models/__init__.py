"""Data models for the spatial join analyzer: features and configuration."""

from .feature import (
    UNKNOWN_VALUE,
    POLYGONAL_GEOMETRY_TYPES,
    GeometryType,
    Feature,
    FeatureCollection,
    format_property_value,
)
from .config_models import (
    ContainmentMode,
    SpatialJoinConfig,
    TargetDatasetConfig,
    TargetLayerConfig,
    ReferenceDisplayFields,
    ReferenceLayerConfig,
    LayerConfig,
)

__all__ = [
    'UNKNOWN_VALUE',
    'POLYGONAL_GEOMETRY_TYPES',
    'GeometryType',
    'Feature',
    'FeatureCollection',
    'format_property_value',
    'ContainmentMode',
    'SpatialJoinConfig',
    'TargetDatasetConfig',
    'TargetLayerConfig',
    'ReferenceDisplayFields',
    'ReferenceLayerConfig',
    'LayerConfig',
]
