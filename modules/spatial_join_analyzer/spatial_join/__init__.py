"""Spatial Join Engine for the Spatial Join Analyzer

Containment join of reference polygons against target datasets, grouping of
matched targets by categorical fields, and assembly of the analysis result.
"""

from .spatial_join_models import (
    GroupKey,
    GROUP_KEY_SEPARATOR,
    JoinMetrics,
    TargetMatch,
    SpatialMatch,
    SpatialAnalysisResult,
)
from .grouping import (
    GroupCounter,
    build_group_key,
    serialize_group_key,
    parse_group_key,
    aggregate_matches,
)
from .result_builder import AnalysisResultBuilder
from .join_engine import SpatialJoinEngine, PreparedTarget

__all__ = [
    # Result models
    'GroupKey',
    'GROUP_KEY_SEPARATOR',
    'JoinMetrics',
    'TargetMatch',
    'SpatialMatch',
    'SpatialAnalysisResult',
    # Grouping
    'GroupCounter',
    'build_group_key',
    'serialize_group_key',
    'parse_group_key',
    'aggregate_matches',
    # Assembly and engine
    'AnalysisResultBuilder',
    'SpatialJoinEngine',
    'PreparedTarget',
]
