"""Map Layer Builder

Turns a SpatialAnalysisResult into the GeoJSON sources the map view renders:
the reference layer tagged with per-feature match counts (styled as zero vs
non-zero), and one highlighted subset of matched features per target layer.

Every analysis run produces a complete new layer set; sources are replaced,
never patched.
"""

import logging
from typing import Any, Dict, List, Sequence

from pydantic import BaseModel, Field

from ..models import Feature, FeatureCollection
from ..spatial_join import SpatialAnalysisResult

logger = logging.getLogger(__name__)

MATCH_COUNT_PROPERTY = "matchCount"
REFERENCE_SOURCE_ID = "reference-data"


def target_source_id(index: int) -> str:
    return f"target-data-{index}"


def matched_target_source_id(index: int) -> str:
    return f"matched-target-data-{index}"


class MapLayerSet(BaseModel):
    """GeoJSON sources for one analysis run, keyed by map source id."""
    reference: Dict[str, Any] = Field(..., description="Reference FeatureCollection with match counts")
    targets: List[Dict[str, Any]] = Field(default_factory=list, description="Full target FeatureCollections")
    matched_targets: List[Dict[str, Any]] = Field(default_factory=list, description="Matched subset per target index")
    
    def sources(self) -> Dict[str, Dict[str, Any]]:
        """All sources keyed by their map source id."""
        sources = {REFERENCE_SOURCE_ID: self.reference}
        for index, collection in enumerate(self.targets):
            sources[target_source_id(index)] = collection
        for index, collection in enumerate(self.matched_targets):
            sources[matched_target_source_id(index)] = collection
        return sources
    
    def matched_reference_count(self) -> int:
        return sum(
            1 for feature in self.reference["features"]
            if feature["properties"].get(MATCH_COUNT_PROPERTY, 0) > 0
        )


def _feature_collection(features: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    return {"type": "FeatureCollection", "features": list(features)}


def build_map_layers(result: SpatialAnalysisResult,
                     reference_collection: FeatureCollection,
                     target_collections: Sequence[FeatureCollection],
                     id_field: str = "OBJECTID") -> MapLayerSet:
    """Build the map sources for an analysis result.
    
    Reference features are matched to SpatialMatch records by ``id_field``;
    features without that property are matched by identity instead.
    
    Args:
        result: Output of the spatial join
        reference_collection: All reference features, matched or not
        target_collections: All target features, one collection per target index
        id_field: Property identifying a reference feature
        
    Returns:
        MapLayerSet with every source the map view needs
    """
    counts_by_id: Dict[Any, int] = {}
    counts_by_identity: Dict[int, int] = {}
    for match in result.matches:
        reference_id = match.reference_feature.get_property(id_field)
        if reference_id is not None:
            counts_by_id[reference_id] = match.total_match_count
        else:
            counts_by_identity[id(match.reference_feature)] = match.total_match_count
    
    reference_features = []
    for feature in reference_collection.features:
        reference_id = feature.get_property(id_field)
        if reference_id is not None:
            match_count = counts_by_id.get(reference_id, 0)
        else:
            match_count = counts_by_identity.get(id(feature), 0)
        reference_features.append(feature.to_geojson({MATCH_COUNT_PROPERTY: match_count}))
    
    matched_targets = []
    for index in range(len(target_collections)):
        matched: List[Feature] = []
        for match in result.matches:
            if index < len(match.target_matches):
                matched.extend(match.target_matches[index].target_features)
        matched_targets.append(_feature_collection([feature.to_geojson() for feature in matched]))
    
    layer_set = MapLayerSet(
        reference=_feature_collection(reference_features),
        targets=[collection.to_geojson() for collection in target_collections],
        matched_targets=matched_targets
    )
    logger.debug(f"Built map layers: {layer_set.matched_reference_count()} highlighted references, "
                 f"{[len(c['features']) for c in matched_targets]} highlighted targets")
    return layer_set
