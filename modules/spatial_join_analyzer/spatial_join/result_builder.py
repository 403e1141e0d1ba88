"""Result assembly for the spatial join.

AnalysisResultBuilder collects the per-dataset matches of one reference at a
time, decides whether the reference becomes a SpatialMatch, and owns the
analysis-wide summary counter and match total.
"""

import logging
from typing import List, Optional, Sequence

from src.exceptions import SynergyProcessingError
from ..models import Feature
from .grouping import GroupCounter, aggregate_matches
from .spatial_join_models import JoinMetrics, SpatialAnalysisResult, SpatialMatch, TargetMatch

logger = logging.getLogger(__name__)


class AnalysisResultBuilder:
    """Accumulates SpatialMatch records and analysis-wide counters."""
    
    def __init__(self, target_dataset_count: int):
        self.target_dataset_count = target_dataset_count
        self.matches: List[SpatialMatch] = []
        self.total_matches = 0
        self.summary = GroupCounter()
        self.metrics = JoinMetrics(target_dataset_count=target_dataset_count)
        self._current_reference: Optional[Feature] = None
        self._current_target_matches: List[TargetMatch] = []
    
    def start_reference(self, reference_feature: Feature) -> None:
        if self._current_reference is not None:
            raise SynergyProcessingError("Previous reference feature was not finished")
        self._current_reference = reference_feature
        self._current_target_matches = []
        self.metrics.reference_count += 1
    
    def record_invalid_reference(self) -> None:
        self.metrics.invalid_references += 1
    
    def add_target_match(self, matched_features: Sequence[Feature],
                         group_by_fields: Sequence[str]) -> TargetMatch:
        """Record the matches of the next target dataset for the current reference.
        
        Matched features are counted into a per-dataset GroupCounter and into
        the analysis-wide summary in the same pass.
        """
        if self._current_reference is None:
            raise SynergyProcessingError("add_target_match called before start_reference")
        
        if not matched_features:
            target_match = TargetMatch.empty()
        else:
            grouped = GroupCounter()
            match_count = aggregate_matches(matched_features, group_by_fields, grouped, self.summary)
            target_match = TargetMatch(
                target_features=list(matched_features),
                match_count=match_count,
                grouped_matches=grouped.as_dict()
            )
            self.total_matches += match_count
        
        self._current_target_matches.append(target_match)
        return target_match
    
    def finish_reference(self) -> Optional[SpatialMatch]:
        """Close the current reference.
        
        Returns:
            The SpatialMatch when any dataset matched, otherwise None
        """
        if self._current_reference is None:
            raise SynergyProcessingError("finish_reference called before start_reference")
        if len(self._current_target_matches) != self.target_dataset_count:
            raise SynergyProcessingError(
                f"Reference finished with {len(self._current_target_matches)} dataset results, "
                f"expected {self.target_dataset_count}"
            )
        
        reference_feature = self._current_reference
        target_matches = self._current_target_matches
        self._current_reference = None
        self._current_target_matches = []
        
        total_match_count = sum(target_match.match_count for target_match in target_matches)
        if total_match_count == 0:
            return None
        
        spatial_match = SpatialMatch(
            reference_feature=reference_feature,
            target_matches=target_matches,
            total_match_count=total_match_count
        )
        self.matches.append(spatial_match)
        return spatial_match
    
    def build(self, processing_duration: float = 0.0) -> SpatialAnalysisResult:
        if self._current_reference is not None:
            raise SynergyProcessingError("Cannot build result while a reference is still open")
        self.metrics.processing_duration = processing_duration
        return SpatialAnalysisResult(
            matches=list(self.matches),
            total_matches=self.total_matches,
            summary=self.summary.as_dict(),
            metrics=self.metrics.model_copy()
        )
    
    @classmethod
    def merge(cls, builders: Sequence["AnalysisResultBuilder"],
              target_dataset_count: int) -> "AnalysisResultBuilder":
        """Concatenate builders of consecutive reference batches, in order."""
        merged = cls(target_dataset_count)
        for builder in builders:
            if builder.target_dataset_count != target_dataset_count:
                raise SynergyProcessingError("Cannot merge results over different target datasets")
            merged.matches.extend(builder.matches)
            merged.total_matches += builder.total_matches
            merged.summary.update(builder.summary.as_dict())
            merged.metrics = merged.metrics.merge(builder.metrics)
        logger.debug(f"Merged {len(builders)} partial results into {len(merged.matches)} matches")
        return merged
