"""Spatial Join Result Models

Pydantic models for the output of a spatial join: per-dataset target matches,
per-reference spatial matches, the analysis-wide result and join metrics.

Group keys are ordered tuples of resolved field values. They are only turned
into ``" - "``-joined strings at the export boundary (see ``grouping``).
"""

from datetime import datetime
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, Field, model_validator

from ..models import Feature

GroupKey = Tuple[str, ...]
GROUP_KEY_SEPARATOR = " - "


def _serialize_counts(counts: Dict[GroupKey, int]) -> Dict[str, int]:
    serialized: Dict[str, int] = {}
    for key, count in counts.items():
        text = GROUP_KEY_SEPARATOR.join(key)
        serialized[text] = serialized.get(text, 0) + count
    return serialized


class JoinMetrics(BaseModel):
    """Counters describing one join run.
    
    ``skipped_evaluations`` counts containment tests that could not be
    evaluated and were treated as non-matches.
    """
    reference_count: int = Field(0, ge=0, description="Reference features processed")
    target_dataset_count: int = Field(0, ge=0, description="Configured target datasets")
    target_feature_count: int = Field(0, ge=0, description="Target features across all datasets")
    malformed_target_features: int = Field(0, ge=0, description="Target features whose geometry could not be converted")
    invalid_references: int = Field(0, ge=0, description="Reference features short-circuited for invalid geometry")
    predicate_evaluations: int = Field(0, ge=0, description="Containment tests attempted")
    skipped_evaluations: int = Field(0, ge=0, description="Containment tests that failed and were skipped")
    processing_duration: float = Field(0.0, ge=0, description="Join duration in seconds")
    
    def get_skip_rate(self) -> float:
        """Share of attempted containment tests that were skipped."""
        if self.predicate_evaluations == 0:
            return 0.0
        return self.skipped_evaluations / self.predicate_evaluations
    
    def get_evaluation_rate(self) -> float:
        """Containment tests per second."""
        if self.processing_duration == 0:
            return 0.0
        return self.predicate_evaluations / self.processing_duration
    
    def merge(self, other: "JoinMetrics") -> "JoinMetrics":
        """Combine metrics of two reference batches run over the same target datasets."""
        return JoinMetrics(
            reference_count=self.reference_count + other.reference_count,
            target_dataset_count=max(self.target_dataset_count, other.target_dataset_count),
            target_feature_count=max(self.target_feature_count, other.target_feature_count),
            malformed_target_features=max(self.malformed_target_features, other.malformed_target_features),
            invalid_references=self.invalid_references + other.invalid_references,
            predicate_evaluations=self.predicate_evaluations + other.predicate_evaluations,
            skipped_evaluations=self.skipped_evaluations + other.skipped_evaluations,
            processing_duration=self.processing_duration + other.processing_duration,
        )
    
    def get_performance_summary(self) -> Dict[str, Any]:
        return {
            "references": self.reference_count,
            "target_features": self.target_feature_count,
            "evaluations": self.predicate_evaluations,
            "skipped": self.skipped_evaluations,
            "skip_rate": round(self.get_skip_rate(), 4),
            "invalid_references": self.invalid_references,
            "duration_seconds": round(self.processing_duration, 3),
        }


class TargetMatch(BaseModel):
    """Target features of one dataset contained in one reference feature."""
    target_features: List[Feature] = Field(default_factory=list, description="Matched features in dataset order")
    match_count: int = Field(0, ge=0, description="Number of matched features")
    grouped_matches: Dict[GroupKey, int] = Field(default_factory=dict, description="Group key to count")
    
    @model_validator(mode='after')
    def validate_counts(self) -> "TargetMatch":
        """Counts must agree with the matched features and their groups."""
        if self.match_count != len(self.target_features):
            raise ValueError(
                f"match_count {self.match_count} does not equal {len(self.target_features)} target features"
            )
        if sum(self.grouped_matches.values()) != self.match_count:
            raise ValueError("grouped_matches counts do not add up to match_count")
        return self
    
    @classmethod
    def empty(cls) -> "TargetMatch":
        """Placeholder for a dataset with no contained features."""
        return cls(target_features=[], match_count=0, grouped_matches={})
    
    def serialized_groups(self) -> Dict[str, int]:
        """Group counts keyed by ``" - "``-joined strings."""
        return _serialize_counts(self.grouped_matches)


class SpatialMatch(BaseModel):
    """A reference feature with its matches, one TargetMatch per target dataset."""
    reference_feature: Feature = Field(..., description="The reference (boundary) feature")
    target_matches: List[TargetMatch] = Field(..., description="Matches per target dataset, in config order")
    total_match_count: int = Field(ge=0, description="Sum of match_count over target_matches")
    
    @model_validator(mode='after')
    def validate_total(self) -> "SpatialMatch":
        expected = sum(target_match.match_count for target_match in self.target_matches)
        if self.total_match_count != expected:
            raise ValueError(
                f"total_match_count {self.total_match_count} does not equal dataset sum {expected}"
            )
        return self
    
    def get_reference_property(self, name: str, default: Any = None) -> Any:
        return self.reference_feature.get_property(name, default)


class SpatialAnalysisResult(BaseModel):
    """Complete result of one spatial join run."""
    matches: List[SpatialMatch] = Field(default_factory=list, description="References with at least one match")
    total_matches: int = Field(0, ge=0, description="Matched target features across all references")
    summary: Dict[GroupKey, int] = Field(default_factory=dict, description="Analysis-wide group key counts")
    metrics: JoinMetrics = Field(default_factory=JoinMetrics, description="Join run metrics")
    analysis_timestamp: datetime = Field(default_factory=datetime.now, description="When the join completed")
    
    def serialized_summary(self) -> Dict[str, int]:
        """Summary keyed by ``" - "``-joined group strings."""
        return _serialize_counts(self.summary)
    
    def get_processing_summary(self) -> str:
        """Generate human-readable processing summary."""
        return (f"Matched {self.total_matches} target features in {len(self.matches)} of "
                f"{self.metrics.reference_count} reference features "
                f"({self.metrics.skipped_evaluations} skipped evaluations, "
                f"{self.metrics.processing_duration:.2f}s)")
    
    def to_export_dict(self) -> Dict[str, Any]:
        """JSON-ready representation with string group keys."""
        return {
            "total_matches": self.total_matches,
            "summary": self.serialized_summary(),
            "analysis_timestamp": self.analysis_timestamp.isoformat(),
            "metrics": self.metrics.get_performance_summary(),
            "matches": [
                {
                    "reference_feature": match.reference_feature.to_geojson(),
                    "total_match_count": match.total_match_count,
                    "target_matches": [
                        {
                            "match_count": target_match.match_count,
                            "grouped_matches": target_match.serialized_groups(),
                        }
                        for target_match in match.target_matches
                    ],
                }
                for match in self.matches
            ],
        }
