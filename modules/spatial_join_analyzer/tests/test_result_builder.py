"""Unit tests for AnalysisResultBuilder and the spatial join result models."""

import pytest
from pydantic import ValidationError

from modules.spatial_join_analyzer.models import Feature
from modules.spatial_join_analyzer.spatial_join import (
    AnalysisResultBuilder,
    JoinMetrics,
    SpatialMatch,
    TargetMatch,
)
from src.exceptions import SynergyProcessingError


def charger(charger_type, status):
    return Feature(properties={"type": charger_type, "status": status})


class TestAnalysisResultBuilder:
    """Test result assembly one reference at a time."""
    
    @pytest.fixture
    def builder(self):
        return AnalysisResultBuilder(target_dataset_count=2)
    
    def test_reference_with_matches(self, builder):
        reference = Feature(properties={"OBJECTID": 1})
        builder.start_reference(reference)
        first = builder.add_target_match([charger("EV", "Active"), charger("EV", "Active")], ["type", "status"])
        second = builder.add_target_match([], ["type"])
        
        match = builder.finish_reference()
        
        assert match is not None
        assert match.reference_feature is reference
        assert match.total_match_count == 2
        assert first.grouped_matches == {("EV", "Active"): 2}
        assert second == TargetMatch.empty()
        assert len(match.target_matches) == 2
    
    def test_reference_without_matches_is_dropped(self, builder):
        builder.start_reference(Feature())
        builder.add_target_match([], ["type"])
        builder.add_target_match([], ["type"])
        
        assert builder.finish_reference() is None
        
        result = builder.build()
        assert result.matches == []
        assert result.total_matches == 0
        assert result.metrics.reference_count == 1
    
    def test_summary_spans_references(self, builder):
        for status in ["Active", "Planned"]:
            builder.start_reference(Feature())
            builder.add_target_match([charger("EV", status)], ["type", "status"])
            builder.add_target_match([charger("EV", "Active")], ["type", "status"])
            builder.finish_reference()
        
        result = builder.build(processing_duration=1.5)
        
        assert result.total_matches == 4
        assert result.summary == {("EV", "Active"): 3, ("EV", "Planned"): 1}
        assert result.serialized_summary() == {"EV - Active": 3, "EV - Planned": 1}
        assert result.metrics.processing_duration == 1.5
    
    def test_start_requires_finished_reference(self, builder):
        builder.start_reference(Feature())
        
        with pytest.raises(SynergyProcessingError, match="not finished"):
            builder.start_reference(Feature())
    
    def test_add_requires_started_reference(self, builder):
        with pytest.raises(SynergyProcessingError):
            builder.add_target_match([], ["type"])
    
    def test_finish_requires_one_result_per_dataset(self, builder):
        builder.start_reference(Feature())
        builder.add_target_match([], ["type"])
        
        with pytest.raises(SynergyProcessingError, match="expected 2"):
            builder.finish_reference()
    
    def test_build_with_open_reference(self, builder):
        builder.start_reference(Feature())
        
        with pytest.raises(SynergyProcessingError):
            builder.build()
    
    def test_merge_preserves_order(self):
        builders = []
        references = [Feature(properties={"OBJECTID": i}) for i in range(3)]
        for reference in references:
            partial = AnalysisResultBuilder(target_dataset_count=1)
            partial.start_reference(reference)
            partial.add_target_match([charger("EV", "Active")], ["type"])
            partial.finish_reference()
            builders.append(partial)
        
        merged = AnalysisResultBuilder.merge(builders, target_dataset_count=1)
        result = merged.build()
        
        assert [m.reference_feature for m in result.matches] == references
        assert result.total_matches == 3
        assert result.summary == {("EV",): 3}
        assert result.metrics.reference_count == 3
    
    def test_merge_rejects_mismatched_builders(self):
        with pytest.raises(SynergyProcessingError):
            AnalysisResultBuilder.merge([AnalysisResultBuilder(2)], target_dataset_count=1)


class TestResultModels:
    """Test count invariants enforced by the result models."""
    
    def test_target_match_count_must_equal_features(self):
        with pytest.raises(ValidationError):
            TargetMatch(target_features=[Feature()], match_count=2, grouped_matches={("A",): 2})
    
    def test_grouped_counts_must_add_up(self):
        with pytest.raises(ValidationError):
            TargetMatch(target_features=[Feature()], match_count=1, grouped_matches={("A",): 2})
    
    def test_spatial_match_total(self):
        target_match = TargetMatch(target_features=[Feature()], match_count=1, grouped_matches={(): 1})
        
        with pytest.raises(ValidationError):
            SpatialMatch(reference_feature=Feature(), target_matches=[target_match], total_match_count=3)
    
    def test_serialized_groups_empty_key(self):
        target_match = TargetMatch(target_features=[Feature()], match_count=1, grouped_matches={(): 1})
        
        assert target_match.serialized_groups() == {"": 1}


class TestJoinMetrics:
    """Test JoinMetrics calculations."""
    
    def test_rates(self):
        metrics = JoinMetrics(predicate_evaluations=200, skipped_evaluations=10, processing_duration=2.0)
        
        assert metrics.get_skip_rate() == 0.05
        assert metrics.get_evaluation_rate() == 100.0
    
    def test_rates_without_work(self):
        metrics = JoinMetrics()
        
        assert metrics.get_skip_rate() == 0.0
        assert metrics.get_evaluation_rate() == 0.0
    
    def test_merge(self):
        first = JoinMetrics(reference_count=2, target_feature_count=10, predicate_evaluations=20, skipped_evaluations=1)
        second = JoinMetrics(reference_count=3, target_feature_count=10, predicate_evaluations=30, invalid_references=1)
        
        merged = first.merge(second)
        
        assert merged.reference_count == 5
        assert merged.target_feature_count == 10
        assert merged.predicate_evaluations == 50
        assert merged.skipped_evaluations == 1
        assert merged.invalid_references == 1
