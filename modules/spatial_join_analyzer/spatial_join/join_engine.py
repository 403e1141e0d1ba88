"""Core Spatial Join Engine

Finds, for every reference polygon, the target features of each target dataset
contained within it, and aggregates the matches into a SpatialAnalysisResult.

The join is a full cross product (references x target features) evaluated in
input order with no spatial index. Each call builds fresh containers and
touches no shared state, so independent calls may run concurrently.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, NamedTuple, Optional, Sequence

from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry

from src.exceptions import GeometryPredicateError, SynergyConfigurationError
from ..geometry import GeometryPredicateEvaluator
from ..models import Feature, SpatialJoinConfig, TargetDatasetConfig
from .result_builder import AnalysisResultBuilder
from .spatial_join_models import SpatialAnalysisResult

logger = logging.getLogger(__name__)


class PreparedTarget(NamedTuple):
    """A target feature with its converted geometry, or the conversion error."""
    feature: Feature
    shape: Optional[BaseGeometry]
    error: Optional[GeometryPredicateError]


class SpatialJoinEngine:
    """Spatial join between reference polygons and target datasets.
    
    Target ``i`` is grouped using ``target_configs[i]``; the two sequences
    must have the same length. Geometry failures are isolated to a single
    containment test, logged and counted in the result metrics.
    """
    
    def __init__(self, evaluator: Optional[GeometryPredicateEvaluator] = None,
                 config: Optional[SpatialJoinConfig] = None):
        """Initialize the join engine.
        
        Args:
            evaluator: Predicate evaluator; built from ``config`` when omitted
            config: Processing settings (containment mode, batching, logging)
        """
        self.config = config or SpatialJoinConfig()
        self.evaluator = evaluator or GeometryPredicateEvaluator(self.config.containment_mode)
    
    def join(self, reference_features: Sequence[Feature],
             target_datasets: Sequence[Optional[Sequence[Feature]]],
             target_configs: Sequence[TargetDatasetConfig]) -> SpatialAnalysisResult:
        """Run the spatial join.
        
        Args:
            reference_features: Reference polygons, processed in input order
            target_datasets: One feature list per target dataset (None is treated as empty)
            target_configs: Grouping configuration aligned with ``target_datasets``
            
        Returns:
            SpatialAnalysisResult with matches, totals and the grouped summary
            
        Raises:
            SynergyConfigurationError: If configs and datasets are not aligned 1:1
        """
        start_time = time.perf_counter()
        self._validate_alignment(target_datasets, target_configs)
        
        logger.info(f"Starting spatial join of {len(reference_features)} reference features "
                    f"against {len(target_datasets)} target dataset(s)")
        
        prepared_datasets = self._prepare_target_datasets(target_datasets)
        builder = self._new_builder(prepared_datasets)
        
        for reference_feature in reference_features:
            self._join_reference(reference_feature, prepared_datasets, target_configs, builder)
        
        result = builder.build(processing_duration=time.perf_counter() - start_time)
        self._log_result(result)
        return result
    
    def join_batched(self, reference_features: Sequence[Feature],
                     target_datasets: Sequence[Optional[Sequence[Feature]]],
                     target_configs: Sequence[TargetDatasetConfig],
                     batch_size: Optional[int] = None,
                     max_workers: Optional[int] = None) -> SpatialAnalysisResult:
        """Run the join over batches of reference features, optionally on worker threads.
        
        Batches are merged in input order, so the result is structurally
        identical to ``join`` over the same inputs.
        
        Args:
            batch_size: Reference features per batch (defaults to config.batch_size)
            max_workers: Worker threads (defaults to config.max_workers)
        """
        start_time = time.perf_counter()
        self._validate_alignment(target_datasets, target_configs)
        batch_size = batch_size or self.config.batch_size
        max_workers = max_workers or self.config.max_workers
        
        prepared_datasets = self._prepare_target_datasets(target_datasets)
        batches = list(self._batch_features(reference_features, batch_size))
        
        logger.info(f"Starting batched spatial join: {len(reference_features)} reference features "
                    f"in {len(batches)} batch(es) of up to {batch_size}, {max_workers} worker(s)")
        
        def run_batch(batch: List[Feature]) -> AnalysisResultBuilder:
            batch_builder = self._new_builder(prepared_datasets)
            for reference_feature in batch:
                self._join_reference(reference_feature, prepared_datasets, target_configs, batch_builder)
            return batch_builder
        
        if max_workers == 1 or len(batches) <= 1:
            batch_builders = [run_batch(batch) for batch in batches]
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                batch_builders = list(executor.map(run_batch, batches))
        
        builder = AnalysisResultBuilder.merge(batch_builders, len(target_configs))
        builder.metrics.target_feature_count = sum(len(dataset) for dataset in prepared_datasets)
        builder.metrics.malformed_target_features = self._count_malformed(prepared_datasets)
        
        result = builder.build(processing_duration=time.perf_counter() - start_time)
        self._log_result(result)
        return result
    
    def _validate_alignment(self, target_datasets: Sequence, target_configs: Sequence) -> None:
        if len(target_datasets) != len(target_configs):
            raise SynergyConfigurationError(
                "Target dataset configs must align 1:1 with target datasets",
                {"target_datasets": len(target_datasets), "target_configs": len(target_configs)}
            )
    
    def _new_builder(self, prepared_datasets: List[List[PreparedTarget]]) -> AnalysisResultBuilder:
        builder = AnalysisResultBuilder(len(prepared_datasets))
        builder.metrics.target_feature_count = sum(len(dataset) for dataset in prepared_datasets)
        builder.metrics.malformed_target_features = self._count_malformed(prepared_datasets)
        return builder
    
    @staticmethod
    def _count_malformed(prepared_datasets: List[List[PreparedTarget]]) -> int:
        return sum(1 for dataset in prepared_datasets for target in dataset if target.error is not None)
    
    def _prepare_target_datasets(self, target_datasets: Sequence[Optional[Sequence[Feature]]]
                                 ) -> List[List[PreparedTarget]]:
        """Convert every target geometry once, keeping failures next to their feature."""
        prepared_datasets = []
        for dataset_index, dataset in enumerate(target_datasets):
            prepared = []
            for feature_index, feature in enumerate(dataset or []):
                try:
                    prepared.append(PreparedTarget(feature, self.evaluator.to_shape(feature.geometry), None))
                except GeometryPredicateError as e:
                    prepared.append(PreparedTarget(feature, None, e))
                    message = f"Target feature {feature_index} of dataset {dataset_index} cannot be evaluated: {e}"
                    if self.config.log_skipped_features:
                        logger.warning(message)
                    else:
                        logger.debug(message)
            prepared_datasets.append(prepared)
        return prepared_datasets
    
    def _join_reference(self, reference_feature: Feature,
                        prepared_datasets: List[List[PreparedTarget]],
                        target_configs: Sequence[TargetDatasetConfig],
                        builder: AnalysisResultBuilder) -> None:
        builder.start_reference(reference_feature)
        
        try:
            prepared_reference = self.evaluator.prepare_reference(reference_feature.geometry)
        except GeometryPredicateError as e:
            # Nothing can be contained in it; it still gets its zero-match placeholders
            builder.record_invalid_reference()
            prepared_reference = None
            logger.warning(f"Skipping reference feature {self._describe(reference_feature)}: {e}")
        
        for prepared_targets, target_config in zip(prepared_datasets, target_configs):
            if prepared_reference is None:
                matched = []
            else:
                matched = self._collect_matches(prepared_reference, prepared_targets, builder)
            builder.add_target_match(matched, target_config.group_by_fields)
        
        spatial_match = builder.finish_reference()
        if spatial_match is not None:
            logger.debug(f"Reference {self._describe(reference_feature)}: "
                         f"{spatial_match.total_match_count} matches")
    
    def _collect_matches(self, prepared_reference: PreparedGeometry,
                         prepared_targets: List[PreparedTarget],
                         builder: AnalysisResultBuilder) -> List[Feature]:
        matched = []
        for target in prepared_targets:
            builder.metrics.predicate_evaluations += 1
            if target.error is not None:
                builder.metrics.skipped_evaluations += 1
                continue
            try:
                if self.evaluator.contains(prepared_reference, target.shape):
                    matched.append(target.feature)
            except GeometryPredicateError as e:
                builder.metrics.skipped_evaluations += 1
                logger.debug(f"Containment test skipped: {e}")
        return matched
    
    @staticmethod
    def _batch_features(features: Sequence[Feature], batch_size: int) -> Iterator[List[Feature]]:
        for i in range(0, len(features), batch_size):
            yield list(features[i:i + batch_size])
    
    @staticmethod
    def _describe(feature: Feature) -> str:
        if feature.id is not None:
            return str(feature.id)
        return str(feature.get_property("OBJECTID", "<no id>"))
    
    @staticmethod
    def _log_result(result: SpatialAnalysisResult) -> None:
        logger.info(f"Spatial join completed: {result.get_processing_summary()}")
        if result.metrics.skipped_evaluations:
            logger.warning(f"{result.metrics.skipped_evaluations} containment tests could not be "
                           f"evaluated and were treated as non-matches")
