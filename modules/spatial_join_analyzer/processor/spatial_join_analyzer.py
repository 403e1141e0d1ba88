"""SpatialJoinAnalyzer Implementation

Runs the complete analysis pipeline behind the ModuleProcessor interface:
load the reference and target datasets, run the spatial join, build the map
layer sources and export the reports.
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from src.config.config_loader import ConfigLoader
from src.exceptions import SynergyBaseException, SynergyProcessingError
from src.interfaces.module_processor import ModuleProcessor, ModuleStatus, ProcessingResult
from src.utils import log_performance
from ..data_loader import DatasetLoader, LoadedDatasets
from ..export import ExportOptions, ReportExporter
from ..map_layers import MapLayerSet, build_map_layers
from ..models import LayerConfig, SpatialJoinConfig
from ..spatial_join import SpatialAnalysisResult, SpatialJoinEngine

logger = logging.getLogger(__name__)

MODULE_NAME = "spatial_join_analyzer"
MAP_LAYERS_PREFIX = "map-layers"
ANALYSIS_RESULT_PREFIX = "spatial-analysis"


class SpatialJoinAnalyzer(ModuleProcessor):
    """Spatial join analyzer implementing the ModuleProcessor interface.
    
    Matches capital project boundaries (reference layer) against the
    configured infrastructure asset layers and reports which assets fall
    inside which projects.
    """
    
    def __init__(self, config_loader: ConfigLoader, environment: str = "development",
                 export_options: Optional[ExportOptions] = None):
        """Initialize the analyzer with shared configuration.
        
        Args:
            config_loader: ConfigLoader instance providing access to framework configuration
            environment: Environment whose configuration is used
            export_options: Report column selection and format
        """
        self.config_loader = config_loader
        self.environment = environment
        self.export_options = export_options or ExportOptions()
        self._last_run: Optional[datetime] = None
        self._configuration_valid: Optional[bool] = None
        self._layer_config: Optional[LayerConfig] = None
        self._join_config: Optional[SpatialJoinConfig] = None
        
        self.last_result: Optional[SpatialAnalysisResult] = None
        self.last_map_layers: Optional[MapLayerSet] = None
        
        logger.info(f"SpatialJoinAnalyzer initialized for {environment} environment")
    
    @property
    def layer_config(self) -> LayerConfig:
        if self._layer_config is None:
            self._layer_config = LayerConfig.from_dict(self.config_loader.load_layer_config())
        return self._layer_config
    
    @property
    def join_config(self) -> SpatialJoinConfig:
        if self._join_config is None:
            self._join_config = SpatialJoinConfig.model_validate(
                self.config_loader.get_processing_config(self.environment)
            )
        return self._join_config
    
    def validate_configuration(self) -> bool:
        """Validate the environment, processing and layer configuration.
        
        Returns:
            bool: True if configuration is valid and complete, False otherwise
        """
        if self._configuration_valid is not None:
            return self._configuration_valid
        
        try:
            self.config_loader.load_environment_config(self.environment)
            join_config = self.join_config
            layer_config = self.layer_config
        except (SynergyBaseException, ValidationError) as e:
            logger.error(f"Configuration validation failed: {e}")
            self._configuration_valid = False
            return False
        
        if not layer_config.target:
            logger.error("No target layers configured")
            self._configuration_valid = False
            return False
        
        logger.debug(f"Configuration valid: {len(layer_config.target)} target layer(s), "
                     f"{join_config.containment_mode.value} containment")
        self._configuration_valid = True
        return True
    
    def _data_dir(self) -> Path:
        return Path(self.config_loader.get_config("data_dir", self.environment, default="data"))
    
    def _output_dir(self) -> Path:
        return Path(self.config_loader.get_config("output_dir", self.environment, default="output"))
    
    def load_datasets(self) -> LoadedDatasets:
        loader = DatasetLoader(data_dir=self._data_dir(), config=self.join_config)
        return loader.load_datasets(self.layer_config)
    
    def run_analysis(self, datasets: LoadedDatasets) -> SpatialAnalysisResult:
        """Run the spatial join over loaded datasets."""
        engine = SpatialJoinEngine(config=self.join_config)
        reference_features = datasets.reference.features
        target_features = [collection.features for collection in datasets.targets]
        
        if self.join_config.max_workers > 1 and len(reference_features) > self.join_config.batch_size:
            return engine.join_batched(reference_features, target_features, self.layer_config.target)
        return engine.join(reference_features, target_features, self.layer_config.target)
    
    @log_performance
    def process(self, dry_run: bool = False) -> ProcessingResult:
        """Execute the analysis pipeline.
        
        Args:
            dry_run: If True, run the analysis but write no output files
            
        Returns:
            ProcessingResult: Standardized result object with success status, metrics, and errors
        """
        start_time = datetime.now()
        logger.info(f"Starting spatial join analysis (dry_run={dry_run})")
        
        if not self.validate_configuration():
            return ProcessingResult(
                success=False,
                records_processed=0,
                errors=["Configuration validation failed"],
                metadata={"dry_run": dry_run, "environment": self.environment},
                execution_time=0.0
            )
        
        try:
            datasets = self.load_datasets()
            result = self.run_analysis(datasets)
            map_layers = build_map_layers(
                result, datasets.reference, datasets.targets,
                id_field=self.layer_config.reference.id_field
            )
            
            output_files: List[str] = []
            if not dry_run:
                output_files = [str(path) for path in self.export_results(result, map_layers)]
        except SynergyBaseException as e:
            execution_time = (datetime.now() - start_time).total_seconds()
            logger.error(f"Processing failed: {e}")
            return ProcessingResult(
                success=False,
                records_processed=0,
                errors=[str(e)],
                metadata={"dry_run": dry_run, "environment": self.environment,
                          "error_occurred_at": datetime.now().isoformat()},
                execution_time=execution_time
            )
        
        self.last_result = result
        self.last_map_layers = map_layers
        self._last_run = datetime.now()
        execution_time = (datetime.now() - start_time).total_seconds()
        
        errors = []
        if result.metrics.skipped_evaluations:
            errors.append(f"{result.metrics.skipped_evaluations} containment tests skipped for invalid geometry")
        
        return ProcessingResult(
            success=True,
            records_processed=result.metrics.reference_count,
            errors=errors,
            metadata={
                "dry_run": dry_run,
                "environment": self.environment,
                "matched_references": len(result.matches),
                "total_matches": result.total_matches,
                "summary": result.serialized_summary(),
                "join_metrics": result.metrics.get_performance_summary(),
                "output_files": output_files,
            },
            execution_time=execution_time
        )
    
    def export_results(self, result: SpatialAnalysisResult, map_layers: MapLayerSet,
                       export_date: Optional[date] = None) -> List[Path]:
        """Write the reports, the map layer sources and the analysis result."""
        export_date = export_date or date.today()
        output_dir = self._output_dir()
        exporter = ReportExporter(self.layer_config, output_dir)
        
        written = [
            exporter.export_analysis_results(result.matches, self.export_options, export_date),
            exporter.export_contact_list(result.matches, self.export_options.format, export_date),
            exporter.export_infrastructure_summary(result.matches, self.export_options.format, export_date),
            self._write_json(output_dir / f"{MAP_LAYERS_PREFIX}-{export_date.isoformat()}.json",
                             map_layers.sources()),
            self._write_json(output_dir / f"{ANALYSIS_RESULT_PREFIX}-{export_date.isoformat()}.json",
                             result.to_export_dict()),
        ]
        return written
    
    @staticmethod
    def _write_json(path: Path, payload: Dict[str, Any]) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, default=str)
        except OSError as e:
            raise SynergyProcessingError(f"Export failed: {str(e)}", {"file": str(path)})
        logger.info(f"Wrote {path}")
        return path
    
    def get_status(self) -> ModuleStatus:
        """Get current module processing status."""
        is_configured = self.validate_configuration()
        health_check_result = self._health_check()
        
        return ModuleStatus(
            module_name=MODULE_NAME,
            is_configured=is_configured,
            last_run=self._last_run,
            status="ready" if is_configured and health_check_result else "error",
            health_check=health_check_result
        )
    
    def _health_check(self) -> bool:
        """Check that the configuration is valid and local datasets exist."""
        if not self.validate_configuration():
            logger.debug("Health check failed: configuration invalid")
            return False
        
        data_dir = self._data_dir()
        sources = [self.layer_config.reference.file] + [target.file for target in self.layer_config.target]
        for source in sources:
            if source.startswith(("http://", "https://")):
                continue
            path = Path(source) if Path(source).is_absolute() else data_dir / source
            if not path.exists():
                logger.debug(f"Health check failed: dataset not found: {path}")
                return False
        
        logger.debug("Health check passed")
        return True
