"""Dataset Loader

Loads GeoJSON feature collections for the reference layer and the target
layers, from local files (relative to the configured data directory) or from
http(s) URLs with retries.
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Union

import requests
from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.exceptions import DataFormatError, SynergyConnectionError
from ..models import Feature, FeatureCollection, GeometryType, LayerConfig, SpatialJoinConfig

logger = logging.getLogger(__name__)

_RETRYABLE_REQUEST_ERRORS = (requests.ConnectionError, requests.Timeout)


class LoadedDatasets(NamedTuple):
    """Reference collection plus one collection per target layer, in config order."""
    reference: FeatureCollection
    targets: List[FeatureCollection]


def _is_url(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


class DatasetLoader:
    """Loads and minimally validates GeoJSON feature collections.
    
    Only the envelope is checked: the document must be a JSON object with a
    ``features`` list of objects. Geometry is not validated here.
    """
    
    def __init__(self, data_dir: Optional[Union[str, Path]] = None,
                 config: Optional[SpatialJoinConfig] = None,
                 session: Optional[requests.Session] = None):
        """Initialize the dataset loader.
        
        Args:
            data_dir: Base directory for relative dataset paths
            config: Processing settings (request timeout, attempts, workers)
            session: requests session used for remote datasets
        """
        self.data_dir = Path(data_dir) if data_dir else Path(".")
        self.config = config or SpatialJoinConfig()
        self.session = session or requests.Session()
    
    def load_feature_collection(self, source: str) -> FeatureCollection:
        """Load one dataset.
        
        Args:
            source: File path (absolute or relative to data_dir) or http(s) URL
            
        Returns:
            FeatureCollection with features in source order
            
        Raises:
            DataFormatError: If the document is not JSON or lacks a ``features`` list
            SynergyConnectionError: If a remote dataset cannot be fetched
        """
        if _is_url(source):
            document = self._fetch_remote(source)
        else:
            document = self._read_local(source)
        
        collection = self.parse_feature_collection(document, source)
        logger.info(f"Loaded {len(collection)} features from {source}")
        return collection
    
    def parse_feature_collection(self, document: Any, source: str = "<memory>") -> FeatureCollection:
        """Build a FeatureCollection from a decoded GeoJSON document.
        
        Raises:
            DataFormatError: If the document lacks the minimal shape
        """
        if not isinstance(document, dict):
            raise DataFormatError(f"Invalid GeoJSON format in {source}: expected a JSON object")
        
        raw_features = document.get("features")
        if not isinstance(raw_features, list):
            raise DataFormatError(
                f"Invalid GeoJSON format in {source}: missing 'features' list",
                {"type": document.get("type")}
            )
        
        if "type" not in document:
            logger.debug(f"Dataset {source} has no 'type' member")
        
        features = []
        for index, raw_feature in enumerate(raw_features):
            if not isinstance(raw_feature, dict):
                raise DataFormatError(
                    f"Invalid feature at index {index} in {source}: expected an object"
                )
            try:
                features.append(Feature.from_geojson(raw_feature))
            except ValidationError as e:
                raise DataFormatError(
                    f"Invalid feature at index {index} in {source}: {e.errors()[0]['msg']}"
                ) from e
        
        return FeatureCollection(
            type=document.get("type", "FeatureCollection"),
            features=features,
            name=document.get("name")
        )
    
    def load_datasets(self, layer_config: LayerConfig) -> LoadedDatasets:
        """Load the reference dataset and every target dataset.
        
        Target datasets are fetched concurrently; their order follows the
        layer configuration. Any failure aborts the whole load.
        """
        reference = self.load_feature_collection(layer_config.reference.file)
        target_sources = [target.file for target in layer_config.target]
        
        if self.config.max_workers > 1 and len(target_sources) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                targets = list(executor.map(self.load_feature_collection, target_sources))
        else:
            targets = [self.load_feature_collection(source) for source in target_sources]
        
        for target_layer, collection in zip(layer_config.target, targets):
            if not self.validate_dataset(collection, target_layer.geometry_type):
                logger.warning(f"Target layer '{target_layer.name}' contains geometry types "
                               f"{collection.geometry_types()}, expected {target_layer.geometry_type.value}")
        
        return LoadedDatasets(reference=reference, targets=targets)
    
    @staticmethod
    def validate_dataset(collection: FeatureCollection,
                         expected_geometry_type: Union[GeometryType, str]) -> bool:
        """Check that every feature has the expected geometry type."""
        expected = GeometryType(expected_geometry_type).value
        return all(feature.geometry_type == expected for feature in collection.features)
    
    def _read_local(self, source: str) -> Dict[str, Any]:
        path = Path(source)
        if not path.is_absolute():
            path = self.data_dir / path
        
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise DataFormatError(f"Invalid JSON in dataset {path}: {str(e)}")
        except OSError as e:
            raise DataFormatError(f"Failed to load data from {path}: {str(e)}")
    
    def _fetch_remote(self, url: str) -> Any:
        fetch = retry(
            stop=stop_after_attempt(self.config.max_fetch_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(_RETRYABLE_REQUEST_ERRORS),
            reraise=True
        )(self._get)
        
        try:
            response = fetch(url)
        except _RETRYABLE_REQUEST_ERRORS as e:
            raise SynergyConnectionError(f"Failed to load data from {url}: {str(e)}")
        
        if not response.ok:
            raise SynergyConnectionError(
                f"Failed to load data from {url}: {response.status_code} {response.reason}"
            )
        
        try:
            return response.json()
        except ValueError as e:
            raise DataFormatError(f"Invalid JSON in dataset {url}: {str(e)}")
    
    def _get(self, url: str) -> requests.Response:
        logger.debug(f"Fetching dataset {url}")
        return self.session.get(url, timeout=self.config.request_timeout_seconds)
