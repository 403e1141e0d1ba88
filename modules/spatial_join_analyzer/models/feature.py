"""Feature Data Models

Pydantic models for GeoJSON-shaped features and feature collections used as
reference (project boundary) and target (asset) records in the spatial join.

Geometry is kept as the raw GeoJSON mapping. It is converted to a shapely
geometry only when a containment test runs, so one malformed feature never
prevents a dataset from loading.
"""

import json
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN_VALUE = "Unknown"

PropertyValue = Optional[Union[bool, int, float, str]]


class GeometryType(str, Enum):
    """GeoJSON geometry tags understood by the predicate evaluator."""
    POINT = "Point"
    MULTI_POINT = "MultiPoint"
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"


POLYGONAL_GEOMETRY_TYPES = frozenset([GeometryType.POLYGON.value, GeometryType.MULTI_POLYGON.value])


def format_property_value(value: PropertyValue) -> str:
    """Render a scalar property as group key text.
    
    Booleans become ``true``/``false`` and integral floats drop their ``.0``.
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return UNKNOWN_VALUE
        if value.is_integer():
            return str(int(value))
    return str(value)


class Feature(BaseModel):
    """Immutable geometry/properties pair.
    
    Properties form a closed scalar mapping (string, number, boolean or null).
    Nested values found in source documents are stored as their JSON text.
    
    Attributes:
        geometry: GeoJSON geometry mapping, or None when the source had none
        properties: Field name to scalar value mapping
        id: Optional GeoJSON feature id
    """
    model_config = ConfigDict(frozen=True, extra="ignore")
    
    geometry: Optional[Dict[str, Any]] = Field(None, description="GeoJSON geometry mapping")
    properties: Dict[str, PropertyValue] = Field(default_factory=dict, description="Scalar attribute values")
    id: Optional[Union[int, float, str]] = Field(None, description="GeoJSON feature id")
    
    @field_validator('geometry', mode='before')
    @classmethod
    def normalize_geometry(cls, v: Any) -> Optional[Dict[str, Any]]:
        """Drop geometry values that are not mappings; the predicate rejects them later."""
        if isinstance(v, dict):
            return v
        return None
    
    @field_validator('properties', mode='before')
    @classmethod
    def normalize_properties(cls, v: Any) -> Dict[str, Any]:
        """Coerce a missing bag to empty and flatten nested values to JSON text."""
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("properties must be a mapping")
        return {
            str(key): json.dumps(value, default=str) if isinstance(value, (dict, list, tuple)) else value
            for key, value in v.items()
        }
    
    @classmethod
    def from_geojson(cls, data: Dict[str, Any]) -> "Feature":
        """Build a feature from a GeoJSON ``Feature`` object."""
        return cls.model_validate(data)
    
    @property
    def geometry_type(self) -> Optional[str]:
        if not self.geometry:
            return None
        return self.geometry.get("type")
    
    def get_property(self, name: str, default: PropertyValue = None) -> PropertyValue:
        """Return a property value, or ``default`` when the field is absent or null."""
        value = self.properties.get(name)
        return default if value is None else value
    
    def get_group_value(self, name: str) -> str:
        """Return the grouping segment for a field.
        
        Absent or falsy values (None, empty string, 0, False, NaN) resolve to ``"Unknown"``.
        """
        value = self.properties.get(name)
        if not value:
            return UNKNOWN_VALUE
        return format_property_value(value)
    
    def to_geojson(self, extra_properties: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Serialize back to a GeoJSON ``Feature`` object.
        
        Args:
            extra_properties: Values merged over the feature's own properties
        """
        properties = dict(self.properties)
        if extra_properties:
            properties.update(extra_properties)
        
        data: Dict[str, Any] = {
            "type": "Feature",
            "geometry": self.geometry,
            "properties": properties,
        }
        if self.id is not None:
            data["id"] = self.id
        return data


class FeatureCollection(BaseModel):
    """A loaded dataset: an ordered list of features."""
    
    type: str = Field("FeatureCollection", description="GeoJSON object type")
    features: List[Feature] = Field(default_factory=list, description="Features in source order")
    name: Optional[str] = Field(None, description="Dataset name from the source document")
    
    def __len__(self) -> int:
        return len(self.features)
    
    def geometry_types(self) -> Dict[str, int]:
        """Count features per geometry type ("None" for features without geometry)."""
        counts: Dict[str, int] = {}
        for feature in self.features:
            key = feature.geometry_type or "None"
            counts[key] = counts.get(key, 0) + 1
        return counts
    
    def to_geojson(self) -> Dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [feature.to_geojson() for feature in self.features],
        }
