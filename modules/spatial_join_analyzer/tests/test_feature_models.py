"""Unit tests for feature data models.

Tests Feature normalization of geometry and properties, group value
resolution and GeoJSON serialization.
"""

import pytest
from pydantic import ValidationError

from modules.spatial_join_analyzer.models import (
    UNKNOWN_VALUE,
    Feature,
    FeatureCollection,
    GeometryType,
    format_property_value,
)


class TestFeature:
    """Test Feature model validation and accessors."""
    
    def test_feature_from_geojson(self):
        """Test building a feature from a GeoJSON object."""
        feature = Feature.from_geojson({
            "type": "Feature",
            "id": 7,
            "geometry": {"type": "Point", "coordinates": [1.0, 2.0]},
            "properties": {"type": "EV Charger", "status": "Active"}
        })
        
        assert feature.id == 7
        assert feature.geometry_type == "Point"
        assert feature.get_property("type") == "EV Charger"
    
    def test_missing_properties_become_empty(self):
        """Test null properties are coerced to an empty mapping."""
        feature = Feature(geometry=None, properties=None)
        
        assert feature.properties == {}
        assert feature.geometry_type is None
    
    def test_non_mapping_geometry_is_dropped(self):
        """Test geometry values that are not objects are stored as None."""
        feature = Feature(geometry="POINT (1 2)", properties={})
        
        assert feature.geometry is None
    
    def test_non_mapping_properties_rejected(self):
        """Test properties must be a mapping."""
        with pytest.raises(ValidationError):
            Feature(geometry=None, properties=["not", "a", "mapping"])
    
    def test_nested_property_values_flattened(self):
        """Test nested property values are stored as JSON text."""
        feature = Feature(properties={"tags": ["a", "b"], "meta": {"k": 1}})
        
        assert feature.get_property("tags") == '["a", "b"]'
        assert feature.get_property("meta") == '{"k": 1}'
    
    def test_feature_is_immutable(self):
        """Test features cannot be reassigned after creation."""
        feature = Feature(properties={"type": "A"})
        
        with pytest.raises(ValidationError):
            feature.properties = {}
    
    def test_get_property_default(self):
        """Test defaults are returned for absent and null properties."""
        feature = Feature(properties={"status": None})
        
        assert feature.get_property("status", "N/A") == "N/A"
        assert feature.get_property("missing", "N/A") == "N/A"
    
    @pytest.mark.parametrize("value", [None, "", 0, False])
    def test_falsy_group_values_resolve_to_unknown(self, value):
        """Test absent or falsy grouping values become Unknown."""
        feature = Feature(properties={"status": value})
        
        assert feature.get_group_value("status") == UNKNOWN_VALUE
        assert feature.get_group_value("absent") == UNKNOWN_VALUE
    
    def test_group_values_are_stringified(self):
        """Test non-string grouping values are converted to text."""
        feature = Feature(properties={"ports": 4, "fast": True, "level": 2.0, "kw": 7.5})
        
        assert feature.get_group_value("ports") == "4"
        assert feature.get_group_value("fast") == "true"
        assert feature.get_group_value("level") == "2"
        assert feature.get_group_value("kw") == "7.5"
    
    @pytest.mark.parametrize("value,expected", [
        (True, "true"),
        (False, "false"),
        (2.0, "2"),
        (-3.0, "-3"),
        (0.25, "0.25"),
        (12, "12"),
        ("Active", "Active"),
        (float("nan"), UNKNOWN_VALUE),
    ])
    def test_format_property_value(self, value, expected):
        assert format_property_value(value) == expected
    
    def test_float_id_accepted(self):
        """Test any JSON number is a valid feature id."""
        feature = Feature.from_geojson({"id": 1.5, "geometry": None, "properties": {}})
        
        assert feature.id == 1.5
        assert feature.to_geojson()["id"] == 1.5
    
    def test_to_geojson_merges_extra_properties(self):
        """Test serialization with extra properties leaves the feature unchanged."""
        feature = Feature(
            id="a",
            geometry={"type": "Point", "coordinates": [0, 0]},
            properties={"type": "Hydrant"}
        )
        
        data = feature.to_geojson({"matchCount": 3})
        
        assert data == {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [0, 0]},
            "properties": {"type": "Hydrant", "matchCount": 3},
            "id": "a",
        }
        assert "matchCount" not in feature.properties


class TestFeatureCollection:
    """Test FeatureCollection helpers."""
    
    def test_geometry_type_counts(self):
        """Test geometry types are counted with None for missing geometry."""
        collection = FeatureCollection(features=[
            Feature(geometry={"type": "Point", "coordinates": [0, 0]}),
            Feature(geometry={"type": "Point", "coordinates": [1, 1]}),
            Feature(geometry=None),
        ])
        
        assert len(collection) == 3
        assert collection.geometry_types() == {"Point": 2, "None": 1}
    
    def test_to_geojson(self):
        """Test collection serialization preserves feature order."""
        collection = FeatureCollection(features=[
            Feature(properties={"n": 1}),
            Feature(properties={"n": 2}),
        ])
        
        data = collection.to_geojson()
        
        assert data["type"] == "FeatureCollection"
        assert [f["properties"]["n"] for f in data["features"]] == [1, 2]
    
    def test_geometry_type_enum_values(self):
        """Test GeometryType carries the GeoJSON tags."""
        assert GeometryType.POINT == "Point"
        assert GeometryType.MULTI_POLYGON == "MultiPolygon"
