"""Unit tests for layer and processing configuration models."""

import pytest
from pydantic import ValidationError

from modules.spatial_join_analyzer.models import (
    ContainmentMode,
    GeometryType,
    LayerConfig,
    SpatialJoinConfig,
    TargetDatasetConfig,
    TargetLayerConfig,
)


class TestSpatialJoinConfig:
    """Test SpatialJoinConfig defaults and bounds."""
    
    def test_defaults(self):
        """Test default processing configuration."""
        config = SpatialJoinConfig()
        
        assert config.containment_mode == ContainmentMode.COVERS
        assert config.batch_size == 250
        assert config.max_workers == 1
        assert config.log_skipped_features is True
        assert config.max_fetch_attempts == 3
    
    def test_containment_mode_from_string(self):
        """Test containment mode accepts its string value."""
        config = SpatialJoinConfig(containment_mode="point_only")
        
        assert config.containment_mode == ContainmentMode.POINT_ONLY
    
    def test_invalid_batch_size(self):
        """Test batch size must be positive."""
        with pytest.raises(ValidationError):
            SpatialJoinConfig(batch_size=0)
    
    def test_invalid_max_workers(self):
        """Test worker count is bounded."""
        with pytest.raises(ValidationError):
            SpatialJoinConfig(max_workers=100)
    
    def test_unknown_keys_ignored(self):
        """Test unrelated processing keys do not fail validation."""
        config = SpatialJoinConfig.model_validate({"batch_size": 10, "timeout_seconds": 300})
        
        assert config.batch_size == 10


class TestTargetConfig:
    """Test target dataset and layer configuration."""
    
    def test_empty_group_by_fields_allowed(self):
        """Test a dataset may be grouped by no fields."""
        assert TargetDatasetConfig().group_by_fields == []
    
    def test_blank_group_by_field_rejected(self):
        """Test blank field names are rejected."""
        with pytest.raises(ValidationError, match="non-empty field names"):
            TargetDatasetConfig(group_by_fields=["type", "  "])
    
    def test_target_layer_config(self):
        """Test a complete target layer configuration."""
        layer = TargetLayerConfig(
            name="EV Chargers",
            file="ev_chargers.json",
            group_by_fields=["type", "status"],
            size=6
        )
        
        assert layer.geometry_type == GeometryType.POINT
        assert layer.group_by_fields == ["type", "status"]


class TestLayerConfig:
    """Test LayerConfig parsing."""
    
    @pytest.fixture
    def layer_data(self):
        return {
            "reference": {"name": "CIP Projects", "file": "cip_projects.json"},
            "target": [
                {"name": "EV Chargers", "file": "ev.json", "group_by_fields": ["type"]},
                {"name": "Hydrants", "file": "hydrants.json", "group_by_fields": []},
            ]
        }
    
    def test_from_dict(self, layer_data):
        """Test parsing a layer configuration mapping."""
        config = LayerConfig.from_dict(layer_data)
        
        assert config.reference.geometry_type == GeometryType.POLYGON
        assert config.reference.id_field == "OBJECTID"
        assert config.reference.display_fields.manager_email == "PM_EMail"
        assert [t.name for t in config.target] == ["EV Chargers", "Hydrants"]
    
    def test_get_target_name_fallback(self, layer_data):
        """Test unknown target indices get a positional name."""
        config = LayerConfig.from_dict(layer_data)
        
        assert config.get_target_name(1) == "Hydrants"
        assert config.get_target_name(5) == "Target 6"
    
    def test_missing_reference_file(self):
        """Test the reference layer requires a file."""
        with pytest.raises(ValidationError):
            LayerConfig.from_dict({"reference": {"name": "CIP"}, "target": []})
