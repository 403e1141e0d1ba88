"""Layer and Processing Configuration Models

Validation models for ``layer_config.json`` (reference and target layers) and
for the ``processing`` section of the environment configuration.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .feature import GeometryType

logger = logging.getLogger(__name__)


class ContainmentMode(str, Enum):
    """How non-point target geometries are tested against a reference polygon.
    
    Point targets always use a point-in-polygon test. For lines and polygons:
    - COVERS: the whole target geometry must lie inside the reference (boundary allowed)
    - REPRESENTATIVE_POINT: a single interior point of the target is tested
    - POINT_ONLY: non-point targets cannot be evaluated and never match
    """
    COVERS = "covers"
    REPRESENTATIVE_POINT = "representative_point"
    POINT_ONLY = "point_only"


class SpatialJoinConfig(BaseModel):
    """Processing settings for the spatial join and dataset loading."""
    model_config = ConfigDict(extra="ignore")
    
    containment_mode: ContainmentMode = Field(ContainmentMode.COVERS, description="Containment test for non-point targets")
    batch_size: int = Field(250, ge=1, le=5000, description="Reference features per batch in batched joins")
    max_workers: int = Field(1, ge=1, le=32, description="Worker threads for batched joins and dataset fetches")
    log_skipped_features: bool = Field(True, description="Log each target feature whose geometry cannot be evaluated")
    request_timeout_seconds: float = Field(30.0, gt=0, description="Timeout for remote dataset requests")
    max_fetch_attempts: int = Field(3, ge=1, le=10, description="Attempts per remote dataset request")


class TargetDatasetConfig(BaseModel):
    """Grouping configuration for one target dataset.
    
    ``group_by_fields`` lists the property names whose values, in order, form
    the group key of each matched target feature.
    """
    model_config = ConfigDict(extra="ignore")
    
    group_by_fields: List[str] = Field(default_factory=list, description="Ordered grouping property names")
    
    @field_validator('group_by_fields')
    @classmethod
    def validate_group_by_fields(cls, v: List[str]) -> List[str]:
        """Reject blank field names."""
        for field_name in v:
            if not field_name or not field_name.strip():
                raise ValueError("group_by_fields entries must be non-empty field names")
        return v


class TargetLayerConfig(TargetDatasetConfig):
    """Target layer: grouping config plus the display metadata used downstream."""
    
    name: str = Field(..., min_length=1, description="Display name of the target layer")
    file: str = Field(..., min_length=1, description="Dataset path (relative to data_dir) or URL")
    geometry_type: GeometryType = Field(GeometryType.POINT, description="Expected geometry type")
    color: str = Field("#10B981", description="Map color")
    size: Optional[int] = Field(None, ge=1, description="Rendered point size")
    display_fields: Dict[str, str] = Field(default_factory=dict, description="Display role to property name")


class ReferenceDisplayFields(BaseModel):
    """Property names of the reference attributes shown in reports."""
    model_config = ConfigDict(extra="ignore")
    
    title: str = "ProjectTitle"
    department: str = "ProgramName"
    start_date: str = "StartDate"
    end_date: str = "EndDate"
    project_number: str = "ProjectNumber"
    cost: str = "ConstructionCost"
    manager_name: str = "PM_Name"
    manager_phone: str = "PM_Phone"
    manager_email: str = "PM_EMail"


class ReferenceLayerConfig(BaseModel):
    """Reference (project boundary) layer configuration."""
    model_config = ConfigDict(extra="ignore")
    
    name: str = Field("CIP Projects", min_length=1, description="Display name of the reference layer")
    file: str = Field(..., min_length=1, description="Dataset path (relative to data_dir) or URL")
    geometry_type: GeometryType = Field(GeometryType.POLYGON, description="Expected geometry type")
    id_field: str = Field("OBJECTID", description="Property identifying a reference feature")
    filter_fields: List[str] = Field(default_factory=list, description="Fields offered as filters")
    color: str = Field("#3B82F6", description="Outline color")
    fill_color: Optional[str] = Field(None, description="Fill color")
    fill_opacity: Optional[float] = Field(None, ge=0, le=1, description="Fill opacity")
    display_fields: ReferenceDisplayFields = Field(default_factory=ReferenceDisplayFields)
    
    @field_validator('geometry_type')
    @classmethod
    def validate_geometry_type(cls, v: GeometryType) -> GeometryType:
        """Reference layers should be polygonal; other types will not match anything."""
        if v not in (GeometryType.POLYGON, GeometryType.MULTI_POLYGON):
            logger.warning(f"Reference layer geometry type {v.value} is not polygonal")
        return v


class LayerConfig(BaseModel):
    """Complete layer configuration: one reference layer, ordered target layers."""
    
    reference: ReferenceLayerConfig
    target: List[TargetLayerConfig] = Field(default_factory=list)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayerConfig":
        return cls.model_validate(data)
    
    def get_target_name(self, index: int) -> str:
        """Display name of a target layer, ``Target N`` when not configured."""
        if 0 <= index < len(self.target):
            return self.target[index].name
        return f"Target {index + 1}"
