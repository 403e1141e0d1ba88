"""Geometry Predicate Evaluator

Containment tests between reference polygons and target geometries using
shapely. Every failure to evaluate a predicate is raised as
GeometryPredicateError so the join engine can isolate it to one feature.
"""

import logging
import math
from typing import Any, Mapping, Union

from shapely.errors import ShapelyError
from shapely.geometry import shape
from shapely.geometry.base import BaseGeometry
from shapely.prepared import PreparedGeometry, prep

from src.exceptions import GeometryPredicateError
from ..models import ContainmentMode, GeometryType, POLYGONAL_GEOMETRY_TYPES

logger = logging.getLogger(__name__)

SUPPORTED_GEOMETRY_TYPES = frozenset(member.value for member in GeometryType)

# Errors shapely and numpy raise while building geometries from bad coordinates
_CONVERSION_ERRORS = (ShapelyError, ValueError, TypeError, KeyError, IndexError, AttributeError)

GeometryInput = Union[Mapping[str, Any], BaseGeometry, None]
ReferenceInput = Union[Mapping[str, Any], BaseGeometry, PreparedGeometry, None]


class GeometryPredicateEvaluator:
    """Evaluates whether a target geometry is contained within a reference polygon.
    
    Point targets use a point-in-polygon test that respects holes; points on a
    ring boundary count as inside. Lines and polygons are tested according to
    the configured ContainmentMode.
    """
    
    def __init__(self, containment_mode: ContainmentMode = ContainmentMode.COVERS):
        self.containment_mode = ContainmentMode(containment_mode)
        logger.debug(f"GeometryPredicateEvaluator using {self.containment_mode.value} containment")
    
    def to_shape(self, geometry: GeometryInput) -> BaseGeometry:
        """Convert a GeoJSON geometry mapping to a shapely geometry.
        
        Args:
            geometry: GeoJSON mapping or an already converted shapely geometry
            
        Returns:
            Non-empty shapely geometry with finite coordinates
            
        Raises:
            GeometryPredicateError: If the geometry is missing, unsupported or malformed
        """
        if isinstance(geometry, BaseGeometry):
            converted = geometry
        else:
            if not geometry:
                raise GeometryPredicateError("Feature has no geometry")
            if not isinstance(geometry, Mapping):
                raise GeometryPredicateError(
                    f"Geometry must be a mapping, got {type(geometry).__name__}"
                )
            
            geometry_type = geometry.get("type")
            if geometry_type not in SUPPORTED_GEOMETRY_TYPES:
                raise GeometryPredicateError(
                    f"Unsupported geometry type: {geometry_type}",
                    {"supported": sorted(SUPPORTED_GEOMETRY_TYPES)}
                )
            
            try:
                converted = shape(geometry)
            except _CONVERSION_ERRORS as e:
                raise GeometryPredicateError(
                    f"Malformed {geometry_type} geometry: {e}"
                ) from e
        
        if converted.is_empty:
            raise GeometryPredicateError(f"Empty {converted.geom_type} geometry")
        
        if not all(math.isfinite(value) for value in converted.bounds):
            raise GeometryPredicateError(
                f"{converted.geom_type} geometry has non-finite coordinates"
            )
        
        if converted.geom_type in POLYGONAL_GEOMETRY_TYPES and converted.area <= 0:
            raise GeometryPredicateError(
                f"Degenerate {converted.geom_type} geometry with zero area"
            )
        
        return converted
    
    def prepare_reference(self, geometry: ReferenceInput) -> PreparedGeometry:
        """Convert and prepare a reference polygon for repeated containment tests.
        
        Raises:
            GeometryPredicateError: If the geometry is invalid or not polygonal
        """
        if isinstance(geometry, PreparedGeometry):
            return geometry
        
        reference = self.to_shape(geometry)
        if reference.geom_type not in POLYGONAL_GEOMETRY_TYPES:
            raise GeometryPredicateError(
                f"Reference geometry must be Polygon or MultiPolygon, got {reference.geom_type}"
            )
        return prep(reference)
    
    def contains(self, reference_polygon: ReferenceInput, target_geometry: GeometryInput) -> bool:
        """Test whether ``target_geometry`` is contained within ``reference_polygon``.
        
        Args:
            reference_polygon: Polygon/MultiPolygon mapping, shapely geometry or prepared geometry
            target_geometry: Target GeoJSON mapping or shapely geometry
            
        Returns:
            True if the target is contained in the reference
            
        Raises:
            GeometryPredicateError: If the predicate cannot be evaluated
        """
        reference = self.prepare_reference(reference_polygon)
        target = self.to_shape(target_geometry)
        
        if target.geom_type != GeometryType.POINT.value:
            if self.containment_mode == ContainmentMode.POINT_ONLY:
                raise GeometryPredicateError(
                    f"Cannot test {target.geom_type} target with point-only containment"
                )
            if self.containment_mode == ContainmentMode.REPRESENTATIVE_POINT:
                target = target.representative_point()
        
        try:
            return bool(reference.covers(target))
        except ShapelyError as e:
            raise GeometryPredicateError(f"Containment test failed: {e}") from e
