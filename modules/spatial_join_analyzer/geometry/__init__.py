"""Geometry predicates for the spatial join."""

from .predicate_evaluator import GeometryPredicateEvaluator, SUPPORTED_GEOMETRY_TYPES

__all__ = ['GeometryPredicateEvaluator', 'SUPPORTED_GEOMETRY_TYPES']
