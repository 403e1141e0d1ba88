"""Processor component for the spatial join analyzer module."""

from .spatial_join_analyzer import SpatialJoinAnalyzer

__all__ = ['SpatialJoinAnalyzer']
