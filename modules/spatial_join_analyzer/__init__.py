"""Spatial Join Analyzer Module

This module matches infrastructure assets (target layers) against capital
project boundaries (reference layer), groups the matched assets by configured
categorical fields and exports the results for reporting and mapping.
"""

from .processor import SpatialJoinAnalyzer

__all__ = ['SpatialJoinAnalyzer']
