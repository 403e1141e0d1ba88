"""
Custom exceptions for the Synergy spatial analysis system.

This module provides domain-specific exception classes for error handling
and debugging throughout the system.
"""

from .custom_exceptions import (
    SynergyBaseException,
    SynergyConfigurationError,
    SynergyValidationError,
    DataFormatError,
    SynergyConnectionError,
    SynergyProcessingError,
    GeometryPredicateError,
)

__all__ = [
    "SynergyBaseException",
    "SynergyConfigurationError",
    "SynergyValidationError",
    "DataFormatError",
    "SynergyConnectionError",
    "SynergyProcessingError",
    "GeometryPredicateError",
]
