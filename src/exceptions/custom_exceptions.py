"""
Custom exception classes for the Synergy spatial analysis system.

This module defines domain-specific exceptions to provide clear error handling
and debugging information across loading, joining and reporting.
"""

from typing import Optional, Dict, Any


class SynergyBaseException(Exception):
    """Base exception class for all Synergy system exceptions."""
    
    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
    
    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message


class SynergyConfigurationError(SynergyBaseException):
    """
    Exception raised when configuration loading or validation fails.
    
    This exception is raised when:
    - Configuration files are missing or invalid
    - Required configuration values are missing
    - Target dataset configs do not line up with the target datasets
    """
    pass


class SynergyValidationError(SynergyBaseException):
    """
    Exception raised when data validation fails.
    
    This exception is raised when:
    - Configuration structure validation fails
    - Layer configuration fields have the wrong type
    """
    pass


class DataFormatError(SynergyValidationError):
    """
    Exception raised when a dataset document lacks the minimal shape.
    
    A dataset must be a JSON object holding a ``features`` list. The error
    aborts the load of that dataset and is never recovered internally.
    """
    pass


class SynergyConnectionError(SynergyBaseException):
    """
    Exception raised when a remote dataset cannot be fetched.
    
    This exception is raised when:
    - Network connection issues persist after retries
    - The server answers with an error status
    """
    pass


class SynergyProcessingError(SynergyBaseException):
    """
    Exception raised when analysis processing fails.
    
    This exception is raised when:
    - Report export fails
    - A processing stage cannot complete
    """
    pass


class GeometryPredicateError(SynergyProcessingError):
    """
    Exception raised when a containment predicate cannot be evaluated.
    
    Raised for malformed coordinates, degenerate rings, unsupported geometry
    types and GEOS failures. The join engine catches it per target feature.
    """
    pass
