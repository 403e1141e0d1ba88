"""
Synergy Framework Core Package

Shared infrastructure for the Synergy spatial analysis utilities: configuration
loading, the exception hierarchy, logging setup and the module processor
interface implemented by every processing module.
"""

from .interfaces import ModuleProcessor, ProcessingResult, ModuleStatus

__version__ = "1.0.0"
__all__ = ['ModuleProcessor', 'ProcessingResult', 'ModuleStatus']
