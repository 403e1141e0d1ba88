"""
Utility modules for the Synergy spatial analysis system.

Logging setup and the performance logging decorator shared by all modules.
"""

from .logging_setup import setup_logging, get_logger, log_performance

__all__ = ["setup_logging", "get_logger", "log_performance"]
