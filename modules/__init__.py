"""Synergy Processing Modules

Each module implements the ModuleProcessor interface from ``src.interfaces``
and provides the business logic for one analysis workflow.
"""
