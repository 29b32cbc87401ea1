"""Collect AI assistant conversation logs that belong to the current project."""

__version__ = "0.2.0"
