"""Backup Panel - inventory and lifecycle management for backup archives."""

__version__ = "0.1.0"
