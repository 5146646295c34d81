"""Textile inventory and sales service."""

__version__ = "1.0.0"
