"""Shared budget tracker API."""

__version__ = "0.1.0"
