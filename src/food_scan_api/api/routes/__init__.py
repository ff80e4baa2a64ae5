"""API routes."""

from . import food_scan, quota

__all__ = ["food_scan", "quota"]
