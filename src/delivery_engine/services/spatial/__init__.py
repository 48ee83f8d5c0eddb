"""Spatial indexes over product origins."""

from .base import SORT_OPTIONS, NearbyFilters, SpatialIndex
from .grid import GridSpatialIndex

__all__ = ["SpatialIndex", "GridSpatialIndex", "NearbyFilters", "SORT_OPTIONS"]
