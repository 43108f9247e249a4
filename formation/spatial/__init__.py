"""Spatial indexing and pitch bounds."""

from formation.spatial.bounds import FieldBounds
from formation.spatial.grid import SpatialIndex

__all__ = ["FieldBounds", "SpatialIndex"]
