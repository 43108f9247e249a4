"""Pitch boundary checks."""

from typing import Tuple

from formation.config.field import FIELD_HEIGHT, FIELD_WIDTH


class FieldBounds:
    """
    Rectangular pitch anchored at the origin.

    Both edges are part of the pitch: a player standing on the touchline
    is still in bounds.
    """

    def __init__(self, width: float = FIELD_WIDTH, height: float = FIELD_HEIGHT):
        self.width = width
        self.height = height

    def get_dimensions(self) -> Tuple[float, float]:
        """Get the pitch dimensions (width, height)."""
        return (float(self.width), float(self.height))

    def contains(self, x: float, y: float) -> bool:
        """Check if a point lies on the pitch, edges included."""
        return 0 <= x <= self.width and 0 <= y <= self.height
