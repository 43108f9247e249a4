"""Pitch geometry and spatial search constants."""

# Pitch coordinates are normalised to a 100 x 100 plane.
FIELD_WIDTH = 100.0
FIELD_HEIGHT = 100.0

# Spatial index cell side (2x2 grid on the default pitch).
DEFAULT_CELL_SIZE = 50.0
DEFAULT_QUERY_RADIUS = 25.0

# Position validation radii.
CONFLICT_RADIUS = 30.0
RELOCATION_RADIUS = 25.0

# Relocation search: concentric rings, evenly spaced angles per ring.
RELOCATION_RING_START = 10.0
RELOCATION_RING_STEP = 10.0
RELOCATION_RING_MAX = 40.0
RELOCATION_ANGLE_STEPS = 8

OVERLAP_SUGGESTION = "Consider moving to avoid player overlaps"
OUT_OF_BOUNDS_SUGGESTION = "Position is outside field boundaries"
