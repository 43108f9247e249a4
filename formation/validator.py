"""Single-agent position validation and relocation."""

from __future__ import annotations

import logging
import math
from typing import Iterator, List, Optional, Sequence, Tuple

from formation.config.field import (
    CONFLICT_RADIUS,
    DEFAULT_CELL_SIZE,
    OUT_OF_BOUNDS_SUGGESTION,
    OVERLAP_SUGGESTION,
    RELOCATION_ANGLE_STEPS,
    RELOCATION_RADIUS,
    RELOCATION_RING_MAX,
    RELOCATION_RING_START,
    RELOCATION_RING_STEP,
)
from formation.models import (
    Agent,
    Formation,
    Position,
    PositionValidationRequest,
    PositionValidationResult,
)
from formation.spatial import FieldBounds, SpatialIndex

logger = logging.getLogger(__name__)


def relocation_candidates(x: float, y: float) -> Iterator[Tuple[float, float]]:
    """Yield ring-search candidates around ``(x, y)``.

    Inner rings first; within a ring, angles increase from 0 in equal steps.
    """
    radius = RELOCATION_RING_START
    while radius <= RELOCATION_RING_MAX:
        for step in range(RELOCATION_ANGLE_STEPS):
            angle = (step / RELOCATION_ANGLE_STEPS) * 2 * math.pi
            yield (x + math.cos(angle) * radius, y + math.sin(angle) * radius)
        radius += RELOCATION_RING_STEP


def find_free_position(
    index: SpatialIndex, x: float, y: float, bounds: FieldBounds
) -> Optional[Position]:
    """First in-bounds candidate with no agent within the relocation radius."""
    for test_x, test_y in relocation_candidates(x, y):
        if not bounds.contains(test_x, test_y):
            continue
        if not index.query(test_x, test_y, RELOCATION_RADIUS):
            return Position(test_x, test_y)
    return None


def validate_position(
    agent_id: str,
    position: Position,
    agents: Sequence[Agent],
    formation: Optional[Formation] = None,
    *,
    cell_size: float = DEFAULT_CELL_SIZE,
) -> PositionValidationResult:
    """Check a proposed position for overlaps and pitch bounds.

    Args:
        agent_id: The agent being moved; it is excluded from the index
        position: Proposed position
        agents: Every agent on the pitch (the moving one may be included)
        formation: Accepted for context; not consulted
        cell_size: Spatial index cell side

    Returns:
        PositionValidationResult. ``optimized_position`` is only set when the
        proposal conflicts and a conflict-free ring candidate exists.
    """
    bounds = FieldBounds()
    index = SpatialIndex(cell_size)
    try:
        index.insert_all(agent for agent in agents if agent.id != agent_id)

        conflicts = [agent.id for agent in index.query(position.x, position.y, CONFLICT_RADIUS)]
        in_bounds = bounds.contains(position.x, position.y)

        suggestions: List[str] = []
        if conflicts:
            suggestions.append(OVERLAP_SUGGESTION)
        if not in_bounds:
            suggestions.append(OUT_OF_BOUNDS_SUGGESTION)

        optimized_position = None
        if conflicts:
            optimized_position = find_free_position(index, position.x, position.y, bounds)
            if optimized_position is None:
                logger.debug(
                    "No conflict-free position near (%.1f, %.1f) for agent %s",
                    position.x,
                    position.y,
                    agent_id,
                )
    finally:
        index.clear()

    return PositionValidationResult(
        is_valid=not conflicts and in_bounds,
        conflicts=tuple(conflicts),
        suggestions=tuple(suggestions),
        optimized_position=optimized_position,
    )


def validate_position_request(request: PositionValidationRequest) -> PositionValidationResult:
    return validate_position(
        request.agent_id, request.position, request.agents, request.formation
    )
