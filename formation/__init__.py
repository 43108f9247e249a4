"""Tactical formation assignment engine.

Pure computation over plain data records:

- spatial: uniform-grid index for radius queries and pitch bounds
- scoring: weighted suitability score for an (agent, slot) pair
- optimizer: greedy (and optional optimal) agent-to-slot assignment
- validator: overlap detection and relocation for a single agent
- analysis: fitness bands, recommendations and category metrics for a filled formation
- compute: message-passing execution hosts (process-isolated or inline)

Design note: this module exposes a small, explicit public API via ``__all__``.
Import helpers directly from the submodules.
"""

from .analysis import FormationAnalysis, analyze_formation
from .models import (
    Agent,
    AgentAttributes,
    AssignmentResult,
    Availability,
    Formation,
    FormationOptimizationRequest,
    OptimizationConstraints,
    Position,
    PositionValidationRequest,
    PositionValidationResult,
    ScoreBreakdown,
    Slot,
)
from .optimizer import optimize_formation, optimize_formation_optimal
from .scoring import calculate_score, score_breakdown
from .validator import validate_position

__all__ = [
    "Agent",
    "AgentAttributes",
    "AssignmentResult",
    "Availability",
    "Formation",
    "FormationAnalysis",
    "FormationOptimizationRequest",
    "OptimizationConstraints",
    "Position",
    "PositionValidationRequest",
    "PositionValidationResult",
    "ScoreBreakdown",
    "Slot",
    "analyze_formation",
    "calculate_score",
    "optimize_formation",
    "optimize_formation_optimal",
    "score_breakdown",
    "validate_position",
]
