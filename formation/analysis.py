"""Read-only analysis of an already-filled formation.

For every slot with an agent: the suitability score, a fitness band, a
per-slot chemistry value and position familiarity. Empty slots, weak fits
and unavailable agents produce prioritised recommendations, and per-category
averages summarise the shape of the side.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from formation.config.roles import DEFENSE, FORWARD, GOALKEEPER, MIDFIELD
from formation.config.scoring import (
    FAMILIAR_POSITION,
    FITNESS_BANDS,
    FITNESS_FLOOR,
    HIGH_PRIORITY_BELOW,
    IMPROVEMENT_THRESHOLD,
    MEDIUM_PRIORITY_BELOW,
    SCORE_MAX,
    SCORE_MIN,
    SLOT_CHEMISTRY_BASE,
    SLOT_CHEMISTRY_FAMILIARITY_BONUS,
    SLOT_CHEMISTRY_FORM_BONUS,
    UNFAMILIAR_POSITION,
)
from formation.models import Agent, Formation, Slot
from formation.scoring import score_breakdown

logger = logging.getLogger(__name__)

HIGH = "high"
MEDIUM = "medium"
LOW = "low"
_PRIORITY_RANK = {HIGH: 3, MEDIUM: 2, LOW: 1}


@dataclass(frozen=True)
class SlotAnalysis:
    slot_id: str
    role: str
    agent_id: str
    agent_name: str
    score: float
    fitness: str
    chemistry: float
    familiarity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "slot_id": self.slot_id,
            "role": self.role,
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "score": self.score,
            "fitness": self.fitness,
            "chemistry": self.chemistry,
            "familiarity": self.familiarity,
        }


@dataclass(frozen=True)
class Recommendation:
    slot_id: str
    issue: str
    suggestion: str
    priority: str
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "slot_id": self.slot_id,
            "issue": self.issue,
            "suggestion": self.suggestion,
            "priority": self.priority,
        }
        if self.score is not None:
            data["score"] = self.score
        return data


@dataclass(frozen=True)
class FormationMetrics:
    """Mean slot score per category, plus overall balance and chemistry."""

    goalkeeping: float
    defensive_strength: float
    midfield_control: float
    attacking_threat: float
    overall_balance: float
    chemistry_rating: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "goalkeeping": self.goalkeeping,
            "defensive_strength": self.defensive_strength,
            "midfield_control": self.midfield_control,
            "attacking_threat": self.attacking_threat,
            "overall_balance": self.overall_balance,
            "chemistry_rating": self.chemistry_rating,
        }


@dataclass(frozen=True)
class FormationAnalysis:
    total_score: float
    average_score: int
    positions: tuple
    recommendations: tuple
    metrics: FormationMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_score": self.total_score,
            "average_score": self.average_score,
            "positions": [position.to_dict() for position in self.positions],
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "metrics": self.metrics.to_dict(),
        }


def fitness_band(score: float) -> str:
    for threshold, band in FITNESS_BANDS:
        if score >= threshold:
            return band
    return FITNESS_FLOOR


def slot_chemistry(agent: Agent, slot: Slot) -> float:
    chemistry = SLOT_CHEMISTRY_BASE
    if agent.role_id in slot.preferred_roles:
        chemistry += SLOT_CHEMISTRY_FAMILIARITY_BONUS
    chemistry += SLOT_CHEMISTRY_FORM_BONUS.get(agent.form, 0.0)
    return max(SCORE_MIN, min(SCORE_MAX, chemistry))


def _weak_fit_priority(score: float) -> str:
    if score < HIGH_PRIORITY_BELOW:
        return HIGH
    if score < MEDIUM_PRIORITY_BELOW:
        return MEDIUM
    return LOW


def _category_mean(totals: Dict[str, float], slots: Sequence[Slot], category: str) -> float:
    count = sum(1 for slot in slots if slot.role == category)
    return totals.get(category, 0.0) / max(1, count)


def analyze_formation(formation: Formation, agents: Sequence[Agent]) -> FormationAnalysis:
    """Score and critique the agents currently placed in ``formation``.

    Slots whose ``agent_id`` does not match any agent count as empty.
    Recommendations are ordered high -> medium -> low priority, keeping slot
    order within a priority.
    """
    by_id = {agent.id: agent for agent in agents}

    positions: List[SlotAnalysis] = []
    recommendations: List[Recommendation] = []
    category_totals: Dict[str, float] = {}
    chemistry_total = 0.0

    for slot in formation.slots:
        agent = by_id.get(slot.agent_id) if slot.agent_id is not None else None
        if agent is None:
            recommendations.append(
                Recommendation(
                    slot_id=slot.id,
                    issue=f"No player assigned to {slot.role} position",
                    suggestion="Assign a suitable player to this position",
                    priority=HIGH,
                )
            )
            continue

        score = score_breakdown(agent, slot).total
        chemistry = slot_chemistry(agent, slot)
        positions.append(
            SlotAnalysis(
                slot_id=slot.id,
                role=slot.role,
                agent_id=agent.id,
                agent_name=agent.display_name,
                score=score,
                fitness=fitness_band(score),
                chemistry=chemistry,
                familiarity=(
                    FAMILIAR_POSITION if agent.role_id in slot.preferred_roles else UNFAMILIAR_POSITION
                ),
            )
        )
        category_totals[slot.role] = category_totals.get(slot.role, 0.0) + score
        chemistry_total += chemistry

        if score < IMPROVEMENT_THRESHOLD:
            recommendations.append(
                Recommendation(
                    slot_id=slot.id,
                    issue=f"{agent.display_name} is not well-suited for {slot.role} position",
                    suggestion=f"Consider moving to a position that matches their {agent.role_id} role",
                    priority=_weak_fit_priority(score),
                    score=score,
                )
            )
        if not agent.availability.is_available:
            recommendations.append(
                Recommendation(
                    slot_id=slot.id,
                    issue=f"{agent.display_name} is {agent.availability.status}",
                    suggestion="Find a replacement player for this position",
                    priority=HIGH,
                )
            )

    # Stable sort: slot order survives within a priority
    recommendations.sort(key=lambda rec: _PRIORITY_RANK[rec.priority], reverse=True)

    total = sum(position.score for position in positions)
    filled = len(positions)
    slots = formation.slots

    metrics = FormationMetrics(
        goalkeeping=_category_mean(category_totals, slots, GOALKEEPER),
        defensive_strength=_category_mean(category_totals, slots, DEFENSE),
        midfield_control=_category_mean(category_totals, slots, MIDFIELD),
        attacking_threat=_category_mean(category_totals, slots, FORWARD),
        overall_balance=total / max(1, filled),
        chemistry_rating=chemistry_total / max(1, filled),
    )

    logger.debug(
        "Analysed formation %s: %d/%d slots filled, %d recommendations",
        formation.id,
        filled,
        len(slots),
        len(recommendations),
    )

    return FormationAnalysis(
        total_score=total,
        # Half-up rounding of the mean
        average_score=int(math.floor(total / filled + 0.5)) if filled else 0,
        positions=tuple(positions),
        recommendations=tuple(recommendations),
        metrics=metrics,
    )
