"""Agent-to-slot assignment.

``optimize_formation`` is a single-pass greedy matcher over the full
agent x slot score matrix. It is deterministic and fast, but not globally
optimal: no augmenting-path or exchange step is performed.

``optimize_formation_optimal`` solves the same matrix exactly with the
Hungarian (Kuhn-Munkres) algorithm. It is a separate operation; the greedy
behaviour of ``optimize_formation`` is never upgraded silently.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from formation.config.scoring import IMPROVEMENT_THRESHOLD
from formation.models import (
    Agent,
    AssignmentResult,
    Formation,
    FormationOptimizationRequest,
    OptimizationConstraints,
    ScoreRecord,
    Slot,
)
from formation.scoring import calculate_score

logger = logging.getLogger(__name__)


def build_score_records(agents: Sequence[Agent], slots: Sequence[Slot]) -> List[ScoreRecord]:
    """Score every (agent, slot) pair, slots outer and agents inner.

    This generation order is what ties fall back to after sorting.
    """
    return [
        ScoreRecord(agent=agent, slot=slot, score=calculate_score(agent, slot))
        for slot in slots
        for agent in agents
    ]


def greedy_assign(records: Iterable[ScoreRecord]) -> List[ScoreRecord]:
    """Take the best remaining pair whose agent and slot are both still free.

    ``sorted`` is stable, so equal scores keep their generation order.
    Returns the accepted records in acceptance order.
    """
    ranked = sorted(records, key=lambda record: record.score, reverse=True)

    used_agents = set()
    used_slots = set()
    assigned: List[ScoreRecord] = []

    for record in ranked:
        if record.agent.id in used_agents or record.slot.id in used_slots:
            continue
        assigned.append(record)
        used_agents.add(record.agent.id)
        used_slots.add(record.slot.id)

    return assigned


def _hungarian(cost: List[List[float]]) -> Dict[int, int]:
    """Minimum-cost assignment of every row to a distinct column.

    Requires ``len(cost) <= len(cost[0])``. Returns row index -> column index.
    Potentials-based O(n^2 m) formulation with 1-based internal arrays.
    """
    n = len(cost)
    m = len(cost[0])
    inf = float("inf")

    u = [0.0] * (n + 1)
    v = [0.0] * (m + 1)
    p = [0] * (m + 1)  # column -> row matched to it (0 = free)
    way = [0] * (m + 1)

    for i in range(1, n + 1):
        p[0] = i
        j0 = 0
        minv = [inf] * (m + 1)
        used = [False] * (m + 1)

        while True:
            used[j0] = True
            i0 = p[j0]
            delta = inf
            j1 = 0
            row = cost[i0 - 1]
            for j in range(1, m + 1):
                if used[j]:
                    continue
                cur = row[j - 1] - u[i0] - v[j]
                if cur < minv[j]:
                    minv[j] = cur
                    way[j] = j0
                if minv[j] < delta:
                    delta = minv[j]
                    j1 = j
            for j in range(m + 1):
                if used[j]:
                    u[p[j]] += delta
                    v[j] -= delta
                else:
                    minv[j] -= delta
            j0 = j1
            if p[j0] == 0:
                break

        # Walk the augmenting path back to the root
        while j0:
            j1 = way[j0]
            p[j0] = p[j1]
            j0 = j1

    return {p[j] - 1: j - 1 for j in range(1, m + 1) if p[j]}


def _unique_by_id(items):
    seen = set()
    unique = []
    for item in items:
        if item.id not in seen:
            seen.add(item.id)
            unique.append(item)
    return unique


def optimal_assign(agents: Sequence[Agent], slots: Sequence[Slot]) -> List[ScoreRecord]:
    """Maximum-total-score matching of ``min(len(agents), len(slots))`` pairs.

    Agents sharing an id (or slots sharing an id) only count once, matching
    the greedy matcher's bookkeeping.
    """
    agents = _unique_by_id(agents)
    slots = _unique_by_id(slots)
    if not agents or not slots:
        return []

    scores = [[calculate_score(agent, slot) for slot in slots] for agent in agents]

    if len(agents) <= len(slots):
        matching = _hungarian([[-score for score in row] for row in scores])
        pairs = [(row, col) for row, col in matching.items()]
    else:
        transposed = [[-scores[a][s] for a in range(len(agents))] for s in range(len(slots))]
        matching = _hungarian(transposed)
        pairs = [(col, row) for row, col in matching.items()]

    records = [
        ScoreRecord(agent=agents[a], slot=slots[s], score=scores[a][s]) for a, s in pairs
    ]
    # Report in formation order
    slot_order = {slot.id: index for index, slot in enumerate(slots)}
    records.sort(key=lambda record: slot_order[record.slot.id])
    return records


def _build_result(formation: Formation, assigned: Sequence[ScoreRecord]) -> AssignmentResult:
    by_slot = {record.slot.id: record.agent.id for record in assigned}
    # pop() so a duplicated slot id can never receive the same agent twice
    slots = [slot.with_agent(by_slot.pop(slot.id, None)) for slot in formation.slots]

    score = sum(record.score for record in assigned) / len(assigned) if assigned else 0.0

    improvements = [
        f"Consider replacing {record.agent.display_name} in {record.slot.role} position"
        for record in assigned
        if record.score < IMPROVEMENT_THRESHOLD
    ]

    return AssignmentResult(
        optimized_formation=formation.with_slots(slots),
        score=score,
        improvements=tuple(improvements),
        alternatives=(),
    )


def optimize_formation(
    agents: Sequence[Agent],
    formation: Formation,
    constraints: Optional[OptimizationConstraints] = None,
) -> AssignmentResult:
    """Greedily assign agents to the formation's slots.

    Args:
        agents: Candidate agents
        formation: Template whose slots are filled
        constraints: Accepted for forward compatibility; not consumed

    Returns:
        AssignmentResult with the annotated formation, the mean score of the
        assigned pairs (0 when nothing was assigned) and improvement hints
        for assigned pairs scoring below 60.
    """
    if not agents or not formation.slots:
        logger.debug(
            "Nothing to assign (agents=%d, slots=%d)", len(agents), len(formation.slots)
        )
        return _build_result(formation, [])

    records = build_score_records(agents, formation.slots)
    assigned = greedy_assign(records)

    logger.debug(
        "Greedy assignment for formation %s: %d/%d slots filled from %d combinations",
        formation.id,
        len(assigned),
        len(formation.slots),
        len(records),
    )
    return _build_result(formation, assigned)


def optimize_formation_optimal(
    agents: Sequence[Agent],
    formation: Formation,
    constraints: Optional[OptimizationConstraints] = None,
) -> AssignmentResult:
    """Assign agents to slots maximising the total score (Hungarian algorithm).

    Same result shape and scoring rules as ``optimize_formation``.
    """
    assigned = optimal_assign(agents, formation.slots)
    logger.debug(
        "Optimal assignment for formation %s: %d/%d slots filled",
        formation.id,
        len(assigned),
        len(formation.slots),
    )
    return _build_result(formation, assigned)


def optimize_formation_request(request: FormationOptimizationRequest) -> AssignmentResult:
    return optimize_formation(request.agents, request.formation, request.constraints)


def optimize_formation_optimal_request(request: FormationOptimizationRequest) -> AssignmentResult:
    return optimize_formation_optimal(request.agents, request.formation, request.constraints)
