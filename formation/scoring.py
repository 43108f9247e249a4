"""Suitability scoring for (agent, slot) pairs.

The overall score is a weighted sum of five sub-scores, each on a 0-100
scale::

    0.40 role fit + 0.25 physical fit + 0.20 mental fit
        + 0.10 condition + 0.05 chemistry

clamped to [0, 100]. Every function here is pure; the lookup tables live in
``formation.config`` and are read-only.
"""

from __future__ import annotations

from formation.config.roles import (
    CATEGORY_ROLE_FIT,
    NO_ROLE_FIT,
    PRIMARY_ROLE_FIT,
    SECONDARY_ROLE_FIT,
    SECONDARY_ROLES,
    category_for_role,
)
from formation.config.scoring import (
    CHEMISTRY_BASE,
    CHEMISTRY_FAMILIARITY_BONUS,
    CHEMISTRY_WEIGHT,
    CONDITION_BASE,
    CONDITION_WEIGHT,
    DEFAULT_ATTRIBUTE_VALUE,
    DEFAULT_MENTAL_FIT,
    FALLBACK_REQUIREMENTS_CATEGORY,
    FORM_BONUS,
    MENTAL_FIT_WEIGHT,
    MORALE_BONUS,
    PHYSICAL_FIT_WEIGHT,
    PHYSICAL_REQUIREMENTS,
    ROLE_FIT_WEIGHT,
    SCORE_MAX,
    SCORE_MIN,
    UNAVAILABLE_MULTIPLIER,
)
from formation.models import Agent, ScoreBreakdown, Slot


def clamp_score(value: float) -> float:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def role_fit(agent: Agent, slot: Slot) -> float:
    """Role compatibility, checked exact -> secondary -> category -> zero.

    Roles missing from the compatibility table score zero outright.
    """
    secondary = SECONDARY_ROLES.get(agent.role_id)
    if secondary is None:
        return NO_ROLE_FIT

    if agent.role_id in slot.preferred_roles:
        return PRIMARY_ROLE_FIT

    for preferred_role in slot.preferred_roles:
        if preferred_role in secondary:
            return SECONDARY_ROLE_FIT

    if category_for_role(agent.role_id) == slot.role:
        return CATEGORY_ROLE_FIT

    return NO_ROLE_FIT


def physical_fit(agent: Agent, slot: Slot) -> float:
    """Weighted attributes for the slot's category (not the agent's)."""
    requirements = PHYSICAL_REQUIREMENTS.get(slot.role)
    if requirements is None:
        requirements = PHYSICAL_REQUIREMENTS[FALLBACK_REQUIREMENTS_CATEGORY]

    attributes = agent.attributes
    return sum(
        attributes.value_or(name, DEFAULT_ATTRIBUTE_VALUE) * weight
        for name, weight in requirements.items()
    )


def mental_fit(agent: Agent) -> float:
    values = agent.attributes.mental_values()
    if not values:
        return DEFAULT_MENTAL_FIT
    return sum(values) / len(values)


def condition_score(agent: Agent) -> float:
    """Form and morale adjust a base of 75; unavailability scales it by 0.3.

    The multiplier applies to the unclamped sum, so an unavailable agent with
    bonuses above 100 keeps slightly more than 30% of the clamped score.
    """
    score = CONDITION_BASE
    score += FORM_BONUS.get(agent.form, 0.0)
    score += MORALE_BONUS.get(agent.morale, 0.0)

    if not agent.availability.is_available:
        score *= UNAVAILABLE_MULTIPLIER

    return clamp_score(score)


def chemistry_score(agent: Agent, slot: Slot) -> float:
    if agent.role_id in slot.preferred_roles:
        return CHEMISTRY_BASE + CHEMISTRY_FAMILIARITY_BONUS
    return CHEMISTRY_BASE


def score_breakdown(agent: Agent, slot: Slot) -> ScoreBreakdown:
    """Compute every sub-score and the clamped weighted total."""
    role = role_fit(agent, slot)
    physical = physical_fit(agent, slot)
    mental = mental_fit(agent)
    condition = condition_score(agent)
    chemistry = chemistry_score(agent, slot)

    total = (
        role * ROLE_FIT_WEIGHT
        + physical * PHYSICAL_FIT_WEIGHT
        + mental * MENTAL_FIT_WEIGHT
        + condition * CONDITION_WEIGHT
        + chemistry * CHEMISTRY_WEIGHT
    )

    return ScoreBreakdown(
        role_fit=role,
        physical_fit=physical,
        mental_fit=mental,
        condition=condition,
        chemistry=chemistry,
        total=clamp_score(total),
    )


def calculate_score(agent: Agent, slot: Slot) -> float:
    """Suitability of ``agent`` for ``slot`` in [0, 100]."""
    return score_breakdown(agent, slot).total
