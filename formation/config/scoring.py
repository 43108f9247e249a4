"""Suitability scoring weights and lookup tables."""

from types import MappingProxyType
from typing import Mapping

from formation.config.roles import DEFENSE, FORWARD, GOALKEEPER, MIDFIELD

SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Sub-score weights (sum to 1.0).
ROLE_FIT_WEIGHT = 0.40
PHYSICAL_FIT_WEIGHT = 0.25
MENTAL_FIT_WEIGHT = 0.20
CONDITION_WEIGHT = 0.10
CHEMISTRY_WEIGHT = 0.05

# Substituted for any attribute the agent does not carry.
DEFAULT_ATTRIBUTE_VALUE = 70.0
DEFAULT_MENTAL_FIT = 70.0

MENTAL_ATTRIBUTES = ("vision", "decisions", "composure", "concentration", "leadership")

# Slot category -> attribute weights (each table sums to 1.0).
PHYSICAL_REQUIREMENTS: Mapping[str, Mapping[str, float]] = MappingProxyType(
    {
        GOALKEEPER: MappingProxyType(
            {"positioning": 0.4, "reflexes": 0.3, "diving": 0.2, "handling": 0.1}
        ),
        DEFENSE: MappingProxyType(
            {"tackling": 0.3, "positioning": 0.25, "marking": 0.2, "strength": 0.15, "speed": 0.1}
        ),
        MIDFIELD: MappingProxyType(
            {"passing": 0.3, "stamina": 0.25, "positioning": 0.2, "dribbling": 0.15, "speed": 0.1}
        ),
        FORWARD: MappingProxyType(
            {"shooting": 0.3, "speed": 0.25, "dribbling": 0.2, "finishing": 0.15, "positioning": 0.1}
        ),
    }
)
FALLBACK_REQUIREMENTS_CATEGORY = MIDFIELD

# Condition
CONDITION_BASE = 75.0
UNAVAILABLE_MULTIPLIER = 0.3
AVAILABLE_STATUS = "Available"

FORM_BONUS: Mapping[str, float] = MappingProxyType(
    {"Excellent": 20.0, "Good": 10.0, "Average": 0.0, "Poor": -10.0, "Terrible": -20.0}
)
MORALE_BONUS: Mapping[str, float] = MappingProxyType(
    {"Excellent": 15.0, "Good": 5.0, "Okay": 0.0, "Poor": -5.0, "Terrible": -15.0}
)

# Chemistry
CHEMISTRY_BASE = 75.0
CHEMISTRY_FAMILIARITY_BONUS = 25.0

# Assigned pairs below this score produce an improvement suggestion.
IMPROVEMENT_THRESHOLD = 60.0

# Formation analysis: score -> fitness band, first threshold met wins.
FITNESS_BANDS = ((90.0, "excellent"), (70.0, "good"), (50.0, "average"))
FITNESS_FLOOR = "poor"

# Pairs below IMPROVEMENT_THRESHOLD get a recommendation; these split its priority.
HIGH_PRIORITY_BELOW = 40.0
MEDIUM_PRIORITY_BELOW = 50.0

# Per-slot chemistry used by the analysis (differs from the optimizer's chemistry).
SLOT_CHEMISTRY_BASE = 75.0
SLOT_CHEMISTRY_FAMILIARITY_BONUS = 20.0
SLOT_CHEMISTRY_FORM_BONUS: Mapping[str, float] = MappingProxyType(
    {"Excellent": 5.0, "Poor": -5.0, "Terrible": -10.0}
)
FAMILIAR_POSITION = 100.0
UNFAMILIAR_POSITION = 50.0
