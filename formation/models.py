"""Domain records exchanged with the formation engine.

Agents, slots and formations are immutable inputs. Every record converts to
and from plain dictionaries so it can cross the compute-host boundary as a
structured copy. ``from_dict`` accepts the snake_case keys this package emits
as well as the camelCase keys used by JavaScript front-ends (``agentId``,
``preferredRoles``, ``playerId``...).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Mapping, Optional

from formation.config.scoring import AVAILABLE_STATUS, MENTAL_ATTRIBUTES
from formation.exceptions import PayloadError

_MISSING = object()


def _as_mapping(value: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise PayloadError(f"{name} must be an object, got {type(value).__name__}")
    return value


def _lookup(data: Mapping[str, Any], *keys: str, default: Any = _MISSING) -> Any:
    """Return the value of the first key present in ``data``."""
    for key in keys:
        if key in data:
            return data[key]
    if default is _MISSING:
        raise PayloadError(f"Missing required field {keys[0]!r}")
    return default


def _as_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise PayloadError(f"{name} must be a number, got bool")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise PayloadError(f"{name} must be a number, got {value!r}") from exc


def _as_list(value: Any, name: str) -> list:
    if not isinstance(value, (list, tuple)):
        raise PayloadError(f"{name} must be a list, got {type(value).__name__}")
    return list(value)


@dataclass(frozen=True)
class Position:
    """A point on the normalised 100 x 100 pitch."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> Position:
        data = _as_mapping(data, "position")
        return cls(
            x=_as_float(_lookup(data, "x"), "position.x"),
            y=_as_float(_lookup(data, "y"), "position.y"),
        )


# Input key -> canonical attribute name.
_ATTRIBUTE_ALIASES = {"pace": "speed"}


@dataclass(frozen=True)
class AgentAttributes:
    """Numeric attributes on a 0-100 scale.

    Every attribute is optional. Scoring substitutes a documented default for
    missing values instead of probing for arbitrary keys.
    """

    # Physical / technical
    speed: Optional[float] = None
    passing: Optional[float] = None
    tackling: Optional[float] = None
    shooting: Optional[float] = None
    dribbling: Optional[float] = None
    positioning: Optional[float] = None
    stamina: Optional[float] = None
    reflexes: Optional[float] = None
    diving: Optional[float] = None
    handling: Optional[float] = None
    marking: Optional[float] = None
    strength: Optional[float] = None
    finishing: Optional[float] = None

    # Mental
    vision: Optional[float] = None
    decisions: Optional[float] = None
    composure: Optional[float] = None
    concentration: Optional[float] = None
    leadership: Optional[float] = None

    def value_or(self, name: str, default: float) -> float:
        """Return attribute ``name``, or ``default`` when the agent lacks it."""
        value = getattr(self, name)
        return default if value is None else value

    def mental_values(self) -> list[float]:
        """Mental attributes the agent actually carries, in fixed order."""
        values = (getattr(self, name) for name in MENTAL_ATTRIBUTES)
        return [value for value in values if value is not None]

    def to_dict(self) -> dict[str, float]:
        return {name: value for name, value in asdict(self).items() if value is not None}

    @classmethod
    def from_dict(cls, data: Any) -> AgentAttributes:
        data = _as_mapping(data if data is not None else {}, "attributes")
        known = {f.name for f in fields(cls)}
        values: dict[str, float] = {}
        for key, value in data.items():
            name = _ATTRIBUTE_ALIASES.get(key, key)
            if name not in known or value is None:
                continue
            # An explicit canonical key wins over its alias.
            if name != key and name in data:
                continue
            values[name] = _as_float(value, f"attributes.{key}")
        return cls(**values)


@dataclass(frozen=True)
class Availability:
    status: str = AVAILABLE_STATUS
    reason: Optional[str] = None

    @property
    def is_available(self) -> bool:
        return self.status == AVAILABLE_STATUS

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status}
        if self.reason is not None:
            data["reason"] = self.reason
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Availability:
        if data is None:
            return cls()
        if isinstance(data, str):
            return cls(status=data)
        data = _as_mapping(data, "availability")
        reason = _lookup(data, "reason", default=None)
        return cls(
            status=str(_lookup(data, "status", default=AVAILABLE_STATUS)),
            reason=None if reason is None else str(reason),
        )


@dataclass(frozen=True)
class Agent:
    """A candidate player. Immutable input to the engine."""

    id: str
    role_id: str
    position: Position
    name: str = ""
    attributes: AgentAttributes = field(default_factory=AgentAttributes)
    form: str = "Average"
    morale: str = "Okay"
    availability: Availability = field(default_factory=Availability)
    personality_tags: tuple[str, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role_id": self.role_id,
            "position": self.position.to_dict(),
            "attributes": self.attributes.to_dict(),
            "form": self.form,
            "morale": self.morale,
            "availability": self.availability.to_dict(),
            "personality_tags": list(self.personality_tags),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Agent:
        data = _as_mapping(data, "agent")
        tags = _lookup(data, "personality_tags", "personalityTags", "traits", default=())
        return cls(
            id=str(_lookup(data, "id")),
            name=str(_lookup(data, "name", default="")),
            role_id=str(_lookup(data, "role_id", "roleId")),
            position=Position.from_dict(_lookup(data, "position")),
            attributes=AgentAttributes.from_dict(_lookup(data, "attributes", default=None)),
            form=str(_lookup(data, "form", default="Average")),
            morale=str(_lookup(data, "morale", default="Okay")),
            availability=Availability.from_dict(_lookup(data, "availability", default=None)),
            personality_tags=tuple(str(tag) for tag in _as_list(tags, "personality_tags")),
        )


@dataclass(frozen=True)
class Slot:
    """A position in a formation: a role category plus preferred fine-grained roles."""

    id: str
    role: str
    preferred_roles: tuple[str, ...] = ()
    agent_id: Optional[str] = None
    position: Optional[Position] = None

    def with_agent(self, agent_id: Optional[str]) -> Slot:
        return replace(self, agent_id=agent_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "preferred_roles": list(self.preferred_roles),
            "agent_id": self.agent_id,
        }
        if self.position is not None:
            data["position"] = self.position.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Slot:
        data = _as_mapping(data, "slot")
        preferred = _lookup(data, "preferred_roles", "preferredRoles", default=())
        position = _lookup(data, "position", "defaultPosition", default=None)
        agent_id = _lookup(data, "agent_id", "agentId", "player_id", "playerId", default=None)
        return cls(
            id=str(_lookup(data, "id")),
            role=str(_lookup(data, "role")).upper(),
            preferred_roles=tuple(str(role) for role in _as_list(preferred or (), "preferred_roles")),
            agent_id=None if agent_id is None else str(agent_id),
            position=None if position is None else Position.from_dict(position),
        )


@dataclass(frozen=True)
class Formation:
    """A tactical template: an ordered list of slots."""

    id: str
    name: str
    slots: tuple[Slot, ...] = ()

    def with_slots(self, slots) -> Formation:
        return replace(self, slots=tuple(slots))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "slots": [slot.to_dict() for slot in self.slots],
        }

    @classmethod
    def from_dict(cls, data: Any) -> Formation:
        data = _as_mapping(data, "formation")
        slots = _as_list(_lookup(data, "slots"), "formation.slots")
        return cls(
            id=str(_lookup(data, "id")),
            name=str(_lookup(data, "name", default="")),
            slots=tuple(Slot.from_dict(slot) for slot in slots),
        )


@dataclass(frozen=True)
class ScoreRecord:
    """One (agent, slot, score) combination. Internal to an optimization run."""

    agent: Agent
    slot: Slot
    score: float


@dataclass(frozen=True)
class ScoreBreakdown:
    """The five weighted sub-scores behind a suitability score."""

    role_fit: float
    physical_fit: float
    mental_fit: float
    condition: float
    chemistry: float
    total: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class OptimizationConstraints:
    """Optimizer flags. Accepted and carried through, not yet consumed."""

    prioritize_experience: bool = False
    maintain_chemistry: bool = False
    respect_positions: bool = False

    def to_dict(self) -> dict[str, bool]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> OptimizationConstraints:
        if data is None:
            return cls()
        data = _as_mapping(data, "constraints")
        return cls(
            prioritize_experience=bool(
                _lookup(data, "prioritize_experience", "prioritizeExperience", default=False)
            ),
            maintain_chemistry=bool(
                _lookup(data, "maintain_chemistry", "maintainChemistry", default=False)
            ),
            respect_positions=bool(
                _lookup(data, "respect_positions", "respectPositions", default=False)
            ),
        )


def _agents_from(data: Mapping[str, Any]) -> tuple[Agent, ...]:
    agents = _as_list(_lookup(data, "agents", "players"), "agents")
    return tuple(Agent.from_dict(agent) for agent in agents)


@dataclass(frozen=True)
class PositionValidationRequest:
    agent_id: str
    position: Position
    agents: tuple[Agent, ...] = ()
    formation: Optional[Formation] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "agent_id": self.agent_id,
            "position": self.position.to_dict(),
            "formation": None if self.formation is None else self.formation.to_dict(),
            "agents": [agent.to_dict() for agent in self.agents],
        }

    @classmethod
    def from_dict(cls, data: Any) -> PositionValidationRequest:
        data = _as_mapping(data, "payload")
        formation = _lookup(data, "formation", default=None)
        return cls(
            agent_id=str(_lookup(data, "agent_id", "agentId", "player_id", "playerId")),
            position=Position.from_dict(_lookup(data, "position")),
            agents=_agents_from(data),
            formation=None if formation is None else Formation.from_dict(formation),
        )


@dataclass(frozen=True)
class FormationOptimizationRequest:
    agents: tuple[Agent, ...]
    formation: Formation
    constraints: OptimizationConstraints = field(default_factory=OptimizationConstraints)

    def to_dict(self) -> dict[str, Any]:
        return {
            "agents": [agent.to_dict() for agent in self.agents],
            "formation": self.formation.to_dict(),
            "constraints": self.constraints.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> FormationOptimizationRequest:
        data = _as_mapping(data, "payload")
        return cls(
            agents=_agents_from(data),
            formation=Formation.from_dict(_lookup(data, "formation")),
            constraints=OptimizationConstraints.from_dict(
                _lookup(data, "constraints", default=None)
            ),
        )


@dataclass(frozen=True)
class PositionValidationResult:
    is_valid: bool
    conflicts: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()
    optimized_position: Optional[Position] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "is_valid": self.is_valid,
            "conflicts": list(self.conflicts),
            "suggestions": list(self.suggestions),
        }
        if self.optimized_position is not None:
            data["optimized_position"] = self.optimized_position.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Any) -> PositionValidationResult:
        data = _as_mapping(data, "result")
        optimized = _lookup(data, "optimized_position", "optimizedPosition", default=None)
        return cls(
            is_valid=bool(_lookup(data, "is_valid", "isValid")),
            conflicts=tuple(_as_list(_lookup(data, "conflicts", default=()), "conflicts")),
            suggestions=tuple(_as_list(_lookup(data, "suggestions", default=()), "suggestions")),
            optimized_position=None if optimized is None else Position.from_dict(optimized),
        )


@dataclass(frozen=True)
class AssignmentResult:
    optimized_formation: Formation
    score: float
    improvements: tuple[str, ...] = ()
    # Reserved for alternative formations; always empty today.
    alternatives: tuple[Formation, ...] = ()

    @property
    def assignments(self) -> dict[str, str]:
        """slot id -> agent id for every filled slot."""
        return {
            slot.id: slot.agent_id
            for slot in self.optimized_formation.slots
            if slot.agent_id is not None
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "optimized_formation": self.optimized_formation.to_dict(),
            "score": self.score,
            "improvements": list(self.improvements),
            "alternatives": [formation.to_dict() for formation in self.alternatives],
        }

    @classmethod
    def from_dict(cls, data: Any) -> AssignmentResult:
        data = _as_mapping(data, "result")
        alternatives = _as_list(_lookup(data, "alternatives", default=()), "alternatives")
        return cls(
            optimized_formation=Formation.from_dict(
                _lookup(data, "optimized_formation", "optimizedFormation")
            ),
            score=_as_float(_lookup(data, "score"), "score"),
            improvements=tuple(
                _as_list(_lookup(data, "improvements", default=()), "improvements")
            ),
            alternatives=tuple(Formation.from_dict(item) for item in alternatives),
        )
