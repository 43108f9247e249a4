"""Request and response bodies for the HTTP API."""

from typing import List, Optional

from pydantic import BaseModel, Field


class PositionModel(BaseModel):
    x: float
    y: float


class AttributesModel(BaseModel):
    """Agent attributes on a 0-100 scale. Missing values are scored as 70."""

    speed: Optional[float] = Field(default=None, ge=0, le=100)
    pace: Optional[float] = Field(default=None, ge=0, le=100)  # alias of speed
    passing: Optional[float] = Field(default=None, ge=0, le=100)
    tackling: Optional[float] = Field(default=None, ge=0, le=100)
    shooting: Optional[float] = Field(default=None, ge=0, le=100)
    dribbling: Optional[float] = Field(default=None, ge=0, le=100)
    positioning: Optional[float] = Field(default=None, ge=0, le=100)
    stamina: Optional[float] = Field(default=None, ge=0, le=100)
    reflexes: Optional[float] = Field(default=None, ge=0, le=100)
    diving: Optional[float] = Field(default=None, ge=0, le=100)
    handling: Optional[float] = Field(default=None, ge=0, le=100)
    marking: Optional[float] = Field(default=None, ge=0, le=100)
    strength: Optional[float] = Field(default=None, ge=0, le=100)
    finishing: Optional[float] = Field(default=None, ge=0, le=100)

    # Mental
    vision: Optional[float] = Field(default=None, ge=0, le=100)
    decisions: Optional[float] = Field(default=None, ge=0, le=100)
    composure: Optional[float] = Field(default=None, ge=0, le=100)
    concentration: Optional[float] = Field(default=None, ge=0, le=100)
    leadership: Optional[float] = Field(default=None, ge=0, le=100)


class AvailabilityModel(BaseModel):
    status: str = "Available"
    reason: Optional[str] = None


class AgentModel(BaseModel):
    """A candidate player."""

    id: str
    name: str = ""
    role_id: str
    position: PositionModel
    attributes: AttributesModel = Field(default_factory=AttributesModel)
    form: str = "Average"  # Excellent, Good, Average, Poor, Terrible
    morale: str = "Okay"  # Excellent, Good, Okay, Poor, Terrible
    availability: AvailabilityModel = Field(default_factory=AvailabilityModel)
    personality_tags: List[str] = Field(default_factory=list)


class SlotModel(BaseModel):
    id: str
    role: str  # GK, DF, MF, FW
    preferred_roles: List[str] = Field(default_factory=list)
    agent_id: Optional[str] = None
    position: Optional[PositionModel] = None


class FormationModel(BaseModel):
    id: str
    name: str = ""
    slots: List[SlotModel]


class ConstraintsModel(BaseModel):
    """Optimizer flags. Accepted for forward compatibility; not consumed yet."""

    prioritize_experience: bool = False
    maintain_chemistry: bool = False
    respect_positions: bool = False


class ValidatePositionRequest(BaseModel):
    agent_id: str
    position: PositionModel
    formation: Optional[FormationModel] = None
    agents: List[AgentModel]


class OptimizeFormationRequest(BaseModel):
    agents: List[AgentModel]
    formation: FormationModel
    constraints: ConstraintsModel = Field(default_factory=ConstraintsModel)


class ScoreRequest(BaseModel):
    agent: AgentModel
    slot: SlotModel


class ValidatePositionResponse(BaseModel):
    is_valid: bool
    optimized_position: Optional[PositionModel] = None
    conflicts: List[str]
    suggestions: List[str]


class OptimizeFormationResponse(BaseModel):
    optimized_formation: FormationModel
    score: float
    improvements: List[str]
    alternatives: List[FormationModel] = Field(default_factory=list)


class ScoreBreakdownResponse(BaseModel):
    role_fit: float
    physical_fit: float
    mental_fit: float
    condition: float
    chemistry: float
    total: float


class HealthResponse(BaseModel):
    status: str
    compute_mode: Optional[str] = None
    pending: int = 0


class AnalyzeFormationRequest(BaseModel):
    """A formation whose slots already carry ``agent_id`` values."""

    agents: List[AgentModel]
    formation: FormationModel


class SlotAnalysisModel(BaseModel):
    slot_id: str
    role: str
    agent_id: str
    agent_name: str
    score: float
    fitness: str  # excellent, good, average, poor
    chemistry: float
    familiarity: float


class RecommendationModel(BaseModel):
    slot_id: str
    issue: str
    suggestion: str
    priority: str  # high, medium, low
    score: Optional[float] = None


class FormationMetricsModel(BaseModel):
    goalkeeping: float
    defensive_strength: float
    midfield_control: float
    attacking_threat: float
    overall_balance: float
    chemistry_rating: float


class FormationAnalysisResponse(BaseModel):
    total_score: float
    average_score: int
    positions: List[SlotAnalysisModel]
    recommendations: List[RecommendationModel]
    metrics: FormationMetricsModel
