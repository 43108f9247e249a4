"""Formation assignment and position validation endpoints.

Heavy work (validation and optimization) goes through the compute host so
the event loop never runs it. Single-pair scoring and formation analysis
are cheap and pure, so they are answered in-process.
"""

import asyncio
import logging
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, HTTPException

from formation.analysis import analyze_formation
from formation.exceptions import (
    ComputeError,
    ComputeRequestError,
    ComputeTerminatedError,
    ComputeTimeoutError,
    HostFatalError,
    PayloadError,
)
from formation.models import (
    Agent,
    Formation,
    FormationOptimizationRequest,
    PositionValidationRequest,
    Slot,
)
from formation.scoring import score_breakdown
from formation_api.models import (
    AnalyzeFormationRequest,
    FormationAnalysisResponse,
    OptimizeFormationRequest,
    OptimizeFormationResponse,
    ScoreBreakdownResponse,
    ScoreRequest,
    ValidatePositionRequest,
    ValidatePositionResponse,
)

if TYPE_CHECKING:
    from formation_api.app_factory import AppContext

logger = logging.getLogger(__name__)


async def _await_compute(future: Future) -> Any:
    """Await a compute-host future, mapping engine failures to HTTP errors."""
    try:
        return await asyncio.wrap_future(future)
    except ComputeTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))
    except ComputeRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (HostFatalError, ComputeTerminatedError) as e:
        logger.error(f"Compute host unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    except ComputeError as e:
        logger.error(f"Compute request failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


def create_formations_router(context: "AppContext") -> APIRouter:
    """Create the formations API router.

    Args:
        context: Application context owning the compute host

    Returns:
        FastAPI router with formation endpoints
    """
    router = APIRouter(prefix="/api/formations", tags=["formations"])

    @router.post(
        "/validate-position",
        response_model=ValidatePositionResponse,
        response_model_exclude_none=True,
    )
    async def validate_position(body: ValidatePositionRequest):
        """Check a proposed position for overlaps and suggest a free spot."""
        try:
            request = PositionValidationRequest.from_dict(body.model_dump(exclude_none=True))
        except PayloadError as e:
            raise HTTPException(status_code=400, detail=str(e))

        host = context.require_compute_host()
        result = await _await_compute(host.validate_position(request))
        return result.to_dict()

    @router.post("/optimize", response_model=OptimizeFormationResponse)
    async def optimize_formation(body: OptimizeFormationRequest):
        """Greedy agent-to-slot assignment."""
        try:
            request = FormationOptimizationRequest.from_dict(body.model_dump(exclude_none=True))
        except PayloadError as e:
            raise HTTPException(status_code=400, detail=str(e))

        host = context.require_compute_host()
        result = await _await_compute(host.optimize_formation(request))
        return result.to_dict()

    @router.post("/optimize/optimal", response_model=OptimizeFormationResponse)
    async def optimize_formation_optimal(body: OptimizeFormationRequest):
        """Score-maximising agent-to-slot assignment (Hungarian algorithm)."""
        try:
            request = FormationOptimizationRequest.from_dict(body.model_dump(exclude_none=True))
        except PayloadError as e:
            raise HTTPException(status_code=400, detail=str(e))

        host = context.require_compute_host()
        result = await _await_compute(host.optimize_formation_optimal(request))
        return result.to_dict()

    @router.post("/score", response_model=ScoreBreakdownResponse)
    async def score(body: ScoreRequest):
        """Sub-scores and total suitability for one agent in one slot."""
        try:
            agent = Agent.from_dict(body.agent.model_dump(exclude_none=True))
            slot = Slot.from_dict(body.slot.model_dump(exclude_none=True))
        except PayloadError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return score_breakdown(agent, slot).to_dict()

    @router.post("/analyze", response_model=FormationAnalysisResponse)
    async def analyze(body: AnalyzeFormationRequest):
        """Fitness bands, recommendations and category metrics for a filled formation."""
        try:
            formation = Formation.from_dict(body.formation.model_dump(exclude_none=True))
            agents = [Agent.from_dict(agent.model_dump(exclude_none=True)) for agent in body.agents]
        except PayloadError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return analyze_formation(formation, agents).to_dict()

    return router
