"""Service health endpoint."""

from typing import TYPE_CHECKING

from fastapi import APIRouter

from formation_api.models import HealthResponse

if TYPE_CHECKING:
    from formation_api.app_factory import AppContext


def setup_router(context: "AppContext") -> APIRouter:
    router = APIRouter(tags=["health"])

    @router.get("/health", response_model=HealthResponse)
    async def health():
        host = context.compute_host
        if host is None:
            return HealthResponse(status="starting")
        # A host whose worker died stays "failed" until the app restarts
        status = "ok" if host.healthy else "failed"
        return HealthResponse(status=status, compute_mode=host.mode, pending=host.pending_count)

    return router
