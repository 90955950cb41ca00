"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from jarvis_web.api.v1 import agents, auth

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

router.include_router(auth.router, prefix="/auth", tags=["auth"])

# =============================================================================
# Agent API proxy
# =============================================================================

router.include_router(agents.router, prefix="/agents", tags=["agents"])
