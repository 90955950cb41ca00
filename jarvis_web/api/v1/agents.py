"""Agent list proxy.

GET /agents: forwards to the agent API once the session guard passes.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from jarvis_web.api.deps import CurrentPrincipal
from jarvis_web.core.agent_client import fetch_agents

router = APIRouter()


@router.get("")
async def list_agents(principal: CurrentPrincipal) -> JSONResponse:  # noqa: ARG001
    """Return the upstream agent list with the upstream status."""
    status_code, body = await fetch_agents()
    return JSONResponse(status_code=status_code, content=body)
