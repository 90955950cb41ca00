"""Client for the downstream agent API.

The agent API owns chat history and agent management; this service only
forwards authenticated calls to it with its own static key.
"""

import logging
from typing import Any

import httpx

from jarvis_web.core.config import settings
from jarvis_web.core.errors import UpstreamError

logger = logging.getLogger(__name__)

_AGENT_API_TIMEOUT = 15.0


async def fetch_agents() -> tuple[int, Any]:
    """GET /agents on the agent API.

    Returns:
        (status_code, json_body) exactly as the upstream sent them.

    Raises:
        UpstreamError: Transport failure or a non-JSON body.
    """
    url = f"{settings.agent_api_url.rstrip('/')}/agents"
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                url,
                headers={
                    "Authorization": f"Bearer {settings.agent_api_key.get_secret_value()}",
                },
                timeout=_AGENT_API_TIMEOUT,
            )
    except httpx.HTTPError as exc:
        logger.warning("Agent API unreachable: %s", type(exc).__name__)
        raise UpstreamError() from exc

    try:
        return resp.status_code, resp.json()
    except ValueError as exc:
        logger.warning("Agent API returned non-JSON body: status=%d", resp.status_code)
        raise UpstreamError() from exc
