"""Tests for the agent API client and the /agents proxy endpoint."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pydantic import SecretStr

from jarvis_web.core.agent_client import fetch_agents
from jarvis_web.core.config import settings
from jarvis_web.core.errors import UpstreamError
from tests.conftest import TEST_SERVICE_KEY

_AGENTS_URL = "http://agents.test/agents"


def _response(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request("GET", _AGENTS_URL), **kwargs)


@pytest.fixture(autouse=True)
def agent_settings():
    original_url, original_key = settings.agent_api_url, settings.agent_api_key
    settings.agent_api_url = "http://agents.test/"
    settings.agent_api_key = SecretStr("agent-key")
    yield
    settings.agent_api_url, settings.agent_api_key = original_url, original_key


class TestFetchAgents:
    """Tests for fetch_agents."""

    async def test_returns_upstream_status_and_body(self):
        """Status and JSON body are passed through unchanged."""
        get = AsyncMock(return_value=_response(200, json=[{"id": "main"}]))
        with patch.object(httpx.AsyncClient, "get", get):
            assert await fetch_agents() == (200, [{"id": "main"}])

        args, kwargs = get.call_args
        assert args[0] == _AGENTS_URL
        assert kwargs["headers"]["Authorization"] == "Bearer agent-key"

    async def test_passes_through_upstream_errors(self):
        """Non-2xx upstream replies are relayed, not raised."""
        get = AsyncMock(return_value=_response(503, json={"error": "down"}))
        with patch.object(httpx.AsyncClient, "get", get):
            assert await fetch_agents() == (503, {"error": "down"})

    async def test_transport_error_raises_upstream_error(self):
        """Connection failures become UpstreamError."""
        get = AsyncMock(side_effect=httpx.ConnectError("refused"))
        with patch.object(httpx.AsyncClient, "get", get), pytest.raises(UpstreamError):
            await fetch_agents()

    async def test_non_json_body_raises_upstream_error(self):
        """A body that is not JSON becomes UpstreamError."""
        get = AsyncMock(return_value=_response(200, content=b"<html>"))
        with patch.object(httpx.AsyncClient, "get", get), pytest.raises(UpstreamError):
            await fetch_agents()


class TestAgentsEndpoint:
    """Tests for GET /api/v1/agents."""

    async def test_requires_session(self, client):
        """Unauthenticated requests get 401 before any upstream call."""
        with patch(
            "jarvis_web.api.v1.agents.fetch_agents", new_callable=AsyncMock
        ) as fetch:
            response = await client.get("/api/v1/agents")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"
        fetch.assert_not_called()

    async def test_proxies_with_service_key(self, client):
        """An authenticated request returns the upstream list."""
        with patch(
            "jarvis_web.api.v1.agents.fetch_agents",
            new_callable=AsyncMock,
            return_value=(200, [{"id": "main"}]),
        ):
            response = await client.get(
                "/api/v1/agents",
                headers={"Authorization": f"Bearer {TEST_SERVICE_KEY}"},
            )

        assert response.status_code == 200
        assert response.json() == [{"id": "main"}]

    async def test_upstream_failure_is_502(self, client):
        """UpstreamError renders as a 502 envelope."""
        with patch(
            "jarvis_web.api.v1.agents.fetch_agents",
            new_callable=AsyncMock,
            side_effect=UpstreamError(),
        ):
            response = await client.get(
                "/api/v1/agents",
                headers={"Authorization": f"Bearer {TEST_SERVICE_KEY}"},
            )

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "UPSTREAM_ERROR"
