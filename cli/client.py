"""API client for the risk chat endpoint."""

import logging
import uuid

import httpx

from .config import CLIConfig

logger = logging.getLogger(__name__)


class ChatAPIClient:
    """Client for the ``/api/v1/chat`` endpoint."""

    def __init__(self, config: CLIConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self.client = client or httpx.AsyncClient(timeout=120.0)

    async def chat(self, message: str, session_id: str | None = None) -> dict:
        """Send one message and return the decoded response body.

        Transport and HTTP failures are returned as a response-shaped
        dict with ``success: False`` so the caller handles one shape.
        """
        url = self.config.chat_url
        payload: dict = {"message": message}
        if session_id:
            payload["sessionId"] = session_id
        payload.update(self.config.scope_fields())

        logger.debug("Making request to %s with payload: %s", url, payload)

        try:
            response = await self.client.post(url, json=payload)
        except httpx.TimeoutException:
            return _error(session_id, "Request timed out.")
        except httpx.ConnectError as e:
            return _error(session_id, f"Connection error: {e}")

        logger.debug("Response status: %s", response.status_code)
        if response.status_code != 200:
            return _error(session_id, f"HTTP {response.status_code}: {response.text}")
        return response.json()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def _error(session_id: str | None, message: str) -> dict:
    return {
        "sessionId": session_id or str(uuid.uuid4()),
        "success": False,
        "error": message,
        "suggestions": None,
    }
