"""Bamboo REST API client used after a dataset import."""

from typing import Optional

import httpx

RUNNING = "RUNNING"
AUTHENTICATION_FAILED = "AUTHENTICATED_FAILED"


class BambooClient:
    """Client for the Bamboo server status and resume endpoints."""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = (username, password) if username else None
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport, timeout=self.timeout)

    def get_status(self) -> str:
        """Get the raw server status document."""
        url = f"{self.base_url}/rest/api/latest/status"

        with self._client() as client:
            response = client.get(url, headers={"Accept": "application/json"})
            return response.text

    def resume(self) -> str:
        """Resume a paused server and return the raw response body."""
        url = f"{self.base_url}/rest/api/latest/server/resume"

        with self._client() as client:
            response = client.post(
                url,
                auth=self.auth,
                headers={"Accept": "application/json"},
            )
            if response.status_code == 401:
                return AUTHENTICATION_FAILED
            return response.text
