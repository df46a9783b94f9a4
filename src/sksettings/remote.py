"""SKSettings Remote — load and save a skill's settings over HTTP.

Settings API protocol (JSON):
    GET  {base}/skills/{skill_id}/settings   -> {skill?, settings, constants}
    PUT  {base}/skills/{skill_id}/settings   <- {skill?, settings, constants}

The blocking transport runs in a worker thread so the session can await it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, Optional
from urllib.parse import quote

from . import DEFAULT_SETTINGS_URL
from .models import Schema

logger = logging.getLogger("sksettings.remote")


def _default_settings_url() -> str:
    """Resolve the settings API base URL, respecting SKSETTINGS_URL.

    Returns:
        str: The base URL.
    """
    return os.environ.get("SKSETTINGS_URL") or DEFAULT_SETTINGS_URL


class RemoteSettings:
    """Client for a skill's settings endpoint.

    Args:
        skill_id: Skill identifier used in the endpoint path.
        base_url: Base URL for the settings API (default: SKSETTINGS_URL).
        token: Optional bearer token (default: SKSETTINGS_TOKEN).
        timeout: Socket timeout in seconds.
    """

    def __init__(
        self,
        skill_id: str,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30,
    ) -> None:
        self.skill_id = skill_id
        self.base_url = (base_url or _default_settings_url()).rstrip("/")
        self.token = token if token is not None else os.environ.get("SKSETTINGS_TOKEN")
        self.timeout = timeout

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/skills/{quote(self.skill_id, safe='')}/settings"

    def _headers(self, with_body: bool = False) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if with_body:
            headers["Content-Type"] = "application/json"
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _http_get(self, url: str) -> Any:
        """Perform an HTTP GET request and return parsed JSON.

        Args:
            url: Full URL to fetch.

        Returns:
            Parsed JSON response.

        Raises:
            ConnectionError: If the request fails.
            ValueError: If the response is not JSON.
        """
        import http.client
        import urllib.error
        import urllib.request

        try:
            req = urllib.request.Request(url, headers=self._headers())
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode()
        except (urllib.error.URLError, http.client.HTTPException, UnicodeDecodeError) as exc:
            raise ConnectionError(f"Failed to fetch {url}: {exc}") from exc

        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON from {url}: {exc}") from exc

    def _http_put(self, url: str, payload: dict) -> Any:
        """Perform an HTTP PUT with a JSON body.

        Args:
            url: Full URL to send to.
            payload: JSON-serializable body.

        Returns:
            Parsed JSON response, or None for an empty body.

        Raises:
            ConnectionError: If the request fails.
        """
        import http.client
        import urllib.error
        import urllib.request

        data = json.dumps(payload).encode()
        try:
            req = urllib.request.Request(
                url, data=data, headers=self._headers(with_body=True), method="PUT"
            )
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode()
        except (urllib.error.URLError, http.client.HTTPException, UnicodeDecodeError) as exc:
            raise ConnectionError(f"Failed to save to {url}: {exc}") from exc

        if not body.strip():
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            logger.warning("Non-JSON response from %s ignored", url)
            return None

    def fetch(self) -> Schema:
        """Fetch and parse the skill's schema.

        Raises:
            ConnectionError: If the server is unreachable.
            ValueError: If the payload is not a valid schema.
        """
        data = self._http_get(self.endpoint)
        schema = Schema.from_wire(data)
        logger.info("Fetched %s: %d settings, %d constants",
                    self.skill_id, len(schema.settings), len(schema.constants))
        return schema

    def push(self, schema: Schema) -> Any:
        """Persist a schema to the server.

        Raises:
            ConnectionError: If the upload fails.
        """
        result = self._http_put(self.endpoint, schema.to_wire())
        logger.info("Pushed %s: %d settings", self.skill_id, len(schema.settings))
        return result

    async def load_schema(self) -> Schema:
        """Session loader: fetch in a worker thread."""
        return await asyncio.to_thread(self.fetch)

    async def save_schema(self, schema: Schema) -> Any:
        """Session saver: push in a worker thread."""
        return await asyncio.to_thread(self.push, schema)
