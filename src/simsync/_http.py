"""HTTP transport for the REST side of the dashboard backend."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from simsync._constants import JSON_CONTENT_TYPE, USER_AGENT
from simsync.config import SimSyncConfig
from simsync.exceptions import HttpTransportError

_logger = logging.getLogger(__name__)


class JsonTransport(Protocol):
    """Structural interface used by polling and blockage submission."""

    async def get_json(self, endpoint: str) -> Any: ...

    async def post_json(self, endpoint: str, payload: Any) -> Any: ...


class HttpTransport:
    """JSON-over-HTTP transport rooted at ``config.api_base_url``."""

    def __init__(self, config: SimSyncConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _url(self, endpoint: str) -> str:
        return f"{self._config.api_base_url.rstrip('/')}/{endpoint.lstrip('/')}"

    async def get_json(self, endpoint: str) -> Any:
        return await self._request("GET", endpoint)

    async def post_json(self, endpoint: str, payload: Any) -> Any:
        return await self._request("POST", endpoint, body=json.dumps(payload, separators=(",", ":")))

    async def _request(self, method: str, endpoint: str, *, body: str | None = None) -> Any:
        headers: dict[str, str] = {
            "accept": JSON_CONTENT_TYPE,
            "user-agent": USER_AGENT,
        }
        if body is not None:
            headers["content-type"] = JSON_CONTENT_TYPE

        url = self._url(endpoint)
        _logger.debug("%s %s", method, url)

        try:
            async with self._http.request(method, url, data=body, headers=headers) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise HttpTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
        except HttpTransportError:
            raise
        except aiohttp.ClientError as exc:
            raise HttpTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise HttpTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc
