"""GitHub gist client used as the remote report store."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol
from urllib.parse import urlsplit

import httpx

from .config import Settings
from .errors import FetchError
from .models import ReportPayload

logger = logging.getLogger(__name__)


class ReportStore(Protocol):
    async def fetch_by_id(self, gist_id: str) -> ReportPayload: ...

    async def create(self, payload: ReportPayload) -> str: ...


def gist_filename(payload: ReportPayload, now: Optional[datetime] = None) -> str:
    """Name the gist file after the audited host and fetch time."""
    url = payload.get("finalUrl") or payload.get("requestedUrl") or payload.get("url") or ""
    host = urlsplit(str(url)).hostname or "report"
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d_%H-%M-%S")
    return f"lighthouse-{host}-{stamp}.json"


def _pick_json_file(files: Dict[str, Any]) -> Dict[str, Any]:
    if not files:
        raise FetchError("Gist has no files")
    for name, info in files.items():
        if name.endswith(".json"):
            return info
    return next(iter(files.values()))


class GistClient:
    """Fetch and create report gists through the GitHub REST API."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_url = settings.github_api_url.rstrip("/")
        self.token = settings.github_token
        self.timeout = settings.fetch_timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers(), timeout=self.timeout, transport=self._transport
        )

    async def fetch_by_id(self, gist_id: str) -> ReportPayload:
        try:
            async with self._client() as client:
                response = await client.get(f"{self.api_url}/gists/{gist_id}")
                response.raise_for_status()
                info = _pick_json_file(response.json().get("files") or {})
                content = info.get("content")
                if info.get("truncated") or content is None:
                    raw = await client.get(info["raw_url"])
                    raw.raise_for_status()
                    content = raw.text
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"GitHub API error fetching gist {gist_id}: {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, AttributeError, KeyError, ValueError) as exc:
            raise FetchError(f"Could not fetch gist {gist_id}: {exc}") from exc

        try:
            return json.loads(content)
        except ValueError as exc:
            raise FetchError(f"Gist {gist_id} does not contain valid JSON") from exc

    async def create(self, payload: ReportPayload) -> str:
        if not self.token:
            raise FetchError("A GitHub token is required to save a gist.")
        body = {
            "description": "Lighthouse json report",
            "public": False,
            "files": {gist_filename(payload): {"content": json.dumps(payload)}},
        }
        try:
            async with self._client() as client:
                response = await client.post(f"{self.api_url}/gists", json=body)
                response.raise_for_status()
                gist_id = response.json()["id"]
        except httpx.HTTPStatusError as exc:
            raise FetchError(
                f"GitHub API error creating gist: {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            raise FetchError(f"Could not create gist: {exc}") from exc
        logger.info("Created gist %s", gist_id)
        return gist_id
