"""Minimal async GitHub REST client used by the webhook handlers."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import httpx

from .config import DEFAULT_GITHUB_API_URL
from .errors import ExternalServiceError

logger = logging.getLogger(__name__)

_REQUEST_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
_PAGE_SIZE = 100
_MAX_PAGES = 30


class GitHubClient:
    """Wrap the handful of REST calls the reviewer needs.

    Every transport or HTTP error surfaces as ``ExternalServiceError``.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = DEFAULT_GITHUB_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "reviewkit",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=_REQUEST_TIMEOUT,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"GitHub {method} {url} failed with {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"GitHub {method} {url} failed: {e}") from e
        return response.json()

    async def get_pull_request_files(self, repo: str, number: int) -> List[Dict[str, Any]]:
        """Return every changed file of a pull request, following pagination."""

        files: List[Dict[str, Any]] = []
        for page in range(1, _MAX_PAGES + 1):
            batch = await self._request(
                "GET",
                f"/repos/{repo}/pulls/{number}/files",
                params={"per_page": _PAGE_SIZE, "page": page},
            )
            files.extend(batch)
            if len(batch) < _PAGE_SIZE:
                break
        logger.info("Fetched %d changed files for %s#%s", len(files), repo, number)
        return files

    async def get_file_content(self, repo: str, path: str, ref: str) -> str:
        data = await self._request(
            "GET",
            f"/repos/{repo}/contents/{quote(path)}",
            params={"ref": ref},
        )
        if not isinstance(data, dict) or data.get("type", "file") != "file":
            raise ExternalServiceError(f"{path}@{ref} in {repo} is not a file")
        try:
            return base64.b64decode(data.get("content", "")).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise ExternalServiceError(f"{path}@{ref} in {repo} is not UTF-8 text") from e

    async def create_issue_comment(self, repo: str, number: int, body: str) -> Dict[str, Any]:
        return await self._request("POST", f"/repos/{repo}/issues/{number}/comments", json={"body": body})

    async def create_issue(
        self,
        repo: str,
        title: str,
        body: str,
        labels: Sequence[str] = (),
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = list(labels)
        return await self._request("POST", f"/repos/{repo}/issues", json=payload)
