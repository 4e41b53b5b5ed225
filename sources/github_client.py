"""Read-only GitHub REST client for pull request metadata."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from config import GitHubSettings, get_github_settings
from core import CommitInfo, DiscussionComment, FileDiff
from utils.exceptions import SourceFetchError

logger = logging.getLogger(__name__)

USER_AGENT = "PRReel/1.0"
MAX_PAGES = 10


def _github_headers(token: Optional[str]) -> Dict[str, str]:
    headers: Dict[str, str] = {
        "Accept": "application/vnd.github+json",
        "User-Agent": USER_AGENT,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


class GitHubClient:
    """
    Thin async wrapper over the pulls/issues endpoints.

    A transport can be injected for tests; otherwise each call opens a short
    lived ``httpx.AsyncClient``. Every HTTP or decode failure surfaces as
    ``SourceFetchError``.
    """

    def __init__(
        self,
        *,
        settings: Optional[GitHubSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_github_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.api_base_url.rstrip("/"),
            headers=_github_headers(self.settings.token),
            timeout=httpx.Timeout(float(self.settings.timeout_s)),
            follow_redirects=True,
            transport=self._transport,
        )

    async def _get_json(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            async with self._client() as client:
                response = await client.get(path, params=params)
        except httpx.TimeoutException as exc:
            raise SourceFetchError(f"GitHub request timed out: {path}") from exc
        except httpx.RequestError as exc:
            raise SourceFetchError(f"GitHub request failed: {path}: {exc}") from exc

        if response.status_code == 404:
            raise SourceFetchError(f"Not found on GitHub: {path}", status_code=404)
        if response.status_code in {401, 403}:
            raise SourceFetchError(
                f"GitHub access denied ({response.status_code}): {path}",
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise SourceFetchError(
                f"GitHub API error {response.status_code}: {path}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise SourceFetchError(f"GitHub returned invalid JSON: {path}") from exc

    async def _get_paginated(self, path: str) -> List[Dict[str, Any]]:
        per_page = max(1, int(self.settings.per_page))
        items: List[Dict[str, Any]] = []
        for page in range(1, MAX_PAGES + 1):
            batch = await self._get_json(path, params={"per_page": per_page, "page": page})
            if not isinstance(batch, list):
                raise SourceFetchError(f"Unexpected GitHub payload for {path}")
            items.extend(batch)
            if len(batch) < per_page:
                break
        return items

    async def get_pull_request(self, owner: str, repo: str, number: int) -> Dict[str, Any]:
        payload = await self._get_json(f"/repos/{owner}/{repo}/pulls/{number}")
        if not isinstance(payload, dict):
            raise SourceFetchError(f"Unexpected GitHub payload for PR #{number}")
        return payload

    async def list_files(self, owner: str, repo: str, number: int) -> List[FileDiff]:
        rows = await self._get_paginated(f"/repos/{owner}/{repo}/pulls/{number}/files")
        return [
            FileDiff(
                filename=str(row.get("filename") or ""),
                status=str(row.get("status") or "modified"),
                additions=int(row.get("additions") or 0),
                deletions=int(row.get("deletions") or 0),
                patch=row.get("patch"),
            )
            for row in rows
        ]

    async def list_commits(self, owner: str, repo: str, number: int) -> List[CommitInfo]:
        rows = await self._get_paginated(f"/repos/{owner}/{repo}/pulls/{number}/commits")
        commits: List[CommitInfo] = []
        for row in rows:
            commit = row.get("commit") or {}
            author = (commit.get("author") or {}).get("name") or "Unknown"
            commits.append(
                CommitInfo(
                    sha=str(row.get("sha") or "")[:7],
                    message=str(commit.get("message") or "").split("\n", 1)[0].strip(),
                    author=str(author),
                )
            )
        return commits

    async def list_comments(self, owner: str, repo: str, number: int) -> List[DiscussionComment]:
        """Issue-thread comments, where deployment bots post their previews."""
        rows = await self._get_paginated(f"/repos/{owner}/{repo}/issues/{number}/comments")
        return [
            DiscussionComment(
                id=int(row.get("id") or 0),
                body=str(row.get("body") or ""),
                author=str((row.get("user") or {}).get("login") or ""),
                created_at=row.get("created_at"),
            )
            for row in rows
        ]
