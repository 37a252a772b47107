"""GitHub data fetching via REST API."""

from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import httpx

from repo_onboarding.errors import RemoteApiError, RemoteApiKind
from repo_onboarding.logging import get_logger
from repo_onboarding.models import (
    Commit,
    EntryKind,
    Issue,
    PullRequest,
    RepositoryMetadata,
    TreeEntry,
)

logger = get_logger("fetcher")

ACTIVITY_PAGE_SIZE = 30


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GitHubFetcher:
    """Fetches repository metadata, trees, file contents and activity."""

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
    ) -> None:
        self.token = token
        self.base_url = base_url
        self._client: Optional[httpx.AsyncClient] = None
        self._saml_fallback = False  # True if we dropped auth due to SAML

    # ── HTTP plumbing ─────────────────────────────────────────────────────

    @property
    def headers(self) -> dict[str, str]:
        h: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token and not self._saml_fallback:
            h["Authorization"] = f"Bearer {self.token}"
        return h

    async def _client_instance(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self.headers,
                timeout=30.0,
            )
        return self._client

    async def _rebuild_client_without_auth(self) -> None:
        """Drop auth and rebuild client for SAML-protected public repos."""
        if self._client:
            await self._client.aclose()
            self._client = None
        self._saml_fallback = True
        await self._client_instance()

    async def _get(self, path: str, **kwargs: Any) -> httpx.Response:
        """GET with automatic SAML fallback and rate-limit awareness."""
        client = await self._client_instance()
        resp = await client.get(path, **kwargs)
        if resp.status_code == 403 and "SAML" in resp.text:
            logger.info("SAML-protected org, retrying %s without auth", path)
            await self._rebuild_client_without_auth()
            client = await self._client_instance()
            resp = await client.get(path, **kwargs)
        if resp.status_code in (403, 429) and "rate limit" in resp.text.lower():
            remaining = resp.headers.get("x-ratelimit-remaining", "0")
            raise httpx.HTTPStatusError(
                f"GitHub API rate limit exceeded (remaining: {remaining}).",
                request=resp.request,
                response=resp,
            )
        return resp

    @property
    def is_unauthenticated(self) -> bool:
        """True if we fell back to no-auth (SAML) mode."""
        return self._saml_fallback

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Repo metadata ─────────────────────────────────────────────────────

    async def fetch_repo_info(self, owner: str, repo: str) -> RepositoryMetadata:
        """Fetch repository metadata. Failures surface as RemoteApiError."""
        try:
            resp = await self._get(f"/repos/{owner}/{repo}")
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RemoteApiError.from_status(
                owner, repo, e.response.status_code, e.response.text
            ) from e
        except httpx.HTTPError as e:
            raise RemoteApiError(
                RemoteApiKind.unknown,
                f"Could not connect to GitHub: {e}",
            ) from e

        data = resp.json()
        license_info = data.get("license") or {}
        return RepositoryMetadata(
            full_name=data.get("full_name") or f"{owner}/{repo}",
            description=data.get("description"),
            language=data.get("language"),
            html_url=data.get("html_url") or "",
            default_branch=data.get("default_branch") or "main",
            stargazers_count=data.get("stargazers_count") or 0,
            forks_count=data.get("forks_count") or 0,
            open_issues_count=data.get("open_issues_count") or 0,
            topics=tuple(data.get("topics") or ()),
            license_name=license_info.get("spdx_id") or license_info.get("name"),
            has_wiki=bool(data.get("has_wiki")),
            created_at=_parse_date(data.get("created_at")),
            updated_at=_parse_date(data.get("updated_at")),
            pushed_at=_parse_date(data.get("pushed_at")),
        )

    # ── File tree & contents ──────────────────────────────────────────────

    async def fetch_tree(
        self, owner: str, repo: str, ref: str = "HEAD"
    ) -> list[TreeEntry]:
        """Fetch the full recursive file tree at ``ref``."""
        resp = await self._get(
            f"/repos/{owner}/{repo}/git/trees/{ref}",
            params={"recursive": "1"},
        )
        resp.raise_for_status()
        payload = resp.json()
        if payload.get("truncated"):
            logger.warning("Tree for %s/%s was truncated by the API", owner, repo)

        entries: list[TreeEntry] = []
        for item in payload.get("tree", []):
            kind = {"blob": EntryKind.file, "tree": EntryKind.directory}.get(
                item.get("type", "")
            )
            if kind is None or not item.get("path"):
                continue  # submodules, symlink targets, etc.
            entries.append(
                TreeEntry(path=item["path"], kind=kind, size=item.get("size") or 0)
            )
        return entries

    async def fetch_file_content(
        self, owner: str, repo: str, path: str
    ) -> Optional[str]:
        """Fetch raw file content; None when missing or not permitted."""
        resp = await self._get(
            f"/repos/{owner}/{repo}/contents/{quote(path)}",
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        if resp.status_code in (403, 404):
            return None
        resp.raise_for_status()
        return resp.text

    # ── Activity ──────────────────────────────────────────────────────────

    async def fetch_recent_commits(self, owner: str, repo: str) -> list[Commit]:
        """Fetch the latest page of commits on the default branch."""
        resp = await self._get(
            f"/repos/{owner}/{repo}/commits",
            params={"per_page": str(ACTIVITY_PAGE_SIZE)},
        )
        if resp.status_code == 409:  # empty repository
            return []
        resp.raise_for_status()
        commits: list[Commit] = []
        for item in resp.json():
            commit_detail = item.get("commit", {})
            author_info = commit_detail.get("author") or {}
            date = _parse_date(author_info.get("date"))
            if date is None:
                continue
            commits.append(
                Commit(
                    sha=item["sha"],
                    message=commit_detail.get("message", ""),
                    author_name=author_info.get("name", "Unknown"),
                    date=date,
                )
            )
        return commits

    async def fetch_open_issues(self, owner: str, repo: str) -> list[Issue]:
        """Fetch the latest page of open issues (excludes PRs)."""
        resp = await self._get(
            f"/repos/{owner}/{repo}/issues",
            params={
                "state": "open",
                "sort": "updated",
                "direction": "desc",
                "per_page": str(ACTIVITY_PAGE_SIZE),
            },
        )
        resp.raise_for_status()
        return [
            Issue(
                number=item["number"],
                title=item.get("title", ""),
                body=item.get("body"),
                created_at=_parse_date(item.get("created_at")),
            )
            for item in resp.json()
            if "pull_request" not in item
        ]

    async def fetch_open_pull_requests(
        self, owner: str, repo: str
    ) -> list[PullRequest]:
        """Fetch the latest page of open pull requests."""
        resp = await self._get(
            f"/repos/{owner}/{repo}/pulls",
            params={
                "state": "open",
                "sort": "updated",
                "direction": "desc",
                "per_page": str(ACTIVITY_PAGE_SIZE),
            },
        )
        resp.raise_for_status()
        return [
            PullRequest(
                number=item["number"],
                title=item.get("title", ""),
                author=(item.get("user") or {}).get("login", ""),
                created_at=_parse_date(item.get("created_at")),
            )
            for item in resp.json()
        ]
