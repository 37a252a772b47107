"""Bounded-concurrency collection of one repository snapshot."""

import asyncio
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

from repo_onboarding.classifier import classify
from repo_onboarding.fetcher import GitHubFetcher
from repo_onboarding.logging import FILE_SKIPPED, Telemetry
from repo_onboarding.models import (
    ActivitySummary,
    Commit,
    EntryKind,
    Issue,
    PullRequest,
    RawRepository,
    RepositoryHandle,
    RepositorySnapshot,
    TreeEntry,
)

T = TypeVar("T")

MAX_CONCURRENCY = 4
MAX_KEY_FILES = 25
MAX_CONTENT_CHARS = 100_000

KEY_FILE_NAMES = (
    "README.md", "README.rst", "README.txt",
    "package.json", "requirements.txt", "pyproject.toml", "Pipfile",
    "Gemfile", "go.mod", "Cargo.toml", "composer.json", "pom.xml", "build.gradle",
    "Dockerfile", "docker-compose.yml", "docker-compose.yaml", "compose.yaml",
    ".github/workflows/", ".gitlab-ci.yml",
    "tsconfig.json", "webpack.config.js", "vite.config.js", "vite.config.ts",
    "jest.config.js", "jest.config.ts", "vitest.config.ts", "pytest.ini",
    "cypress.json", "cypress.config.ts", "playwright.config.js", "playwright.config.ts",
    ".env.example", ".env.template",
    "CONTRIBUTING.md", "LICENSE", "CHANGELOG.md",
    "schema.prisma", "schema.sql", "schema.graphql",
)

_KEY_NEEDLES = tuple(name.lower() for name in KEY_FILE_NAMES)
_SKIP_DIRS = ("node_modules/", "vendor/", "third_party/", "dist/", "build/")

ISSUE_KEYWORDS = ("bug", "error", "install", "setup", "documentation", "feature")

FetcherFactory = Callable[[Optional[str]], GitHubFetcher]


def is_key_file(path: str) -> bool:
    """Case-insensitive allow-list substring match, ignoring vendored paths."""
    lowered = path.lower()
    if any(lowered.startswith(d) or f"/{d}" in lowered for d in _SKIP_DIRS):
        return False
    filename = lowered.rsplit("/", 1)[-1]
    if filename.startswith("requirements") and filename.endswith(".txt"):
        return True
    return any(needle in lowered for needle in _KEY_NEEDLES)


def select_key_files(
    tree: "tuple[TreeEntry, ...] | list[TreeEntry]", limit: int = MAX_KEY_FILES
) -> list[str]:
    """Pick allow-listed file paths, shallowest first."""
    candidates = [
        e.path for e in tree if e.kind == EntryKind.file and is_key_file(e.path)
    ]
    candidates.sort(key=lambda p: (p.count("/"), p.lower()))
    return candidates[:limit]


# ── Activity summary ──────────────────────────────────────────────────────

def commit_frequency(commits: list[Commit], now: Optional[datetime] = None) -> str:
    """Label commit cadence over the last 30 days."""
    if not commits:
        return "No recent activity"
    now = now or datetime.now(timezone.utc)
    recent = [c for c in commits if now - c.date <= timedelta(days=30)]
    if len(recent) >= 20:
        return "Very active (20+ commits/month)"
    if len(recent) >= 10:
        return "Active (10+ commits/month)"
    if len(recent) >= 5:
        return "Moderate (5+ commits/month)"
    return "Low activity (<5 commits/month)"


def common_issue_topics(issues: list[Issue], top: int = 3) -> list[str]:
    """Most frequent issue keywords as ``"bug (3 issues)"`` strings."""
    counts: Counter[str] = Counter()
    for issue in issues:
        text = f"{issue.title} {issue.body or ''}".lower()
        for keyword in ISSUE_KEYWORDS:
            if keyword in text:
                counts[keyword] += 1
    return [f"{kw} ({n} issues)" for kw, n in counts.most_common(top)]


def summarize_activity(
    commits: list[Commit],
    issues: list[Issue],
    pulls: list[PullRequest],
    now: Optional[datetime] = None,
) -> ActivitySummary:
    now = now or datetime.now(timezone.utc)
    return ActivitySummary(
        recent_commits=sum(1 for c in commits if now - c.date <= timedelta(days=30)),
        open_issues=len(issues),
        open_pull_requests=len(pulls),
        commit_frequency=commit_frequency(commits, now),
        common_issue_topics=tuple(common_issue_topics(issues)),
    )


def assemble_snapshot(raw: RawRepository) -> RepositorySnapshot:
    """Classify fetched key-file contents into a read-only snapshot."""
    return RepositorySnapshot(
        handle=raw.handle,
        metadata=raw.metadata,
        tree=raw.tree,
        key_files=tuple(classify(path, content) for path, content in raw.contents),
        activity=raw.activity,
    )


# ── Gatherer ──────────────────────────────────────────────────────────────

class DataGatherer:
    """Collects metadata, tree, activity and key-file contents concurrently."""

    def __init__(
        self,
        fetcher_factory: Optional[FetcherFactory] = None,
        max_concurrency: int = MAX_CONCURRENCY,
        telemetry: Optional[Telemetry] = None,
    ) -> None:
        self._fetcher_factory = fetcher_factory or (lambda token: GitHubFetcher(token=token))
        self.max_concurrency = max_concurrency
        self.telemetry = telemetry or Telemetry()

    async def gather(self, handle: RepositoryHandle, token: Optional[str]) -> RepositorySnapshot:
        """Fetch everything and classify key files. Raises RemoteApiError."""
        return assemble_snapshot(await self.fetch(handle, token))

    async def fetch(self, handle: RepositoryHandle, token: Optional[str]) -> RawRepository:
        """Fetch raw repository data. Only the metadata call may fail the run."""
        fetcher = self._fetcher_factory(token)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def bounded(call: Callable[[], Awaitable[T]]) -> T:
            async with semaphore:
                return await call()

        owner, name = handle.owner, handle.name
        try:
            meta_task = asyncio.ensure_future(
                bounded(lambda: fetcher.fetch_repo_info(owner, name))
            )
            optional = asyncio.gather(
                bounded(lambda: fetcher.fetch_tree(owner, name)),
                bounded(lambda: fetcher.fetch_recent_commits(owner, name)),
                bounded(lambda: fetcher.fetch_open_issues(owner, name)),
                bounded(lambda: fetcher.fetch_open_pull_requests(owner, name)),
                return_exceptions=True,
            )
            try:
                metadata = await meta_task
            except BaseException:
                optional.cancel()
                await asyncio.gather(optional, return_exceptions=True)
                raise
            tree_res, commits_res, issues_res, pulls_res = await optional

            tree = self._optional("tree", tree_res, [])
            activity = summarize_activity(
                self._optional("commits", commits_res, []),
                self._optional("issues", issues_res, []),
                self._optional("pulls", pulls_res, []),
            )

            paths = select_key_files(tree)
            bodies = await asyncio.gather(
                *(self._fetch_content(fetcher, bounded, handle, p) for p in paths)
            )
        finally:
            await fetcher.close()

        contents = tuple(
            (path, body[:MAX_CONTENT_CHARS])
            for path, body in zip(paths, bodies)
            if body is not None
        )
        return RawRepository(
            handle=handle,
            metadata=metadata,
            tree=tuple(tree),
            activity=activity,
            contents=contents,
        )

    def _optional(self, what: str, result: "T | BaseException", default: T) -> T:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            self.telemetry.emit(FILE_SKIPPED, "gathering", f"{what} unavailable: {result}")
            return default
        return result

    async def _fetch_content(
        self,
        fetcher: GitHubFetcher,
        bounded: Callable[[Callable[[], Awaitable[Optional[str]]]], Awaitable[Optional[str]]],
        handle: RepositoryHandle,
        path: str,
    ) -> Optional[str]:
        try:
            body = await bounded(
                lambda: fetcher.fetch_file_content(handle.owner, handle.name, path)
            )
        except httpx.HTTPError as e:
            self.telemetry.emit(FILE_SKIPPED, "gathering", path, error=str(e))
            return None
        if body is None:
            self.telemetry.emit(FILE_SKIPPED, "gathering", path, error="not found")
        return body
