"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timezone

import pytest

from repo_onboarding.classifier import classify
from repo_onboarding.models import (
    ActivitySummary,
    EntryKind,
    RepositoryHandle,
    RepositoryMetadata,
    RepositorySnapshot,
    TreeEntry,
)

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def react_package_json():
    """A Vite + React package.json with a dev/build script pair."""
    return json.dumps({
        "name": "web",
        "scripts": {"dev": "vite", "build": "vite build"},
        "dependencies": {"react": "^18.2.0", "react-dom": "^18.2.0"},
        "devDependencies": {"typescript": "^5.4.0", "vite": "^5.2.0"},
    })


@pytest.fixture
def express_package_json():
    return json.dumps({
        "name": "api",
        "scripts": {"start": "node server.js", "test": "jest"},
        "dependencies": {"express": "^4.19.0"},
        "devDependencies": {"jest": "^29.0.0"},
    })


@pytest.fixture
def sample_readme():
    return """\
# Demo

## Getting Started

```bash
npm install
npm run dev
```

See the API reference and examples below.
"""


def build_snapshot(
    files: dict[str, str] | None = None,
    tree: list[str] | None = None,
    **metadata,
) -> RepositorySnapshot:
    """Classify ``files`` and wrap them in a snapshot for acme/widget."""
    files = files or {}
    paths = tree if tree is not None else list(files)
    meta = {
        "full_name": "acme/widget",
        "description": "A widget service",
        "language": "TypeScript",
        "html_url": "https://github.com/acme/widget",
        "stargazers_count": 10,
        "forks_count": 2,
        "open_issues_count": 3,
        "created_at": datetime(2023, 1, 1, tzinfo=timezone.utc),
        "updated_at": datetime(2025, 5, 30, tzinfo=timezone.utc),
    }
    meta.update(metadata)
    return RepositorySnapshot(
        handle=RepositoryHandle(owner="acme", name="widget"),
        metadata=RepositoryMetadata(**meta),
        tree=tuple(TreeEntry(path=p, kind=EntryKind.file) for p in paths),
        key_files=tuple(classify(path, content) for path, content in files.items()),
        activity=ActivitySummary(
            recent_commits=12,
            open_issues=3,
            open_pull_requests=1,
            commit_frequency="Active (10+ commits/month)",
        ),
    )


@pytest.fixture
def make_snapshot():
    return build_snapshot
