"""File classifier: category assignment and heuristic insights per key file.

``classify`` is pure and never raises: malformed content degrades to fewer
insights, never to an exception.
"""

import re
from typing import Optional

from repo_onboarding.logging import get_logger
from repo_onboarding.manifests import ManifestError, manifest_parser
from repo_onboarding.models import FileCategory, KeyFile, Manifest
from repo_onboarding.stack import FRAMEWORKS, NPM_TOOLING, detect_language

logger = get_logger("classifier")

MAX_KEY_FILE_CHARS = 2000

TEST_CONFIG_NAMES = ("jest.config", "cypress", "playwright.config", "karma.conf", ".mocharc")
SCHEMA_NAMES = ("schema.prisma", "schema.sql", "structure.sql", "schema.graphql", "schema.gql", "schema.rb")

_FENCED_BLOCK = re.compile(r"```[^\n]*\n(.*?)```", re.DOTALL)
_SETUP_COMMAND = re.compile(
    r"npm install|npm ci|yarn|pnpm install|pip install|poetry install|"
    r"go get|go install|cargo build|bundle install|composer install|docker compose|"
    r"docker-compose|make",
    re.IGNORECASE,
)


def categorize(path: str) -> FileCategory:
    """Assign a category from the path alone (case-insensitive)."""
    lowered = path.lower()
    filename = lowered.rsplit("/", 1)[-1]

    if "readme" in filename:
        return FileCategory.documentation
    if manifest_parser(filename) is not None:
        return FileCategory.dependency_manifest
    if filename.startswith("docker") or filename in ("compose.yml", "compose.yaml"):
        return FileCategory.containerization
    if "test" in lowered or "spec" in lowered or filename.startswith(TEST_CONFIG_NAMES):
        return FileCategory.test_config
    if filename in SCHEMA_NAMES or filename.endswith(".prisma"):
        return FileCategory.database_schema
    return FileCategory.generic_code


def classify(path: str, content: str) -> KeyFile:
    """Build a KeyFile for ``path`` from its raw ``content``."""
    content = content or ""
    category = categorize(path)
    manifest: Optional[Manifest] = None
    insights: list[str] = []

    try:
        if category == FileCategory.dependency_manifest:
            manifest, insights = _manifest_insights(path, content)
        else:
            insights = _EXTRACTORS[category](path, content)
    except Exception:  # classification must never fail the run
        logger.debug("Insight extraction failed for %s", path, exc_info=True)
        insights = []

    return KeyFile(
        path=path,
        truncated_content=content[:MAX_KEY_FILE_CHARS],
        category=category,
        insights=tuple(insights),
        language=detect_language(path),
        manifest=manifest,
    )


# ── Documentation ─────────────────────────────────────────────────────────

def _documentation_insights(path: str, content: str) -> list[str]:
    insights: list[str] = []
    text = content.lower()

    if "installation" in text or "install" in text:
        insights.append("Contains installation instructions")
    if "getting started" in text or "quick start" in text or "quickstart" in text:
        insights.append("Includes getting started guide")
    if re.search(r"\bapi\b", text):
        insights.append("Includes API documentation")
    if "contributing" in text or "contribute" in text:
        insights.append("Includes contribution guidelines")
    if "license" in text:
        insights.append("Contains license information")
    if "example" in text or "demo" in text:
        insights.append("Provides examples or demos")

    blocks = [b for b in _FENCED_BLOCK.findall(content) if _SETUP_COMMAND.search(b)]
    if blocks:
        insights.append(f"Found {len(blocks)} setup command blocks")
    return insights


# ── Dependency manifests ──────────────────────────────────────────────────

def _manifest_insights(path: str, content: str) -> tuple[Optional[Manifest], list[str]]:
    parser = manifest_parser(path.rsplit("/", 1)[-1])
    try:
        manifest = parser(content) if parser else None
    except (ManifestError, AttributeError, TypeError):
        return None, ["Contains package configuration"]
    if manifest is None:
        return None, ["Contains package configuration"]

    insights: list[str] = []
    if manifest.scripts:
        insights.append(f"Available scripts: {', '.join(manifest.scripts)}")
        if manifest.ecosystem == "npm":
            if "dev" in manifest.scripts or "start" in manifest.scripts:
                insights.append("Has development server scripts")
            if "build" in manifest.scripts:
                insights.append("Has build script")
            if "test" in manifest.scripts:
                insights.append("Has test script")

    insights.append(f"{len(manifest.dependencies)} production dependencies")
    if manifest.dev_dependencies:
        insights.append(f"{len(manifest.dev_dependencies)} development dependencies")

    seen: set[str] = set()
    for fw in FRAMEWORKS:
        if (
            fw.ecosystem == manifest.ecosystem
            and fw.dependency in manifest.dependencies
            and fw.insight not in seen
        ):
            seen.add(fw.insight)
            insights.append(fw.insight)

    if manifest.ecosystem == "npm":
        for dependency, label in NPM_TOOLING:
            if manifest.declares(dependency):
                insights.append(label)

    if manifest.build_backend and manifest.ecosystem == "python":
        insights.append(f"Build backend: {manifest.build_backend}")
    if manifest.runtime:
        insights.append(f"Runtime requirement: {manifest.runtime}")
    return manifest, insights


# ── Containerization ──────────────────────────────────────────────────────

_BASE_IMAGES = (
    ("node", "Node.js Docker container"),
    ("python", "Python Docker container"),
    ("golang", "Go Docker container"),
    ("rust", "Rust Docker container"),
    ("ruby", "Ruby Docker container"),
    ("openjdk", "Java Docker container"),
    ("eclipse-temurin", "Java Docker container"),
    ("php", "PHP Docker container"),
    ("nginx", "Nginx web server"),
)

_SERVICE_IMAGES = (
    ("postgres", "Uses PostgreSQL service"),
    ("mysql", "Uses MySQL service"),
    ("mariadb", "Uses MariaDB service"),
    ("mongo", "Uses MongoDB service"),
    ("redis", "Uses Redis service"),
)

_FROM = re.compile(r"^\s*from\s+([^\s]+)", re.IGNORECASE | re.MULTILINE)
_COMPOSE_SERVICE = re.compile(r"^  ([A-Za-z0-9_.-]+):\s*$", re.MULTILINE)


def _containerization_insights(path: str, content: str) -> list[str]:
    insights: list[str] = []
    text = content.lower()
    filename = path.lower().rsplit("/", 1)[-1]

    if "compose" in filename:
        services_block = text.split("services:", 1)[1] if "services:" in text else ""
        services = _COMPOSE_SERVICE.findall(services_block.split("\nvolumes:", 1)[0])
        if services:
            insights.append(f"Defines {len(services)} compose services: {', '.join(services)}")
        for image, label in _SERVICE_IMAGES:
            if f"image: {image}" in text:
                insights.append(label)
        if "volumes:" in text:
            insights.append("Uses Docker volumes")
        return insights

    images = [img.lower() for img in _FROM.findall(content)]
    seen: set[str] = set()
    for image in images:
        for prefix, label in _BASE_IMAGES:
            if image.startswith(prefix) and label not in seen:
                seen.add(label)
                insights.append(label)
    if len(images) > 1:
        insights.append("Multi-stage Docker build")
    if "expose" in text:
        insights.append("Exposes network ports")
    if "volume" in text:
        insights.append("Uses Docker volumes")
    return insights


# ── Test configuration ────────────────────────────────────────────────────

_TEST_RUNNERS = (
    ("jest", "Jest testing framework"),
    ("vitest", "Vitest testing framework"),
    ("mocha", "Mocha testing framework"),
    ("cypress", "Cypress E2E testing"),
    ("playwright", "Playwright testing"),
    ("pytest", "pytest testing framework"),
    ("coverage", "Code coverage configured"),
)


def _test_config_insights(path: str, content: str) -> list[str]:
    haystack = f"{path}\n{content}".lower()
    return [label for needle, label in _TEST_RUNNERS if needle in haystack]


# ── Database schema ───────────────────────────────────────────────────────

def _schema_insights(path: str, content: str) -> list[str]:
    insights: list[str] = []
    filename = path.lower().rsplit("/", 1)[-1]

    if filename.endswith(".prisma"):
        insights.append("Prisma database schema")
        models = re.findall(r"^\s*model\s+\w+", content, re.MULTILINE)
        if models:
            insights.append(f"Database models: {len(models)}")
        provider = re.search(
            r"datasource\s+\w+\s*\{[^}]*provider\s*=\s*\"(\w+)\"", content
        )
        if provider:
            insights.append(f"Database provider: {provider.group(1)}")
    elif filename.endswith(".sql"):
        insights.append("SQL database schema")
        tables = re.findall(r"create\s+table", content, re.IGNORECASE)
        if tables:
            insights.append(f"Database tables: {len(tables)}")
    elif filename.endswith((".graphql", ".gql")):
        insights.append("GraphQL schema")
        types = re.findall(r"^\s*type\s+\w+", content, re.MULTILINE)
        if types:
            insights.append(f"GraphQL types: {len(types)}")
    elif filename.endswith(".rb"):
        insights.append("Rails database schema")
        tables = re.findall(r"create_table", content)
        if tables:
            insights.append(f"Database tables: {len(tables)}")
    return insights


# ── Everything else on the allow-list ─────────────────────────────────────

_LICENSES = (
    ("mit license", "MIT"),
    ("apache license", "Apache-2.0"),
    ("gnu general public license", "GPL"),
    ("mozilla public license", "MPL-2.0"),
    ("bsd", "BSD"),
)


def _generic_insights(path: str, content: str) -> list[str]:
    insights: list[str] = []
    lowered_path = path.lower()
    filename = lowered_path.rsplit("/", 1)[-1]
    text = content.lower()

    if ".github/workflows" in lowered_path or filename == ".gitlab-ci.yml":
        insights.append("CI workflow")
        if "test" in text:
            insights.append("Runs tests in CI")
        if "lint" in text:
            insights.append("Runs linting in CI")
        if "deploy" in text:
            insights.append("Includes deployment steps")
    elif filename.startswith("tsconfig"):
        insights.append("TypeScript configuration")
        if re.search(r'"strict"\s*:\s*true', text):
            insights.append("Strict type checking enabled")
    elif "webpack" in filename:
        insights.append("Webpack bundler configuration")
    elif "vite" in filename:
        insights.append("Vite build tool configuration")
    elif filename.startswith(".env"):
        variables = re.findall(r"^\s*[A-Z][A-Z0-9_]*\s*=", content, re.MULTILINE)
        insights.append(f"Defines {len(variables)} environment variables")
    elif filename.startswith("license"):
        for needle, label in _LICENSES:
            if needle in text:
                insights.append(f"License: {label}")
                break
        else:
            insights.append("Contains license information")
    elif filename.startswith("changelog"):
        insights.append("Maintains a changelog")
    elif filename.startswith("contributing"):
        insights.append("Contribution guidelines")
    return insights


_EXTRACTORS = {
    FileCategory.documentation: _documentation_insights,
    FileCategory.containerization: _containerization_insights,
    FileCategory.test_config: _test_config_insights,
    FileCategory.database_schema: _schema_insights,
    FileCategory.generic_code: _generic_insights,
}
