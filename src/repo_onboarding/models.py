"""Data models for repo-onboarding."""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ── Repository identity & raw GitHub data ─────────────────────────────────

class RepositoryHandle(BaseModel):
    """Immutable identifier of the target repository."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class RepositoryMetadata(BaseModel):
    """Summary fields from ``GET /repos/{owner}/{repo}``."""

    model_config = ConfigDict(frozen=True)

    full_name: str = ""
    description: Optional[str] = None
    language: Optional[str] = None
    html_url: str = ""
    default_branch: str = "main"
    stargazers_count: int = 0
    forks_count: int = 0
    open_issues_count: int = 0
    topics: tuple[str, ...] = ()
    license_name: Optional[str] = None
    has_wiki: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    pushed_at: Optional[datetime] = None


class EntryKind(str, Enum):
    """Kind of a file-tree entry."""

    file = "file"
    directory = "directory"


class TreeEntry(BaseModel):
    """One path in the repository file tree."""

    model_config = ConfigDict(frozen=True)

    path: str
    kind: EntryKind = EntryKind.file
    size: int = 0


class Commit(BaseModel):
    """A recent commit on the default branch."""

    model_config = ConfigDict(frozen=True)

    sha: str
    message: str = ""
    author_name: str = "Unknown"
    date: datetime


class Issue(BaseModel):
    """An open issue (pull requests excluded)."""

    model_config = ConfigDict(frozen=True)

    number: int
    title: str
    body: Optional[str] = None
    created_at: Optional[datetime] = None


class PullRequest(BaseModel):
    """An open pull request."""

    model_config = ConfigDict(frozen=True)

    number: int
    title: str
    author: str = ""
    created_at: Optional[datetime] = None


class ActivitySummary(BaseModel):
    """Commit / issue / PR activity derived from the latest page of each."""

    model_config = ConfigDict(frozen=True)

    recent_commits: int = 0
    open_issues: int = 0
    open_pull_requests: int = 0
    commit_frequency: str = "Unknown"
    common_issue_topics: tuple[str, ...] = ()


class RawRepository(BaseModel):
    """Everything fetched for a run, before key files are classified."""

    model_config = ConfigDict(frozen=True)

    handle: RepositoryHandle
    metadata: RepositoryMetadata
    tree: tuple[TreeEntry, ...] = ()
    activity: ActivitySummary = Field(default_factory=ActivitySummary)
    contents: tuple[tuple[str, str], ...] = ()  # (path, raw content)


# ── Classification ────────────────────────────────────────────────────────

class FileCategory(str, Enum):
    """What a key file is for."""

    documentation = "documentation"
    dependency_manifest = "dependency-manifest"
    containerization = "containerization"
    test_config = "test-config"
    database_schema = "database-schema"
    generic_code = "generic-code"


class Manifest(BaseModel):
    """Structured view of an ecosystem package descriptor."""

    model_config = ConfigDict(frozen=True)

    ecosystem: str  # "npm", "python", "go", "rust", "ruby", "jvm", "php"
    name: str = ""
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    scripts: dict[str, str] = Field(default_factory=dict)
    build_backend: str = ""
    runtime: str = ""  # e.g. "node >=18", "python >=3.11"

    def declares(self, dependency: str) -> bool:
        return dependency in self.dependencies or dependency in self.dev_dependencies


class KeyFile(BaseModel):
    """A classified allow-listed file."""

    model_config = ConfigDict(frozen=True)

    path: str
    truncated_content: str = ""
    category: FileCategory = FileCategory.generic_code
    insights: tuple[str, ...] = ()
    language: str = "Unknown"
    manifest: Optional[Manifest] = None

    @property
    def filename(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class RepositorySnapshot(BaseModel):
    """All data gathered for one repository at one point in time."""

    model_config = ConfigDict(frozen=True)

    handle: RepositoryHandle
    metadata: RepositoryMetadata
    tree: tuple[TreeEntry, ...] = ()
    key_files: tuple[KeyFile, ...] = ()
    activity: ActivitySummary = Field(default_factory=ActivitySummary)

    @property
    def file_count(self) -> int:
        return sum(1 for e in self.tree if e.kind == EntryKind.file)

    def files_in(self, category: FileCategory) -> list[KeyFile]:
        return [f for f in self.key_files if f.category == category]


# ── Inference & enrichment ────────────────────────────────────────────────

class ProjectStructure(BaseModel):
    """Deterministic view of the project's technology stack."""

    framework: str = "Unknown"
    language: str = "Unknown"
    build_system: Optional[str] = None
    test_framework: Optional[str] = None
    architecture_label: str = "Unknown"
    ecosystem: Optional[str] = None
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    scripts: dict[str, str] = Field(default_factory=dict)


class Confidence(str, Enum):
    """Where an EnrichmentResult came from."""

    ai_derived = "ai-derived"
    heuristic_fallback = "heuristic-fallback"


class EnrichmentResult(BaseModel):
    """Best-effort structure extracted from free-text AI analysis."""

    architecture_narrative: str = ""
    data_model_narrative: str = ""
    feature_list: list[str] = Field(default_factory=list)
    setup_instructions: str = ""
    key_insights: list[str] = Field(default_factory=list)
    code_analysis: str = ""
    summary: str = ""
    confidence: Confidence = Confidence.heuristic_fallback

    @classmethod
    def fallback(cls) -> "EnrichmentResult":
        return cls(confidence=Confidence.heuristic_fallback)


# ── Report ────────────────────────────────────────────────────────────────

class AnalysisMode(str, Enum):
    """Whether the report includes AI-derived content."""

    ai_enhanced = "ai-enhanced"
    heuristic_fallback = "heuristic-fallback"


class ReportSection(BaseModel):
    """A named block of a report document."""

    key: str
    heading: str
    body: str


class ReportDocument(BaseModel):
    """Ordered sections, rendered to markdown only at the boundary."""

    title: str
    subtitle: str = ""
    sections: list[ReportSection] = Field(default_factory=list)

    def add(self, key: str, heading: str, body: str) -> None:
        self.sections.append(ReportSection(key=key, heading=heading, body=body))

    def section(self, key: str) -> Optional[ReportSection]:
        return next((s for s in self.sections if s.key == key), None)

    @property
    def keys(self) -> list[str]:
        return [s.key for s in self.sections]


class OnboardingReport(BaseModel):
    """Terminal artifact of a pipeline run."""

    model_config = ConfigDict(frozen=True)

    onboarding_guide: str
    technical_analysis: str
    recommendations: tuple[str, ...]
    generated_at: datetime
    analysis_mode: AnalysisMode


# ── Progress events ───────────────────────────────────────────────────────

class ProgressPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    percent: int


class ErrorPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str
    kind: str = "unknown"


class ProgressUpdate(BaseModel):
    """Intermediate checkpoint of a run."""

    model_config = ConfigDict(frozen=True)

    type: Literal["progress"] = "progress"
    progress: ProgressPayload


class ResultEvent(BaseModel):
    """Terminal success event."""

    model_config = ConfigDict(frozen=True)

    type: Literal["result"] = "result"
    result: OnboardingReport


class ErrorEvent(BaseModel):
    """Terminal failure event."""

    model_config = ConfigDict(frozen=True)

    type: Literal["error"] = "error"
    error: ErrorPayload


ProgressEvent = Union[ProgressUpdate, ResultEvent, ErrorEvent]


def is_terminal(event: ProgressEvent) -> bool:
    return event.type in ("result", "error")
