"""Report synthesis: onboarding guide, technical analysis and recommendations.

One code path serves both AI-enhanced and heuristic-only runs: every
section checks whether its enrichment input is present and falls back to
deterministic content when it is not.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Optional

from repo_onboarding.models import (
    AnalysisMode,
    Confidence,
    EnrichmentResult,
    EntryKind,
    FileCategory,
    OnboardingReport,
    ProjectStructure,
    ReportDocument,
    RepositorySnapshot,
)
from repo_onboarding.stack import detect_language

MAX_GUIDE_FEATURES = 6
MAX_GUIDE_NARRATIVE_CHARS = 1200
MAX_GUIDE_SETUP_CHARS = 1800
MIN_AI_SETUP_CHARS = 50
MAX_GUIDE_INSIGHTS = 10

MAX_CODE_ANALYSIS_CHARS = 2500
MAX_ARCHITECTURE_CHARS = 2000
MAX_DATA_MODEL_CHARS = 1500
MAX_LANGUAGES = 10
MAX_TOP_DEPENDENCIES = 8

MAX_RECOMMENDED_INSIGHTS = 6
MAX_FEATURE_RECOMMENDATIONS = 4
MAX_RECOMMENDATIONS = 15
ISSUE_TRIAGE_THRESHOLD = 10

CATEGORY_LABELS = {
    FileCategory.documentation: "📚 Documentation",
    FileCategory.dependency_manifest: "📦 Dependencies",
    FileCategory.containerization: "🐳 Containerization",
    FileCategory.test_config: "🧪 Testing",
    FileCategory.database_schema: "🗄️ Database schema",
    FileCategory.generic_code: "🔧 Configuration",
}


# ── Helpers ───────────────────────────────────────────────────────────────

def activity_level(updated_at: Optional[datetime], now: datetime) -> tuple[str, Optional[int]]:
    """Label repository activity by days since the last update."""
    if updated_at is None:
        return "Unknown", None
    days = max((now - updated_at).days, 0)
    if days < 7:
        return "Very Active", days
    if days < 30:
        return "Active", days
    if days < 90:
        return "Moderate", days
    return "Low Activity", days


def language_distribution(snapshot: RepositorySnapshot) -> list[tuple[str, int]]:
    """Count tree files (or key files for an empty tree) by detected language."""
    paths = [e.path for e in snapshot.tree if e.kind == EntryKind.file]
    if not paths:
        paths = [kf.path for kf in snapshot.key_files]
    counts = Counter(
        lang for lang in (detect_language(p) for p in paths) if lang != "Unknown"
    )
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:MAX_LANGUAGES]


def primary_language(snapshot: RepositorySnapshot, structure: ProjectStructure) -> str:
    if structure.language != "Unknown":
        return structure.language
    return snapshot.metadata.language or "Unknown"


def _has_key_file(snapshot: RepositorySnapshot, *names: str) -> Optional[str]:
    for kf in snapshot.key_files:
        filename = kf.filename.lower()
        if any(filename == n or filename.startswith(n) for n in names):
            return kf.path
    return None


def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "Unknown"


# ── Setup template ────────────────────────────────────────────────────────

def _install_and_run(
    snapshot: RepositorySnapshot, structure: ProjectStructure, language: str
) -> tuple[list[str], list[str]]:
    """Ecosystem-specific (install, run) command lines."""
    scripts = structure.scripts
    framework = structure.framework

    if language in ("JavaScript", "TypeScript"):
        run: list[str] = []
        if "dev" in scripts:
            run = ["# Start development server", "npm run dev"]
        elif "start" in scripts:
            run = ["# Start the application", "npm start"]
        return ["# Install dependencies", "npm install"], run

    if language == "Python":
        install = [
            "# Create virtual environment",
            "python -m venv venv",
            "source venv/bin/activate  # On Windows: venv\\Scripts\\activate",
            "",
            "# Install dependencies",
        ]
        if _has_key_file(snapshot, "requirements"):
            install.append("pip install -r requirements.txt")
        elif _has_key_file(snapshot, "pyproject.toml"):
            install.append("pip install -e .")
        elif _has_key_file(snapshot, "pipfile"):
            install.append("pipenv install --dev")
        else:
            install.append("pip install -r requirements.txt")
        run = []
        if framework == "Django":
            run = ["# Start development server", "python manage.py runserver"]
        elif framework == "FastAPI":
            run = ["# Start development server", "uvicorn main:app --reload"]
        elif framework == "Flask":
            run = ["# Start development server", "flask run"]
        return install, run

    if language == "Go":
        return (
            ["# Download modules", "go mod download"],
            ["# Build and test", "go build ./...", "go test ./..."],
        )

    if language == "Rust":
        return ["# Build", "cargo build"], ["# Run", "cargo run"]

    if language == "Ruby":
        run = ["# Start the server", "bin/rails server"] if framework == "Rails" else []
        return ["# Install gems", "bundle install"], run

    if language in ("Java", "Kotlin"):
        if structure.build_system == "Gradle" or _has_key_file(snapshot, "build.gradle"):
            return ["# Build with Gradle", "./gradlew build"], []
        return ["# Build with Maven", "mvn install"], []

    if language == "PHP":
        run = ["# Start the server", "php artisan serve"] if framework == "Laravel" else []
        return ["# Install dependencies", "composer install"], run

    return ["# See the README for project-specific setup instructions"], []


def setup_template(snapshot: RepositorySnapshot, structure: ProjectStructure) -> str:
    """Deterministic bash setup block keyed off the detected language."""
    handle = snapshot.handle
    lines = [
        "```bash",
        "# Clone the repository",
        f"git clone https://github.com/{handle.owner}/{handle.name}.git",
        f"cd {handle.name}",
        "",
    ]

    env_file = _has_key_file(snapshot, ".env.example", ".env.template")
    if env_file:
        lines += ["# Configure environment", f"cp {env_file} .env", ""]

    install, run = _install_and_run(snapshot, structure, primary_language(snapshot, structure))
    lines += install + [""]

    schemas = snapshot.files_in(FileCategory.database_schema)
    if any(kf.filename.lower().endswith(".prisma") for kf in schemas):
        lines += [
            "# Setup database (Prisma detected)",
            "npx prisma generate",
            "npx prisma db push",
            "",
        ]
    elif schemas:
        lines += [f"# Apply the database schema in {schemas[0].path}", ""]

    if run:
        lines += run + [""]

    if any("compose" in kf.filename.lower() for kf in snapshot.files_in(FileCategory.containerization)):
        lines += ["# Or run the whole stack with Docker", "docker compose up", ""]

    while lines[-1] == "":
        lines.pop()
    lines.append("```")
    return "\n".join(lines)


# ── Insights ──────────────────────────────────────────────────────────────

def heuristic_insights(snapshot: RepositorySnapshot, structure: ProjectStructure) -> list[str]:
    """Deterministic developer insights used when AI produced none."""
    meta = snapshot.metadata
    insights: list[str] = []
    if meta.stargazers_count > 100:
        insights.append(f"Popular project with {meta.stargazers_count} stars")
    if meta.forks_count > 50:
        insights.append(f"Active community with {meta.forks_count} forks")
    if structure.framework != "Unknown":
        insights.append(f"Built with {structure.framework}")
    if structure.test_framework:
        insights.append(f"Tests use {structure.test_framework}")
    if structure.architecture_label == "Containerized":
        insights.append("Ships container configuration for local and production runs")
    if snapshot.activity.recent_commits:
        insights.append(f"Commit activity: {snapshot.activity.commit_frequency}")
    return insights


# ── Documents ─────────────────────────────────────────────────────────────

def build_onboarding_guide(
    snapshot: RepositorySnapshot,
    structure: ProjectStructure,
    enrichment: EnrichmentResult,
) -> ReportDocument:
    ai = enrichment.confidence == Confidence.ai_derived
    meta = snapshot.metadata
    doc = ReportDocument(
        title="🚀 AI-Enhanced Developer Onboarding Guide" if ai else "🚀 Developer Onboarding Guide",
        subtitle=f"Analysis for {snapshot.handle.full_name}",
    )

    overview: list[str] = []
    if meta.description:
        overview.append(f"**Description:** {meta.description}")
    overview.append(f"**Primary Language:** {primary_language(snapshot, structure)}")
    if structure.framework != "Unknown":
        overview.append(f"**Framework:** {structure.framework}")
    if structure.architecture_label != "Unknown":
        overview.append(f"**Architecture:** {structure.architecture_label}")
    if enrichment.summary:
        overview.append(f"**AI Summary:** {enrichment.summary}")
    if enrichment.feature_list:
        overview.append("")
        overview.append("**🎯 Key Features:**")
        overview += [f"- {f}" for f in enrichment.feature_list[:MAX_GUIDE_FEATURES]]
    doc.add("overview", "📋 Project Overview", "\n".join(overview))

    if enrichment.architecture_narrative:
        doc.add(
            "architecture",
            "🏗️ Architecture & Design Patterns",
            enrichment.architecture_narrative[:MAX_GUIDE_NARRATIVE_CHARS],
        )
    if enrichment.data_model_narrative:
        doc.add(
            "data_model",
            "🗄️ Data Model & Database Schema",
            enrichment.data_model_narrative[:MAX_GUIDE_NARRATIVE_CHARS],
        )

    if len(enrichment.setup_instructions) >= MIN_AI_SETUP_CHARS:
        setup = enrichment.setup_instructions[:MAX_GUIDE_SETUP_CHARS]
    else:
        setup = setup_template(snapshot, structure)
    doc.add("setup", "🛠️ Developer Setup Guide", setup)

    insights = enrichment.key_insights[:MAX_GUIDE_INSIGHTS] or heuristic_insights(snapshot, structure)
    if insights:
        doc.add("insights", "💡 Key Developer Insights", "\n".join(f"- {i}" for i in insights))

    if snapshot.key_files:
        lines = []
        for kf in snapshot.key_files:
            label = CATEGORY_LABELS.get(kf.category, kf.category.value)
            detail = f": {'; '.join(kf.insights)}" if kf.insights else ""
            lines.append(f"- `{kf.path}` ({label}){detail}")
        doc.add("key_files", "🔑 Key Files", "\n".join(lines))
    return doc


def build_technical_analysis(
    snapshot: RepositorySnapshot,
    structure: ProjectStructure,
    enrichment: EnrichmentResult,
    now: datetime,
) -> ReportDocument:
    ai = enrichment.confidence == Confidence.ai_derived
    meta = snapshot.metadata
    doc = ReportDocument(
        title="🔬 AI-Enhanced Technical Analysis" if ai else "🔬 Technical Analysis",
        subtitle=snapshot.handle.full_name,
    )

    if enrichment.code_analysis:
        doc.add("code_analysis", "🧠 AI Code Analysis", enrichment.code_analysis[:MAX_CODE_ANALYSIS_CHARS])

    distribution = language_distribution(snapshot)
    if distribution:
        total = sum(count for _, count in distribution) or 1
        rows = ["| Language | Files | Share |", "|---|---|---|"]
        rows += [f"| {lang} | {count} | {count / total * 100:.1f}% |" for lang, count in distribution]
        doc.add("languages", "📊 Language & File Distribution", "\n".join(rows))

    if enrichment.architecture_narrative:
        architecture = enrichment.architecture_narrative[:MAX_ARCHITECTURE_CHARS]
    else:
        architecture = "\n".join([
            f"- **Architecture**: {structure.architecture_label}",
            f"- **Language**: {structure.language}",
            f"- **Framework**: {structure.framework}",
            f"- **Build System**: {structure.build_system or 'Not detected'}",
            f"- **Test Framework**: {structure.test_framework or 'Not detected'}",
        ])
    doc.add("architecture", "🏛️ Architecture Deep Dive", architecture)

    if enrichment.data_model_narrative:
        doc.add("data_model", "🗃️ Data Model Analysis", enrichment.data_model_narrative[:MAX_DATA_MODEL_CHARS])

    if structure.dependencies:
        deps = sorted(structure.dependencies.items())[:MAX_TOP_DEPENDENCIES]
        lines = [f"- `{name}` {version}".rstrip() for name, version in deps]
        if len(structure.dependencies) > MAX_TOP_DEPENDENCIES:
            lines.append(f"- …and {len(structure.dependencies) - MAX_TOP_DEPENDENCIES} more")
        doc.add("dependencies", "📦 Top Dependencies", "\n".join(lines))

    label, days = activity_level(meta.updated_at, now)
    health = [
        f"- **Total Files**: {snapshot.file_count}",
        f"- **Created**: {_fmt_date(meta.created_at)}",
        f"- **Last Updated**: {_fmt_date(meta.updated_at)}",
        f"- **Community Stars**: {meta.stargazers_count}",
        f"- **Forks**: {meta.forks_count}",
        f"- **Open Issues**: {meta.open_issues_count}",
    ]
    if days is not None:
        health.append(f"- **Activity Level**: {label} ({days} days since last update)")
    else:
        health.append(f"- **Activity Level**: {label}")
    doc.add("health", "📈 Repository Health Metrics", "\n".join(health))

    activity = snapshot.activity
    lines = [
        f"- **Commits (last 30 days)**: {activity.recent_commits}",
        f"- **Commit Frequency**: {activity.commit_frequency}",
        f"- **Open Pull Requests**: {activity.open_pull_requests}",
    ]
    if activity.common_issue_topics:
        lines.append(f"- **Common Issue Topics**: {', '.join(activity.common_issue_topics)}")
    doc.add("activity", "🔄 Recent Activity", "\n".join(lines))
    return doc


def build_recommendations(
    snapshot: RepositorySnapshot,
    structure: ProjectStructure,
    enrichment: EnrichmentResult,
) -> list[str]:
    """Ordered, capped recommendation list. Never empty."""
    recs: list[str] = list(enrichment.key_insights[:MAX_RECOMMENDED_INSIGHTS])

    recs.append("Clone the repository and review all README files")
    language = primary_language(snapshot, structure)
    if structure.ecosystem == "npm" or language in ("JavaScript", "TypeScript"):
        recs.append("Run `npm install` to install all dependencies")
        recs.append("Check package.json for available development scripts")
    elif structure.ecosystem == "python":
        recs.append("Create a virtual environment before installing dependencies")
    if structure.framework != "Unknown":
        recs.append(f"Familiarize yourself with {structure.framework} framework patterns")
    if structure.architecture_label == "Containerized":
        recs.append("Use the container configuration to get a reproducible local environment")

    schemas = snapshot.files_in(FileCategory.database_schema)
    if any(kf.filename.lower().endswith(".prisma") for kf in schemas) or (
        "prisma" in enrichment.data_model_narrative.lower()
    ):
        recs.append("Review the Prisma schema to understand the data model")
        recs.append("Run `npx prisma generate` to generate the client")
        recs.append("Use `npx prisma studio` to explore the database visually")
    elif schemas:
        recs.append(f"Review {schemas[0].path} to understand the data model")

    recs += [
        f"Explore the {feature} implementation"
        for feature in enrichment.feature_list[:MAX_FEATURE_RECOMMENDATIONS]
    ]

    if snapshot.metadata.open_issues_count > ISSUE_TRIAGE_THRESHOLD:
        recs.append(
            f"Triage the {snapshot.metadata.open_issues_count} open issues to find "
            "good first contributions"
        )
    if snapshot.activity.commit_frequency.startswith(("Low activity", "No recent activity")):
        recs.append("Check that the project is still maintained before depending on it")

    recs.append("Review the codebase structure and naming conventions")
    if structure.test_framework:
        recs.append(f"Run the {structure.test_framework} suite before making changes")
    else:
        recs.append("Check for existing tests and testing patterns")
    recs.append("Look for linting and formatting configurations")

    unique: list[str] = []
    for rec in recs:
        if rec not in unique:
            unique.append(rec)
    return unique[:MAX_RECOMMENDATIONS]


# ── Rendering ─────────────────────────────────────────────────────────────

def render_markdown(document: ReportDocument) -> str:
    """Render a ReportDocument as markdown text."""
    lines = [f"# {document.title}"]
    if document.subtitle:
        lines.append(f"*{document.subtitle}*")
    lines.append("")
    for section in document.sections:
        lines.append(f"## {section.heading}")
        lines.append(section.body)
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def synthesize_documents(
    snapshot: RepositorySnapshot,
    structure: ProjectStructure,
    enrichment: EnrichmentResult,
    now: Optional[datetime] = None,
) -> tuple[ReportDocument, ReportDocument, list[str]]:
    now = now or datetime.now(timezone.utc)
    return (
        build_onboarding_guide(snapshot, structure, enrichment),
        build_technical_analysis(snapshot, structure, enrichment, now),
        build_recommendations(snapshot, structure, enrichment),
    )


def synthesize(
    snapshot: RepositorySnapshot,
    structure: ProjectStructure,
    enrichment: EnrichmentResult,
    generated_at: Optional[datetime] = None,
) -> OnboardingReport:
    """Assemble the final report. Pure given ``generated_at``."""
    generated_at = generated_at or datetime.now(timezone.utc)
    guide, technical, recommendations = synthesize_documents(
        snapshot, structure, enrichment, generated_at
    )
    mode = (
        AnalysisMode.ai_enhanced
        if enrichment.confidence == Confidence.ai_derived
        else AnalysisMode.heuristic_fallback
    )
    return OnboardingReport(
        onboarding_guide=render_markdown(guide),
        technical_analysis=render_markdown(technical),
        recommendations=tuple(recommendations),
        generated_at=generated_at,
        analysis_mode=mode,
    )
