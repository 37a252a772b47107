"""Infer the project stack from classified key files."""

from typing import Iterable, Optional

from repo_onboarding.models import FileCategory, KeyFile, Manifest, ProjectStructure
from repo_onboarding.stack import (
    ECOSYSTEM_LANGUAGES,
    ECOSYSTEM_PRIORITY,
    NPM_BUILD_TOOLS,
    PYTHON_BUILD_BACKENDS,
    SERVER_FRAMEWORKS,
    TEST_FRAMEWORKS,
    UI_FRAMEWORKS,
    framework_for,
)

_BUILD_SYSTEMS = {
    "go": "Go modules",
    "cargo": "Cargo",
    "bundler": "Bundler",
    "maven": "Maven",
    "gradle": "Gradle",
    "composer": "Composer",
    "pipenv": "Pipenv",
}


def primary_manifest(key_files: Iterable[KeyFile]) -> Optional[KeyFile]:
    """The manifest of the highest-priority ecosystem, shallowest path first."""
    manifests = [f for f in key_files if f.manifest is not None]
    if not manifests:
        return None
    return min(
        manifests,
        key=lambda f: (
            ECOSYSTEM_PRIORITY.index(f.manifest.ecosystem)  # type: ignore[union-attr]
            if f.manifest.ecosystem in ECOSYSTEM_PRIORITY  # type: ignore[union-attr]
            else len(ECOSYSTEM_PRIORITY),
            f.path.count("/"),
            f.path,
        ),
    )


def _merged_manifest(key_files: list[KeyFile], primary: KeyFile) -> Manifest:
    """Combine every manifest of the primary's ecosystem in the same directory.

    A Python project may declare dependencies in both requirements.txt and
    pyproject.toml; the primary file wins on conflicts.
    """
    assert primary.manifest is not None
    directory = primary.path.rsplit("/", 1)[0] if "/" in primary.path else ""
    siblings = [
        f.manifest
        for f in key_files
        if f.manifest is not None
        and f is not primary
        and f.manifest.ecosystem == primary.manifest.ecosystem
        and (f.path.rsplit("/", 1)[0] if "/" in f.path else "") == directory
    ]
    deps: dict[str, str] = {}
    dev: dict[str, str] = {}
    scripts: dict[str, str] = {}
    backend = ""
    for m in siblings:
        deps.update(m.dependencies)
        dev.update(m.dev_dependencies)
        scripts.update(m.scripts)
        backend = backend or m.build_backend
    deps.update(primary.manifest.dependencies)
    dev.update(primary.manifest.dev_dependencies)
    scripts.update(primary.manifest.scripts)
    return primary.manifest.model_copy(
        update={
            "dependencies": deps,
            "dev_dependencies": dev,
            "scripts": scripts,
            "build_backend": primary.manifest.build_backend or backend,
        }
    )


def _language(manifest: Manifest, key_files: list[KeyFile]) -> str:
    if manifest.ecosystem == "npm":
        has_tsconfig = any(f.filename.lower().startswith("tsconfig") for f in key_files)
        if manifest.declares("typescript") or has_tsconfig:
            return "TypeScript"
    if manifest.ecosystem == "jvm" and any(
        d.startswith("org.jetbrains.kotlin") for d in manifest.dependencies
    ):
        return "Kotlin"
    return ECOSYSTEM_LANGUAGES.get(manifest.ecosystem, "Unknown")


def _build_system(manifest: Manifest) -> Optional[str]:
    if manifest.ecosystem == "npm":
        build = manifest.scripts.get("build")
        if not build:
            return None
        for needle, label in NPM_BUILD_TOOLS:
            if needle in build:
                return label
        return "npm scripts"
    if manifest.ecosystem == "python":
        for needle, label in PYTHON_BUILD_BACKENDS:
            if needle in manifest.build_backend:
                return label
    return _BUILD_SYSTEMS.get(manifest.build_backend)


def _test_framework(manifest: Optional[Manifest], key_files: list[KeyFile]) -> Optional[str]:
    if manifest is not None:
        for dependency, label in TEST_FRAMEWORKS:
            if manifest.declares(dependency):
                return label
    for f in key_files:
        if f.category != FileCategory.test_config:
            continue
        name = f.filename.lower()
        for dependency, label in TEST_FRAMEWORKS:
            if "/" not in dependency and ":" not in dependency and name.startswith(dependency):
                return label
    return None


def architecture_label(framework: str, key_files: list[KeyFile]) -> str:
    """First matching rule wins: container, then UI, then server."""
    if any(f.category == FileCategory.containerization for f in key_files):
        return "Containerized"
    if framework in UI_FRAMEWORKS:
        return "Single Page Application"
    if framework in SERVER_FRAMEWORKS:
        return "API Server"
    return "Unknown"


def infer(key_files: Iterable[KeyFile]) -> ProjectStructure:
    """Derive a ProjectStructure deterministically from classified key files."""
    files = list(key_files)
    primary = primary_manifest(files)
    if primary is None:
        return ProjectStructure(
            architecture_label=architecture_label("Unknown", files),
            test_framework=_test_framework(None, files),
        )

    manifest = _merged_manifest(files, primary)
    fw = framework_for(manifest.ecosystem, manifest.dependencies)
    framework = fw.label if fw else "Unknown"
    return ProjectStructure(
        framework=framework,
        language=_language(manifest, files),
        build_system=_build_system(manifest),
        test_framework=_test_framework(manifest, files),
        architecture_label=architecture_label(framework, files),
        ecosystem=manifest.ecosystem,
        dependencies=dict(manifest.dependencies),
        dev_dependencies=dict(manifest.dev_dependencies),
        scripts=dict(manifest.scripts),
    )
