"""Parsers for ecosystem package descriptors.

Each parser takes the raw file content and returns a :class:`Manifest`, or
raises :class:`ManifestError` when the content cannot be understood.
"""

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from typing import Any, Callable, Optional

from repo_onboarding.models import Manifest


class ManifestError(ValueError):
    """Raised for malformed manifest content."""


_PEP508_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9_.-]*)\s*(\[[^\]]*\])?\s*(.*)$")


def _normalize_python(name: str) -> str:
    return re.sub(r"[-_.]+", "-", name).lower()


def _split_requirement(spec: str) -> Optional[tuple[str, str]]:
    match = _PEP508_NAME.match(spec)
    if not match:
        return None
    version = match.group(3).split(";", 1)[0].strip()
    return _normalize_python(match.group(1)), version


def _str_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(k): str(v) for k, v in value.items()}


# ── npm ───────────────────────────────────────────────────────────────────

def parse_package_json(content: str) -> Manifest:
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"invalid package.json: {e}") from e
    if not isinstance(pkg, dict):
        raise ManifestError("package.json is not an object")
    engines = pkg.get("engines") if isinstance(pkg.get("engines"), dict) else {}
    return Manifest(
        ecosystem="npm",
        name=str(pkg.get("name") or ""),
        dependencies=_str_map(pkg.get("dependencies")),
        dev_dependencies=_str_map(pkg.get("devDependencies")),
        scripts=_str_map(pkg.get("scripts")),
        runtime=f"node {engines['node']}" if engines.get("node") else "",
    )


def parse_composer_json(content: str) -> Manifest:
    try:
        pkg = json.loads(content)
    except json.JSONDecodeError as e:
        raise ManifestError(f"invalid composer.json: {e}") from e
    if not isinstance(pkg, dict):
        raise ManifestError("composer.json is not an object")
    require = _str_map(pkg.get("require"))
    runtime = require.pop("php", "")
    return Manifest(
        ecosystem="php",
        name=str(pkg.get("name") or ""),
        dependencies=require,
        dev_dependencies=_str_map(pkg.get("require-dev")),
        scripts=_str_map(pkg.get("scripts")),
        build_backend="composer",
        runtime=f"php {runtime}" if runtime else "",
    )


# ── Python ────────────────────────────────────────────────────────────────

def parse_requirements(content: str) -> Manifest:
    deps: dict[str, str] = {}
    for line in content.splitlines():
        line = line.split("#", 1)[0].strip()
        if not line or line.startswith("-"):
            continue
        parsed = _split_requirement(line)
        if parsed:
            deps[parsed[0]] = parsed[1]
    return Manifest(ecosystem="python", dependencies=deps)


def _requirement_list(items: Any) -> dict[str, str]:
    deps: dict[str, str] = {}
    if not isinstance(items, list):
        return deps
    for item in items:
        if isinstance(item, str):
            parsed = _split_requirement(item)
            if parsed:
                deps[parsed[0]] = parsed[1]
    return deps


def _poetry_table(table: Any) -> dict[str, str]:
    deps: dict[str, str] = {}
    for name, spec in (table or {}).items() if isinstance(table, dict) else ():
        if name.lower() == "python":
            continue
        version = spec.get("version", "*") if isinstance(spec, dict) else str(spec)
        deps[_normalize_python(name)] = version
    return deps


def parse_pyproject(content: str) -> Manifest:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"invalid pyproject.toml: {e}") from e

    project = data.get("project") or {}
    poetry = (data.get("tool") or {}).get("poetry") or {}

    deps = _requirement_list(project.get("dependencies"))
    dev: dict[str, str] = {}
    for group in (project.get("optional-dependencies") or {}).values():
        dev.update(_requirement_list(group))

    if poetry:
        deps.update(_poetry_table(poetry.get("dependencies")))
        dev.update(_poetry_table(poetry.get("dev-dependencies")))
        for group in (poetry.get("group") or {}).values():
            if isinstance(group, dict):
                dev.update(_poetry_table(group.get("dependencies")))

    scripts = _str_map(project.get("scripts")) or _str_map(poetry.get("scripts"))
    backend = str((data.get("build-system") or {}).get("build-backend") or "")
    requires_python = project.get("requires-python") or ""
    return Manifest(
        ecosystem="python",
        name=str(project.get("name") or poetry.get("name") or ""),
        dependencies=deps,
        dev_dependencies=dev,
        scripts=scripts,
        build_backend=backend,
        runtime=f"python {requires_python}" if requires_python else "",
    )


def parse_pipfile(content: str) -> Manifest:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"invalid Pipfile: {e}") from e
    return Manifest(
        ecosystem="python",
        dependencies=_poetry_table(data.get("packages")),
        dev_dependencies=_poetry_table(data.get("dev-packages")),
        scripts=_str_map(data.get("scripts")),
        build_backend="pipenv",
    )


# ── Go / Rust / Ruby / JVM ────────────────────────────────────────────────

_GO_REQUIRE = re.compile(r"^\s*(?:require\s+)?([\w./\-~]+\.[\w./\-~]+)\s+(v[\w.+\-]+)")


def parse_go_mod(content: str) -> Manifest:
    module = ""
    go_version = ""
    deps: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("module "):
            module = stripped.split(None, 1)[1]
            continue
        if stripped.startswith("go "):
            go_version = stripped.split(None, 1)[1]
            continue
        match = _GO_REQUIRE.match(line)
        if match and "// indirect" not in line:
            deps[match.group(1)] = match.group(2)
    if not module:
        raise ManifestError("go.mod without module directive")
    return Manifest(
        ecosystem="go",
        name=module,
        dependencies=deps,
        build_backend="go",
        runtime=f"go {go_version}" if go_version else "",
    )


def _cargo_table(table: Any) -> dict[str, str]:
    deps: dict[str, str] = {}
    if not isinstance(table, dict):
        return deps
    for name, spec in table.items():
        deps[name] = str(spec.get("version", "*")) if isinstance(spec, dict) else str(spec)
    return deps


def parse_cargo_toml(content: str) -> Manifest:
    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as e:
        raise ManifestError(f"invalid Cargo.toml: {e}") from e
    package = data.get("package") or {}
    return Manifest(
        ecosystem="rust",
        name=str(package.get("name") or ""),
        dependencies=_cargo_table(data.get("dependencies")),
        dev_dependencies=_cargo_table(data.get("dev-dependencies")),
        build_backend="cargo",
    )


_GEM = re.compile(r"""^\s*gem\s+['"]([^'"]+)['"](?:\s*,\s*['"]([^'"]+)['"])?""")
_GROUP = re.compile(r"^\s*group\s+(.+?)\s+do\s*$")


def parse_gemfile(content: str) -> Manifest:
    deps: dict[str, str] = {}
    dev: dict[str, str] = {}
    in_dev_group = False
    for line in content.splitlines():
        group = _GROUP.match(line)
        if group:
            in_dev_group = "development" in group.group(1) or "test" in group.group(1)
            continue
        if line.strip() == "end":
            in_dev_group = False
            continue
        gem = _GEM.match(line)
        if gem:
            target = dev if in_dev_group else deps
            target[gem.group(1)] = gem.group(2) or ""
    return Manifest(
        ecosystem="ruby",
        dependencies=deps,
        dev_dependencies=dev,
        build_backend="bundler",
    )


def _strip_ns(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_pom_xml(content: str) -> Manifest:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ManifestError(f"invalid pom.xml: {e}") from e

    deps: dict[str, str] = {}
    dev: dict[str, str] = {}
    name = ""
    for child in root:
        if _strip_ns(child.tag) == "artifactId":
            name = (child.text or "").strip()
    for element in root.iter():
        if _strip_ns(element.tag) != "dependency":
            continue
        fields = {_strip_ns(c.tag): (c.text or "").strip() for c in element}
        if not fields.get("artifactId"):
            continue
        key = f"{fields.get('groupId', '')}:{fields['artifactId']}"
        target = dev if fields.get("scope") == "test" else deps
        target[key] = fields.get("version", "")
    return Manifest(
        ecosystem="jvm",
        name=name,
        dependencies=deps,
        dev_dependencies=dev,
        build_backend="maven",
    )


_GRADLE_DEP = re.compile(
    r"""^\s*(implementation|api|compileOnly|runtimeOnly|testImplementation|testRuntimeOnly)\s*\(?\s*['"]([^'"]+)['"]"""
)


def parse_build_gradle(content: str) -> Manifest:
    deps: dict[str, str] = {}
    dev: dict[str, str] = {}
    for line in content.splitlines():
        match = _GRADLE_DEP.match(line)
        if not match:
            continue
        parts = match.group(2).split(":")
        key = ":".join(parts[:2])
        version = parts[2] if len(parts) > 2 else ""
        target = dev if match.group(1).startswith("test") else deps
        target[key] = version
    return Manifest(
        ecosystem="jvm",
        dependencies=deps,
        dev_dependencies=dev,
        build_backend="gradle",
    )


# ── Dispatch ──────────────────────────────────────────────────────────────

_PARSERS: dict[str, Callable[[str], Manifest]] = {
    "package.json": parse_package_json,
    "composer.json": parse_composer_json,
    "pyproject.toml": parse_pyproject,
    "pipfile": parse_pipfile,
    "go.mod": parse_go_mod,
    "cargo.toml": parse_cargo_toml,
    "gemfile": parse_gemfile,
    "pom.xml": parse_pom_xml,
    "build.gradle": parse_build_gradle,
    "build.gradle.kts": parse_build_gradle,
}


def manifest_parser(filename: str) -> Optional[Callable[[str], Manifest]]:
    """Parser for a manifest file name, or None when it is not a manifest."""
    name = filename.lower()
    if name.startswith("requirements") and name.endswith(".txt"):
        return parse_requirements
    return _PARSERS.get(name)
