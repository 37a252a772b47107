"""AI enrichment via the Copilot SDK, with a heuristic fallback.

``EnrichmentAdapter.enrich`` never raises (caller cancellation aside): any
timeout, transport failure or empty response downgrades to
``EnrichmentResult.fallback()``.
"""

import asyncio
import os
import re
from pathlib import Path
from typing import Optional, Protocol

from repo_onboarding.errors import EnrichmentUnavailable
from repo_onboarding.logging import Telemetry, get_logger
from repo_onboarding.models import (
    Confidence,
    EnrichmentResult,
    ProjectStructure,
    RepositorySnapshot,
)

logger = get_logger("enrichment")

DEFAULT_TIMEOUT = 90.0
DEFAULT_MAX_TURNS = 3
MAX_PROMPT_CHARS = 24_000
ANALYSIS_PLACEHOLDER = "Analysis completed"

SYSTEM_MESSAGE = (
    "You are a developer onboarding assistant. "
    "You ONLY analyze the repository data provided to you in the prompt. "
    "You NEVER use tools, browse the filesystem, run commands, or "
    "access external resources. Answer in markdown with one heading per "
    "requested topic and bullet lists where asked."
)


class AnalysisService(Protocol):
    """Anything that turns a prompt into a sequence of text messages."""

    async def analyze(self, prompt: str, max_turns: int) -> list[str]: ...


# ── Copilot SDK service ───────────────────────────────────────────────────

class CopilotAnalysisService:
    """AnalysisService backed by a tool-less Copilot SDK session."""

    def __init__(self, model: str = "gpt-4.1") -> None:
        self.model = model
        self._copilot_client: object | None = None
        self._copilot_session: object | None = None

    async def _ensure_copilot(self) -> None:
        """Lazily start the CopilotClient and create a session."""
        if self._copilot_session is not None:
            return
        import stat
        import tempfile

        from copilot import CopilotClient  # type: ignore[import-untyped]

        # The pip-installed SDK may ship the CLI binary without execute permission.
        try:
            import copilot.bin as _bin_pkg
            cli_bin = Path(_bin_pkg.__file__).parent / "copilot"
            if cli_bin.exists() and not os.access(cli_bin, os.X_OK):
                cli_bin.chmod(cli_bin.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        except (ImportError, OSError):
            logger.debug("Could not adjust Copilot CLI permissions", exc_info=True)

        # Temp CWD so the CLI never writes state into the caller's workspace.
        copilot_cwd = tempfile.mkdtemp(prefix="repo-onboarding-copilot-")
        self._copilot_client = CopilotClient({
            "cwd": copilot_cwd,
        })
        await self._copilot_client.start()  # type: ignore[union-attr]

        # Pure text responses only; returned text is never executed.
        async def deny_all_tools(input: dict, invocation: object) -> dict:
            return {
                "permissionDecision": "deny",
            }

        self._copilot_session = await self._copilot_client.create_session(  # type: ignore[union-attr]
            {
                "model": self.model,
                "infinite_sessions": {"enabled": False},
                "system_message": {"content": SYSTEM_MESSAGE},
                "hooks": {
                    "on_pre_tool_use": deny_all_tools,
                },
            }
        )

    async def analyze(self, prompt: str, max_turns: int = DEFAULT_MAX_TURNS) -> list[str]:
        """Send a prompt and collect assistant messages until idle or ``max_turns``."""
        await self._ensure_copilot()
        session = self._copilot_session
        done = asyncio.Event()
        messages: list[str] = []

        def _on_event(event: object) -> None:
            etype = getattr(getattr(event, "type", None), "value", "")
            data = getattr(event, "data", None)
            if etype == "assistant.message" and data:
                content = getattr(data, "content", "") or ""
                if content:
                    messages.append(content)
                if len(messages) >= max_turns:
                    done.set()
            elif etype == "session.idle":
                done.set()

        unsubscribe = session.on(_on_event)  # type: ignore[union-attr]
        try:
            await session.send({"prompt": prompt})  # type: ignore[union-attr]
            await done.wait()
        finally:
            if callable(unsubscribe):
                unsubscribe()

        return messages[:max_turns]

    async def close(self) -> None:
        """Tear down the session and client."""
        if self._copilot_session:
            try:
                await self._copilot_session.destroy()  # type: ignore[union-attr]
            except Exception:
                logger.debug("Copilot session teardown failed", exc_info=True)
            self._copilot_session = None
        if self._copilot_client:
            try:
                await self._copilot_client.stop()  # type: ignore[union-attr]
            except Exception:
                logger.debug("Copilot client teardown failed", exc_info=True)
            self._copilot_client = None


# ── Prompt ────────────────────────────────────────────────────────────────

ANALYSIS_ANGLES = (
    ("Code Architecture & Patterns", "Identify architectural patterns, frameworks, and design principles"),
    ("Data Model Analysis", "Analyze database schema, entity relationships, and data flow"),
    ("Feature Detection", "Identify main features and application capabilities as a bullet list"),
    ("Technology Stack", "Detailed breakdown of technologies, frameworks, and tools"),
    ("Setup Instructions", "Step-by-step developer setup based on the actual project structure"),
    ("Key Developer Insights", "Important things developers should know, as a bullet list"),
)


def build_prompt(
    snapshot: RepositorySnapshot,
    structure: ProjectStructure,
    max_chars: int = MAX_PROMPT_CHARS,
) -> str:
    """Embed repository summary and key-file contents, within ``max_chars``."""
    meta = snapshot.metadata
    language = meta.language or structure.language
    header = [
        f"Analyze this {language if language != 'Unknown' else 'software'} repository: "
        f"{snapshot.handle.full_name}",
        "",
        "Repository Overview:",
        f"- Language: {language}",
        f"- Framework: {structure.framework}",
        f"- Architecture: {structure.architecture_label}",
        f"- Files: {snapshot.file_count}",
        f"- Description: {meta.description or 'No description'}",
    ]
    footer = ["", "Please provide a comprehensive developer-focused analysis including:", ""]
    for i, (title, ask) in enumerate(ANALYSIS_ANGLES, 1):
        footer.append(f"{i}. **{title}**: {ask}")
    footer.append("")
    footer.append(
        "Focus on actionable insights that help developers understand and "
        "contribute to this project effectively."
    )

    head = "\n".join(header)
    tail = "\n".join(footer)
    budget = max_chars - len(head) - len(tail) - len("\n\nKey Files Content:\n")
    blocks: list[str] = []
    for kf in snapshot.key_files:
        if not kf.truncated_content:
            continue
        block = f"\n## {kf.path}\n{kf.truncated_content}"
        if len(block) > budget:
            break
        blocks.append(block)
        budget -= len(block)

    body = "\n\nKey Files Content:" + "".join(blocks) if blocks else ""
    return f"{head}{body}\n{tail}"


# ── Response parsing ──────────────────────────────────────────────────────

_HEADING = re.compile(r"^#{1,6}\s")
_BULLET = re.compile(r"^\s*[-*•]\s+(.+?)\s*$", re.MULTILINE)

ARCHITECTURE_KEYWORDS = ("architecture", "pattern")
DATA_MODEL_KEYWORDS = ("data model", "database", "schema")
FEATURE_KEYWORDS = ("feature", "capability")
SETUP_KEYWORDS = ("setup", "install")
INSIGHT_KEYWORDS = ("insight", "important")


def split_segments(messages: list[str]) -> list[str]:
    """Split each message on markdown headings; blank chunks are dropped.

    Lines inside fenced code blocks are never treated as headings, so shell
    comments in setup snippets stay with their section.
    """
    segments: list[str] = []
    for message in messages:
        current: list[str] = []
        in_fence = False
        for line in (message or "").splitlines():
            if line.lstrip().startswith("```"):
                in_fence = not in_fence
            elif not in_fence and _HEADING.match(line) and current:
                segments.append("\n".join(current))
                current = []
            current.append(line)
        segments.append("\n".join(current))
    return [s.strip() for s in segments if s.strip()]


def _bullets(segment: str) -> list[str]:
    return [m.strip() for m in _BULLET.findall(segment) if m.strip()]


def _matches(text: str, keywords: tuple[str, ...]) -> bool:
    return any(k in text for k in keywords)


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def parse_segments(messages: list[str]) -> EnrichmentResult:
    """Keyword-classify AI text into an EnrichmentResult.

    A segment may land in several buckets. No segments at all raises
    EnrichmentUnavailable; segments that match nothing still count as
    an AI-derived result carrying only the placeholder summary.
    """
    segments = split_segments(messages)
    if not segments:
        raise EnrichmentUnavailable("empty-response", "AI service returned no text")

    architecture: list[str] = []
    data_model: list[str] = []
    setup: list[str] = []
    features: list[str] = []
    insights: list[str] = []
    matched = False

    for segment in segments:
        text = segment.lower()
        if _matches(text, ARCHITECTURE_KEYWORDS):
            architecture.append(segment)
            matched = True
        if _matches(text, DATA_MODEL_KEYWORDS):
            data_model.append(segment)
            matched = True
        if _matches(text, FEATURE_KEYWORDS):
            features.extend(_bullets(segment))
            matched = True
        if _matches(text, SETUP_KEYWORDS):
            setup.append(segment)
            matched = True
        if _matches(text, INSIGHT_KEYWORDS):
            insights.extend(_bullets(segment))
            matched = True

    return EnrichmentResult(
        architecture_narrative="\n\n".join(architecture),
        data_model_narrative="\n\n".join(data_model),
        feature_list=_dedupe(features),
        setup_instructions="\n\n".join(setup),
        key_insights=_dedupe(insights),
        code_analysis="\n\n".join(segments),
        summary="" if matched else ANALYSIS_PLACEHOLDER,
        confidence=Confidence.ai_derived,
    )


# ── Adapter ───────────────────────────────────────────────────────────────

class EnrichmentAdapter:
    """Runs one AI analysis under a timeout and never fails the pipeline."""

    def __init__(
        self,
        service: Optional[AnalysisService],
        timeout: float = DEFAULT_TIMEOUT,
        max_turns: int = DEFAULT_MAX_TURNS,
        telemetry: Optional[Telemetry] = None,
    ) -> None:
        self.service = service
        self.timeout = timeout
        self.max_turns = max_turns
        self.telemetry = telemetry or Telemetry()
        self._deadline: Optional[float] = None

    async def enrich(
        self, snapshot: RepositorySnapshot, structure: ProjectStructure
    ) -> EnrichmentResult:
        try:
            return await self._enrich(snapshot, structure)
        except EnrichmentUnavailable as e:
            self.telemetry.fallback("enriching", e.reason)
            return EnrichmentResult.fallback()

    async def _enrich(
        self, snapshot: RepositorySnapshot, structure: ProjectStructure
    ) -> EnrichmentResult:
        if self.service is None:
            raise EnrichmentUnavailable("disabled", "AI enrichment is disabled")

        prompt = build_prompt(snapshot, structure)
        self._deadline = asyncio.get_running_loop().time() + self.timeout
        try:
            messages = await asyncio.wait_for(
                self.service.analyze(prompt, self.max_turns), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise EnrichmentUnavailable(
                "timeout", f"AI analysis exceeded {self.timeout:g}s"
            ) from e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("AI analysis failed: %s", e)
            raise EnrichmentUnavailable("transport", str(e)) from e

        if not isinstance(messages, list):
            raise EnrichmentUnavailable("empty-response", "AI service returned no messages")
        return parse_segments([m for m in messages if isinstance(m, str)])

    async def close(self) -> None:
        """Tear down the service within what is left of the timeout budget."""
        close = getattr(self.service, "close", None)
        if close is None:
            return
        budget = self.timeout
        if self._deadline is not None:
            budget = max(self._deadline - asyncio.get_running_loop().time(), 0.0)
        try:
            await asyncio.wait_for(close(), timeout=budget)
        except asyncio.TimeoutError:
            logger.warning("AI service teardown abandoned after the %gs budget", self.timeout)
