"""Progress streamer: drives one onboarding run and emits its event stream.

Stages run in a fixed order with fixed progress checkpoints::

    Gathering (5) → Classifying (35) → Inferring (50)
        → Enriching (60) → Synthesizing (90) → Done

Only validation and the gathering stage can end a run with an error
event; every later stage degrades instead of failing.
"""

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from repo_onboarding.config import Settings
from repo_onboarding.enrichment import CopilotAnalysisService, EnrichmentAdapter
from repo_onboarding.errors import RemoteApiError, ValidationError
from repo_onboarding.fetcher import GitHubFetcher
from repo_onboarding.gatherer import DataGatherer, assemble_snapshot
from repo_onboarding.inferencer import infer
from repo_onboarding.logging import Telemetry, get_logger
from repo_onboarding.models import (
    ErrorEvent,
    ErrorPayload,
    ProgressEvent,
    ProgressPayload,
    ProgressUpdate,
    RepositoryHandle,
    ResultEvent,
)
from repo_onboarding.synthesizer import synthesize

logger = get_logger("pipeline")

T = TypeVar("T")

DisconnectProbe = Callable[[], Awaitable[bool]]
EnricherFactory = Callable[[], EnrichmentAdapter]

SSE_DONE = "data: [DONE]\n\n"

GATHERING = ("gathering", "Gathering repository data...", 5)
CLASSIFYING = ("classifying", "Classifying key files...", 35)
INFERRING = ("inferring", "Inferring project structure...", 50)
ENRICHING = ("enriching", "Running AI analysis...", 60)
SYNTHESIZING = ("synthesizing", "Synthesizing onboarding report...", 90)


class ClientDisconnected(Exception):
    """The consumer went away; the run stops without emitting anything else."""


def encode_sse(event: ProgressEvent) -> str:
    """Encode one event as a Server-Sent-Events ``data:`` frame."""
    return f"data: {event.model_dump_json()}\n\n"


def validate_handle(owner: Optional[str], name: Optional[str]) -> RepositoryHandle:
    owner = (owner or "").strip()
    name = (name or "").strip()
    if not owner:
        raise ValidationError("Repository owner is required", field="owner")
    if not name:
        raise ValidationError("Repository name is required", field="name")
    return RepositoryHandle(owner=owner, name=name)


def _progress(checkpoint: tuple[str, str, int]) -> ProgressUpdate:
    _, message, percent = checkpoint
    return ProgressUpdate(progress=ProgressPayload(message=message, percent=percent))


class OnboardingPipeline:
    """Single-run driver; each call to ``start_analysis`` owns its own data."""

    def __init__(
        self,
        gatherer: Optional[DataGatherer] = None,
        enricher_factory: Optional[EnricherFactory] = None,
        telemetry: Optional[Telemetry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        poll_interval: float = 0.1,
    ) -> None:
        self.telemetry = telemetry or Telemetry()
        self.gatherer = gatherer or DataGatherer(telemetry=self.telemetry)
        self._enricher_factory = enricher_factory or (
            lambda: EnrichmentAdapter(None, telemetry=self.telemetry)
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.poll_interval = poll_interval

    async def start_analysis(
        self,
        owner: Optional[str],
        name: Optional[str],
        token: Optional[str],
        is_disconnected: Optional[DisconnectProbe] = None,
    ) -> AsyncIterator[ProgressEvent]:
        """Yield progress events, then exactly one result or error event."""
        try:
            handle = validate_handle(owner, name)
        except ValidationError as e:
            self.telemetry.stage_failed("validation", e.message, field=e.field)
            yield ErrorEvent(error=ErrorPayload(message=e.message, kind=e.kind))
            return

        try:
            # ── Gathering ─────────────────────────────────────────────
            self.telemetry.stage_started(GATHERING[0], repo=handle.full_name)
            yield _progress(GATHERING)
            try:
                raw = await self._run(self.gatherer.fetch(handle, token), is_disconnected)
            except RemoteApiError as e:
                self.telemetry.stage_failed(GATHERING[0], e.message, kind=e.kind.value)
                yield ErrorEvent(error=ErrorPayload(message=e.message, kind=e.kind.value))
                return
            except ClientDisconnected:
                raise
            except Exception as e:
                logger.exception("Unexpected failure while gathering %s", handle.full_name)
                self.telemetry.stage_failed(GATHERING[0], str(e), kind="unknown")
                yield ErrorEvent(
                    error=ErrorPayload(
                        message=f"Failed to gather repository data: {e}", kind="unknown"
                    )
                )
                return
            self.telemetry.stage_completed(GATHERING[0], files=len(raw.contents))

            # ── Classifying ───────────────────────────────────────────
            await self._check(is_disconnected)
            self.telemetry.stage_started(CLASSIFYING[0])
            yield _progress(CLASSIFYING)
            snapshot = assemble_snapshot(raw)
            self.telemetry.stage_completed(CLASSIFYING[0], key_files=len(snapshot.key_files))

            # ── Inferring ─────────────────────────────────────────────
            await self._check(is_disconnected)
            self.telemetry.stage_started(INFERRING[0])
            yield _progress(INFERRING)
            structure = infer(snapshot.key_files)
            self.telemetry.stage_completed(
                INFERRING[0],
                framework=structure.framework,
                architecture=structure.architecture_label,
            )

            # ── Enriching ─────────────────────────────────────────────
            await self._check(is_disconnected)
            self.telemetry.stage_started(ENRICHING[0])
            yield _progress(ENRICHING)
            enricher = self._enricher_factory()
            try:
                enrichment = await self._run(
                    enricher.enrich(snapshot, structure), is_disconnected
                )
            finally:
                await enricher.close()
            self.telemetry.stage_completed(ENRICHING[0], confidence=enrichment.confidence.value)

            # ── Synthesizing ──────────────────────────────────────────
            await self._check(is_disconnected)
            self.telemetry.stage_started(SYNTHESIZING[0])
            yield _progress(SYNTHESIZING)
            report = synthesize(snapshot, structure, enrichment, generated_at=self._clock())
            self.telemetry.stage_completed(SYNTHESIZING[0], mode=report.analysis_mode.value)

            await self._check(is_disconnected)
            yield ResultEvent(result=report)
        except ClientDisconnected:
            logger.info("Client disconnected; abandoning run for %s", handle.full_name)

    async def _check(self, is_disconnected: Optional[DisconnectProbe]) -> None:
        if is_disconnected is not None and await is_disconnected():
            raise ClientDisconnected()

    async def _run(
        self, coro: Awaitable[T], is_disconnected: Optional[DisconnectProbe]
    ) -> T:
        """Await ``coro`` as a task, cancelling it if the consumer disconnects."""
        task = asyncio.ensure_future(coro)
        try:
            while True:
                done, _ = await asyncio.wait({task}, timeout=self.poll_interval)
                if done:
                    return task.result()
                await self._check(is_disconnected)
        finally:
            if not task.done():
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)


def build_pipeline(settings: Settings, telemetry: Optional[Telemetry] = None) -> OnboardingPipeline:
    """Wire a pipeline from settings: GitHub fetcher plus optional Copilot analysis."""
    telemetry = telemetry or Telemetry()

    def fetcher_factory(token: Optional[str]) -> GitHubFetcher:
        return GitHubFetcher(token=token or settings.github_token, base_url=settings.api_base_url)

    def enricher_factory() -> EnrichmentAdapter:
        service = CopilotAnalysisService(model=settings.model) if settings.ai_enabled else None
        return EnrichmentAdapter(
            service,
            timeout=settings.ai_timeout,
            max_turns=settings.max_turns,
            telemetry=telemetry,
        )

    return OnboardingPipeline(
        gatherer=DataGatherer(
            fetcher_factory=fetcher_factory,
            max_concurrency=settings.max_concurrency,
            telemetry=telemetry,
        ),
        enricher_factory=enricher_factory,
        telemetry=telemetry,
    )
