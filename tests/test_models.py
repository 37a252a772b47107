"""Tests for data models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from repo_onboarding.models import (
    AnalysisMode,
    Confidence,
    EnrichmentResult,
    ErrorEvent,
    ErrorPayload,
    FileCategory,
    KeyFile,
    OnboardingReport,
    ProgressPayload,
    ProgressUpdate,
    RepositoryHandle,
    ResultEvent,
    is_terminal,
)


def _report() -> OnboardingReport:
    return OnboardingReport(
        onboarding_guide="# Guide",
        technical_analysis="# Analysis",
        recommendations=("Clone the repository and review all README files",),
        generated_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
        analysis_mode=AnalysisMode.heuristic_fallback,
    )


class TestRepositoryHandle:
    def test_full_name(self):
        assert RepositoryHandle(owner="acme", name="widget").full_name == "acme/widget"

    def test_frozen(self):
        handle = RepositoryHandle(owner="acme", name="widget")
        with pytest.raises(PydanticValidationError):
            handle.owner = "other"


class TestKeyFile:
    def test_filename(self):
        assert KeyFile(path="services/api/package.json").filename == "package.json"

    def test_defaults(self):
        kf = KeyFile(path="x.cfg")
        assert kf.category == FileCategory.generic_code
        assert kf.insights == ()
        assert kf.manifest is None


class TestEnrichmentResult:
    def test_fallback_is_empty(self):
        result = EnrichmentResult.fallback()
        assert result.confidence == Confidence.heuristic_fallback
        assert result.feature_list == []
        assert result.summary == ""


class TestEvents:
    def test_progress_serialization(self):
        event = ProgressUpdate(progress=ProgressPayload(message="Inferring project structure...", percent=50))
        assert event.model_dump(mode="json") == {
            "type": "progress",
            "progress": {"message": "Inferring project structure...", "percent": 50},
        }
        assert not is_terminal(event)

    def test_result_serialization(self):
        event = ResultEvent(result=_report())
        data = event.model_dump(mode="json")
        assert data["type"] == "result"
        assert data["result"]["analysis_mode"] == "heuristic-fallback"
        assert data["result"]["recommendations"] == ["Clone the repository and review all README files"]
        assert is_terminal(event)

    def test_error_default_kind(self):
        event = ErrorEvent(error=ErrorPayload(message="boom"))
        assert event.error.kind == "unknown"
        assert is_terminal(event)
