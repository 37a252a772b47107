"""Tests for configuration, errors and telemetry."""

import logging

import pytest

from repo_onboarding.config import Settings
from repo_onboarding.errors import RemoteApiError, RemoteApiKind
from repo_onboarding.logging import (
    FALLBACK_TRIGGERED,
    STAGE_STARTED,
    Telemetry,
    configure_logging,
    get_logger,
)


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.github_token is None
        assert settings.ai_enabled is True
        assert settings.ai_timeout == 90.0
        assert settings.max_turns == 3
        assert settings.api_base_url == "https://api.github.com"

    def test_from_env(self):
        settings = Settings.from_env({
            "GH_TOKEN": "ghp_x",
            "ONBOARDING_AI_ENABLED": "false",
            "ONBOARDING_AI_TIMEOUT": "12.5",
            "ONBOARDING_MAX_CONCURRENCY": "8",
            "ONBOARDING_LOG_LEVEL": "debug",
        })
        assert settings.github_token == "ghp_x"
        assert settings.ai_enabled is False
        assert settings.ai_timeout == 12.5
        assert settings.max_concurrency == 8
        assert settings.log_level == "DEBUG"

    def test_github_token_wins_over_gh_token(self):
        assert Settings.from_env({"GITHUB_TOKEN": "a", "GH_TOKEN": "b"}).github_token == "a"

    def test_bad_number(self):
        with pytest.raises(ValueError, match="ONBOARDING_AI_TIMEOUT"):
            Settings.from_env({"ONBOARDING_AI_TIMEOUT": "soon"})

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValueError):
            Settings.from_env({"ONBOARDING_AI_TIMEOUT": "0"})


class TestRemoteApiError:
    @pytest.mark.parametrize(
        "status,body,kind",
        [
            (404, "", RemoteApiKind.not_found),
            (401, "Bad credentials", RemoteApiKind.unauthorized),
            (403, "API rate limit exceeded", RemoteApiKind.rate_limited),
            (429, "", RemoteApiKind.rate_limited),
            (403, "Resource not accessible", RemoteApiKind.unauthorized),
            (500, "", RemoteApiKind.unknown),
        ],
    )
    def test_from_status(self, status, body, kind):
        error = RemoteApiError.from_status("acme", "widget", status, body)
        assert error.kind == kind
        assert error.status_code == status

    def test_saml_message(self):
        error = RemoteApiError.from_status("acme", "widget", 403, "SAML enforcement")
        assert "SAML" in error.message


class TestTelemetry:
    def test_records_in_order(self):
        telemetry = Telemetry()
        telemetry.stage_started("gathering", repo="acme/widget")
        telemetry.fallback("enriching", "timeout")

        assert [e.kind for e in telemetry.events] == [STAGE_STARTED, FALLBACK_TRIGGERED]
        assert telemetry.events[0].fields == {"repo": "acme/widget"}
        assert telemetry.of_kind(FALLBACK_TRIGGERED)[0].detail == "timeout"

    def test_mirrors_to_logger(self, caplog):
        logger = logging.getLogger("test.telemetry")
        with caplog.at_level(logging.WARNING, logger="test.telemetry"):
            Telemetry(logger).fallback("enriching", "disabled")
        assert "enriching fallback_triggered disabled" in caplog.text


class TestLogging:
    def test_get_logger_namespace(self):
        assert get_logger("fetcher").name == "repo_onboarding.fetcher"
        assert get_logger().name == "repo_onboarding"

    def test_configure_is_idempotent(self, tmp_path):
        log_file = tmp_path / "run.log"
        configure_logging("DEBUG", log_file)
        logger = configure_logging("DEBUG", log_file)
        assert len(logger.handlers) == 2
        get_logger("x").debug("hello")
        for handler in logger.handlers:
            handler.flush()
        assert "hello" in log_file.read_text()
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True
