"""Runtime configuration read from the environment (and ``.env``)."""

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

_FALSY = {"0", "false", "no", "off"}


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


class Settings(BaseModel):
    """All tunables for a pipeline run and the service around it."""

    github_token: Optional[str] = None
    model: str = "gpt-4.1"
    ai_enabled: bool = True
    ai_timeout: float = Field(default=90.0, gt=0)
    max_turns: int = Field(default=3, ge=1)
    max_concurrency: int = Field(default=4, ge=1)
    api_base_url: str = "https://api.github.com"
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if env is None else env
        ai_flag = env.get("ONBOARDING_AI_ENABLED", "").strip().lower()
        return cls(
            github_token=env.get("GITHUB_TOKEN") or env.get("GH_TOKEN") or None,
            model=env.get("ONBOARDING_MODEL") or "gpt-4.1",
            ai_enabled=ai_flag not in _FALSY,
            ai_timeout=_env_float(env, "ONBOARDING_AI_TIMEOUT", 90.0),
            max_turns=_env_int(env, "ONBOARDING_AI_MAX_TURNS", 3),
            max_concurrency=_env_int(env, "ONBOARDING_MAX_CONCURRENCY", 4),
            api_base_url=env.get("GITHUB_API_URL") or "https://api.github.com",
            host=env.get("ONBOARDING_HOST") or "127.0.0.1",
            port=_env_int(env, "ONBOARDING_PORT", 8000),
            log_level=(env.get("ONBOARDING_LOG_LEVEL") or "INFO").upper(),
        )
