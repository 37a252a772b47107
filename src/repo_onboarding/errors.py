"""Error taxonomy for the onboarding pipeline."""

from enum import Enum
from typing import Optional


class OnboardingError(Exception):
    """Base class for every pipeline error."""


class ValidationError(OnboardingError):
    """Malformed invocation input (missing owner or repository name)."""

    kind = "validation"

    def __init__(self, message: str, field: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class RemoteApiKind(str, Enum):
    """Why the mandatory repository-metadata call failed."""

    not_found = "not-found"
    unauthorized = "unauthorized"
    rate_limited = "rate-limited"
    unknown = "unknown"


class RemoteApiError(OnboardingError):
    """The hosting API refused or failed the repository-metadata call."""

    def __init__(
        self,
        kind: RemoteApiKind,
        message: str,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @classmethod
    def from_status(
        cls, owner: str, name: str, status_code: int, body: str = ""
    ) -> "RemoteApiError":
        """Map an HTTP status (and response body) onto an error kind."""
        lowered = body.lower()
        if status_code == 404:
            return cls(
                RemoteApiKind.not_found,
                f"Repository '{owner}/{name}' not found. Check the owner/repo name and try again.",
                status_code,
            )
        if status_code == 429 or (status_code == 403 and "rate limit" in lowered):
            return cls(
                RemoteApiKind.rate_limited,
                "GitHub API rate limit exceeded. Wait a few minutes and retry, "
                "or authenticate with a token to get 5 000 req/hour.",
                status_code,
            )
        if status_code == 401:
            return cls(
                RemoteApiKind.unauthorized,
                "Authentication failed. Please check your GitHub token.",
                status_code,
            )
        if status_code == 403:
            if "saml" in lowered:
                msg = (
                    "This org requires SAML SSO. Authorize your token for the "
                    "organization and try again."
                )
            else:
                msg = (
                    "Access denied. The repository may be private "
                    "or your token lacks permissions."
                )
            return cls(RemoteApiKind.unauthorized, msg, status_code)
        return cls(
            RemoteApiKind.unknown,
            f"GitHub API error ({status_code}) while fetching '{owner}/{name}'.",
            status_code,
        )


class EnrichmentUnavailable(OnboardingError):
    """The AI analysis pass produced nothing usable. Never leaves the adapter."""

    def __init__(self, reason: str, message: str = "") -> None:
        super().__init__(message or reason)
        self.reason = reason
