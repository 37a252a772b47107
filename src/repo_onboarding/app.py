"""Main Textual TUI application for repo-onboarding."""

from typing import Callable, Optional

from textual.app import App

from repo_onboarding.config import Settings
from repo_onboarding.models import ErrorPayload, OnboardingReport
from repo_onboarding.pipeline import OnboardingPipeline, build_pipeline
from repo_onboarding.screens.home import HomeScreen
from repo_onboarding.screens.loading import LoadingScreen
from repo_onboarding.screens.results import ResultsScreen


def describe_error(error: ErrorPayload, has_token: bool) -> str:
    """User-facing text for a terminal error event."""
    if error.kind == "rate-limited" and not has_token:
        return (
            "GitHub API rate limit exceeded "
            "(unauthenticated: 60 req/hour). "
            "Set GITHUB_TOKEN to get 5 000 req/hour."
        )
    if error.kind == "unauthorized" and not has_token:
        return (
            "Access denied — no GitHub token found. "
            "Set GITHUB_TOKEN env var: "
            "export GITHUB_TOKEN=ghp_… "
            "(or: export GITHUB_TOKEN=$(gh auth token))"
        )
    return error.message


class OnboardingApp(App):
    """TUI application that streams an onboarding run into three report tabs."""

    TITLE = "Repo Onboarding"
    SUB_TITLE = "Setup · Architecture · Recommendations"

    CSS = """
    Screen {
        background: $background;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        settings: Optional[Settings] = None,
        pipeline_factory: Optional[Callable[[], OnboardingPipeline]] = None,
    ) -> None:
        super().__init__()
        self.settings = settings or Settings.from_env()
        self._pipeline_factory = pipeline_factory or (lambda: build_pipeline(self.settings))

    def on_mount(self) -> None:
        self.push_screen(HomeScreen())

    def run_onboarding(self, owner: str, repo: str) -> None:
        """Kick off a run (called from HomeScreen)."""
        full_name = f"{owner}/{repo}"
        loading = LoadingScreen(full_name)
        self.push_screen(loading)

        async def _do_work() -> None:
            pipeline = self._pipeline_factory()
            async for event in pipeline.start_analysis(owner, repo, self.settings.github_token):
                if event.type == "progress":
                    loading.update_status(event.progress.message, event.progress.percent)
                elif event.type == "error":
                    loading.show_error(
                        describe_error(event.error, bool(self.settings.github_token))
                    )
                elif event.type == "result" and self.screen is loading:
                    loading.update_status("Complete!", 100)
                    self._show_results(full_name, event.result)

        self.run_worker(_do_work(), exclusive=True)

    def _show_results(self, repo: str, report: OnboardingReport) -> None:
        """Replace loading screen with results."""
        self.pop_screen()
        self.push_screen(ResultsScreen(repo, report))
