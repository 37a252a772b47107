"""Loading screen: a checklist of pipeline stages fed by progress events."""

from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, Label, ProgressBar, Static

from repo_onboarding.pipeline import CLASSIFYING, ENRICHING, GATHERING, INFERRING, SYNTHESIZING

STAGES = (GATHERING, CLASSIFYING, INFERRING, ENRICHING, SYNTHESIZING)


def stage_marker(checkpoint: int, percent: int, failed: bool = False) -> str:
    """Checklist glyph for a stage whose checkpoint is ``checkpoint``."""
    if percent > checkpoint:
        return "✅"
    if percent == checkpoint:
        return "❌" if failed else "⏳"
    return "▫️"


class LoadingScreen(Screen):
    """Displayed while an onboarding run is streaming."""

    BINDINGS = [
        ("b", "go_back", "Back"),
    ]

    CSS = """
    LoadingScreen {
        align: center middle;
    }
    #run-panel {
        width: 64;
        height: auto;
        padding: 1 3;
        border: round $primary;
        background: $surface;
    }
    #run-title {
        text-style: bold;
        margin-bottom: 1;
    }
    .stage {
        height: 1;
    }
    #run-bar {
        margin-top: 1;
    }
    #run-message {
        color: $text-muted;
        margin-top: 1;
    }
    """

    def __init__(self, repo: str = "", **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.repo = repo
        self.percent = 0

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Center():
            with Vertical(id="run-panel"):
                yield Static(f"🚀  Onboarding {self.repo or 'repository'}", id="run-title")
                for key, message, percent in STAGES:
                    yield Label(self._stage_line(message, percent), id=f"stage-{key}", classes="stage")
                yield ProgressBar(total=100, show_eta=False, id="run-bar")
                yield Label("", id="run-message")
        yield Footer()

    def _stage_line(self, message: str, checkpoint: int, failed: bool = False) -> str:
        return f"{stage_marker(checkpoint, self.percent, failed)}  {message.rstrip('.')}"

    def _refresh_stages(self, failed: bool = False) -> None:
        for key, message, checkpoint in STAGES:
            self.query_one(f"#stage-{key}", Label).update(
                self._stage_line(message, checkpoint, failed)
            )

    def update_status(self, message: str, progress: int | None = None) -> None:
        if progress is not None:
            self.percent = progress
        if not self.is_mounted:
            return
        self._refresh_stages()
        self.query_one("#run-bar", ProgressBar).update(progress=self.percent)
        self.query_one("#run-message", Label).update(message)

    def show_error(self, message: str) -> None:
        if not self.is_mounted:
            return
        self._refresh_stages(failed=True)
        self.query_one("#run-message", Label).update(
            f"❌ {message}\nPress [b]b[/b] to go back and try again."
        )

    def action_go_back(self) -> None:
        self.app.pop_screen()
