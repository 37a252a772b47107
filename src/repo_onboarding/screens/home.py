"""Home screen — repository input."""

from textual import on
from textual.app import ComposeResult
from textual.containers import Center, Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Input, Label, Static


def parse_repo_ref(value: str) -> tuple[str, str]:
    """Split ``owner/repo`` (or a github.com URL) into its two parts.

    Raises ValueError with a user-facing message when the input is unusable.
    """
    ref = value.strip().removesuffix("/").removesuffix(".git")
    for prefix in ("https://github.com/", "http://github.com/", "github.com/"):
        if ref.startswith(prefix):
            ref = ref[len(prefix):]
            break
    parts = ref.split("/")
    if len(parts) != 2:
        raise ValueError("Enter a valid owner/repo (e.g. excalidraw/excalidraw)")
    owner, name = parts
    if not owner or not name:
        raise ValueError("Both owner and repo name are required")
    return owner, name


class HomeScreen(Screen):
    """Initial screen to collect the repository."""

    CSS = """
    HomeScreen {
        align: center middle;
    }
    #home-container {
        width: 72;
        height: auto;
        padding: 1 4;
        border: round $primary;
        background: $surface;
    }
    #title {
        text-align: center;
        text-style: bold;
        color: $accent;
        margin-bottom: 0;
    }
    #subtitle {
        text-align: center;
        color: $text-muted;
        margin-bottom: 2;
    }
    .field-label {
        margin-top: 1;
        color: $text;
    }
    #start-btn {
        margin-top: 2;
        width: 100%;
    }
    #error-label {
        color: $error;
        text-align: center;
        margin-top: 1;
    }
    """

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Center():
            with Vertical(id="home-container"):
                yield Static("🚀  Repository Onboarding", id="title")
                yield Static(
                    "Setup · Architecture · Recommendations",
                    id="subtitle",
                )
                yield Label("Repository (owner/repo):", classes="field-label")
                yield Input(
                    placeholder="e.g. excalidraw/excalidraw",
                    id="repo-input",
                )
                yield Button("▶  Generate Onboarding Guide", id="start-btn", variant="primary")
                yield Label("", id="error-label")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#repo-input", Input).focus()

    @on(Button.Pressed, "#start-btn")
    def start_onboarding(self) -> None:
        repo_input = self.query_one("#repo-input", Input)
        error_label = self.query_one("#error-label", Label)

        try:
            owner, name = parse_repo_ref(repo_input.value)
        except ValueError as e:
            error_label.update(f"⚠  {e}")
            return

        error_label.update("")
        self.app.run_onboarding(owner, name)  # type: ignore[attr-defined]

    @on(Input.Submitted, "#repo-input")
    def submit_on_enter(self) -> None:
        self.start_onboarding()
