"""Results screen — tabbed onboarding guide, technical analysis and recommendations."""

from textual.app import ComposeResult
from textual.containers import VerticalScroll
from textual.screen import Screen
from textual.widgets import Footer, Header, Markdown, Static, TabbedContent, TabPane

from repo_onboarding.models import AnalysisMode, OnboardingReport

MODE_LABELS = {
    AnalysisMode.ai_enhanced: "🤖 AI-enhanced",
    AnalysisMode.heuristic_fallback: "📐 Heuristic analysis (AI unavailable)",
}


def recommendations_markdown(report: OnboardingReport) -> str:
    return "\n".join(f"- {rec}" for rec in report.recommendations)


class ResultsScreen(Screen):
    """Report display with one tab per artifact."""

    CSS = """
    ResultsScreen {
        layout: vertical;
    }
    #results-header {
        height: 3;
        background: $primary;
        color: $text;
        text-align: center;
        padding: 1 2;
        text-style: bold;
    }
    .section-title {
        text-style: bold;
        margin: 1 0;
        color: $secondary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("b", "go_back", "Back"),
    ]

    def __init__(self, repo: str, report: OnboardingReport, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(**kwargs)
        self.repo = repo
        self.report = report

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        generated = self.report.generated_at.strftime("%Y-%m-%d %H:%M UTC")
        yield Static(
            f"  📊  {self.repo}  ·  {MODE_LABELS[self.report.analysis_mode]}  ·  {generated}  ",
            id="results-header",
        )

        with TabbedContent("🚀 Onboarding Guide", "🔬 Technical Analysis", "✅ Recommendations"):
            with TabPane("🚀 Onboarding Guide"):
                with VerticalScroll():
                    yield Markdown(self.report.onboarding_guide)
            with TabPane("🔬 Technical Analysis"):
                with VerticalScroll():
                    yield Markdown(self.report.technical_analysis)
            with TabPane("✅ Recommendations"):
                with VerticalScroll():
                    yield Static("RECOMMENDED NEXT STEPS", classes="section-title")
                    yield Markdown(recommendations_markdown(self.report))

        yield Footer()

    def action_go_back(self) -> None:
        self.app.pop_screen()
