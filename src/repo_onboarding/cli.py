"""CLI entry point for repo-onboarding."""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from repo_onboarding.config import Settings
from repo_onboarding.logging import configure_logging
from repo_onboarding.screens.home import parse_repo_ref


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo-onboarding",
        description="Generate developer onboarding reports for GitHub repositories.",
    )
    parser.add_argument("--log-level", default=None, help="Override ONBOARDING_LOG_LEVEL")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("tui", help="Launch the interactive terminal UI (default)")

    serve = sub.add_parser("serve", help="Run the HTTP streaming service")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    report = sub.add_parser("report", help="Print a markdown report to stdout")
    report.add_argument("repo", help="owner/repo")
    report.add_argument("--no-ai", action="store_true", help="Skip AI enrichment")
    return parser


async def _print_report(settings: Settings, owner: str, name: str) -> int:
    from repo_onboarding.pipeline import build_pipeline

    pipeline = build_pipeline(settings)
    async for event in pipeline.start_analysis(owner, name, settings.github_token):
        if event.type == "progress":
            print(f"[{event.progress.percent:>3}%] {event.progress.message}", file=sys.stderr)
        elif event.type == "error":
            print(f"❌ {event.error.message}", file=sys.stderr)
            return 1
        elif event.type == "result":
            report = event.result
            print(report.onboarding_guide)
            print(report.technical_analysis)
            print("# ✅ Recommendations\n")
            for rec in report.recommendations:
                print(f"- {rec}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Dispatch to the TUI, the HTTP service or a one-shot report."""
    from dotenv import load_dotenv

    load_dotenv()  # Load .env file (e.g. GITHUB_TOKEN)

    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level, args.log_file)

    if args.command == "serve":
        from repo_onboarding.server import run_service

        run_service(host=args.host or settings.host, port=args.port or settings.port)
        return 0

    if args.command == "report":
        try:
            owner, name = parse_repo_ref(args.repo)
        except ValueError as e:
            print(f"⚠  {e}", file=sys.stderr)
            return 2
        if args.no_ai:
            settings = settings.model_copy(update={"ai_enabled": False})
        return asyncio.run(_print_report(settings, owner, name))

    from repo_onboarding.app import OnboardingApp

    OnboardingApp(settings=settings).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
