"""Repo Onboarding — onboarding reports for unfamiliar GitHub repositories.

Gathers repository data from the GitHub REST API, classifies key files,
infers the project structure, optionally enriches it with a Copilot SDK
analysis pass, and streams progress plus a final onboarding report.
"""

__version__ = "0.1.0"
