"""Tests for the synthesizer module."""

from datetime import datetime, timedelta, timezone

import pytest

from repo_onboarding.inferencer import infer
from repo_onboarding.models import (
    AnalysisMode,
    Confidence,
    EnrichmentResult,
    ReportDocument,
)
from repo_onboarding.synthesizer import (
    MAX_GUIDE_FEATURES,
    MAX_RECOMMENDATIONS,
    activity_level,
    build_onboarding_guide,
    build_recommendations,
    build_technical_analysis,
    language_distribution,
    render_markdown,
    setup_template,
    synthesize,
)

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)

AI_RESULT = EnrichmentResult(
    architecture_narrative="Layered architecture with a service pattern. " * 3,
    data_model_narrative="PostgreSQL database managed through a prisma schema. " * 2,
    feature_list=[f"Feature {i}" for i in range(1, 9)],
    setup_instructions="Install Node 20, run npm install, then npm run dev to start the server.",
    key_insights=[f"Insight {i}" for i in range(1, 13)],
    code_analysis="Full analysis text",
    confidence=Confidence.ai_derived,
)


class TestActivityLevel:
    @pytest.mark.parametrize(
        "days,label",
        [(0, "Very Active"), (6, "Very Active"), (7, "Active"), (29, "Active"),
         (30, "Moderate"), (89, "Moderate"), (90, "Low Activity"), (400, "Low Activity")],
    )
    def test_thresholds(self, days, label):
        assert activity_level(NOW - timedelta(days=days), NOW) == (label, days)

    def test_missing_date(self):
        assert activity_level(None, NOW) == ("Unknown", None)


class TestSetupTemplate:
    def test_javascript_with_prisma_env_and_compose(self, make_snapshot, react_package_json):
        snapshot = make_snapshot({
            "package.json": react_package_json,
            "prisma/schema.prisma": "model User {\n  id Int @id\n}\n",
            ".env.example": "DATABASE_URL=\n",
            "docker-compose.yml": "services:\n  web:\n    build: .\n",
        })
        text = setup_template(snapshot, infer(snapshot.key_files))
        assert text.startswith("```bash\n# Clone the repository")
        assert "git clone https://github.com/acme/widget.git" in text
        assert "cp .env.example .env" in text
        assert text.index("npm install") < text.index("npx prisma generate") < text.index("npm run dev")
        assert "docker compose up" in text
        assert text.endswith("```")

    def test_python_requirements(self, make_snapshot):
        snapshot = make_snapshot({"requirements.txt": "django==4.2\n"}, language="Python")
        text = setup_template(snapshot, infer(snapshot.key_files))
        assert "python -m venv venv" in text
        assert "pip install -r requirements.txt" in text
        assert "python manage.py runserver" in text

    def test_sql_schema_step(self, make_snapshot):
        snapshot = make_snapshot({"go.mod": "module x.io/y\n", "db/schema.sql": "CREATE TABLE t (id int);"})
        text = setup_template(snapshot, infer(snapshot.key_files))
        assert "go mod download" in text
        assert "# Apply the database schema in db/schema.sql" in text

    def test_unknown_language_placeholder(self, make_snapshot):
        snapshot = make_snapshot(language=None)
        text = setup_template(snapshot, infer(snapshot.key_files))
        assert "See the README" in text


class TestOnboardingGuide:
    def test_ai_sections_and_caps(self, make_snapshot, react_package_json):
        snapshot = make_snapshot({"package.json": react_package_json})
        doc = build_onboarding_guide(snapshot, infer(snapshot.key_files), AI_RESULT)

        assert doc.keys == ["overview", "architecture", "data_model", "setup", "insights", "key_files"]
        overview = doc.section("overview").body
        assert "Feature 6" in overview and "Feature 7" not in overview
        assert overview.count("\n- Feature") == MAX_GUIDE_FEATURES
        assert doc.section("setup").body.startswith("Install Node 20")
        assert doc.section("insights").body.count("- Insight") == 10
        assert "`package.json`" in doc.section("key_files").body

    def test_heuristic_branch(self, make_snapshot, express_package_json):
        snapshot = make_snapshot(
            {"package.json": express_package_json, "Dockerfile": "FROM node:20\n"},
            stargazers_count=500,
        )
        doc = build_onboarding_guide(snapshot, infer(snapshot.key_files), EnrichmentResult.fallback())

        assert "architecture" not in doc.keys
        assert "data_model" not in doc.keys
        assert doc.section("setup").body.startswith("```bash")
        insights = doc.section("insights").body
        assert "Popular project with 500 stars" in insights
        assert "Built with Express.js" in insights
        assert "Tests use Jest" in insights
        assert doc.title == "🚀 Developer Onboarding Guide"

    def test_short_ai_setup_uses_template(self, make_snapshot):
        enrichment = AI_RESULT.model_copy(update={"setup_instructions": "npm i"})
        doc = build_onboarding_guide(make_snapshot(), infer([]), enrichment)
        assert doc.section("setup").body.startswith("```bash")

    def test_placeholder_summary_shown(self, make_snapshot):
        enrichment = EnrichmentResult(summary="Analysis completed", confidence=Confidence.ai_derived)
        doc = build_onboarding_guide(make_snapshot(), infer([]), enrichment)
        assert "Analysis completed" in doc.section("overview").body


class TestTechnicalAnalysis:
    def test_sections(self, make_snapshot, react_package_json):
        snapshot = make_snapshot(
            {"package.json": react_package_json},
            tree=["package.json", "src/App.tsx", "src/main.tsx", "src/util.ts", "README.md"],
        )
        doc = build_technical_analysis(snapshot, infer(snapshot.key_files), AI_RESULT, NOW)

        assert doc.keys[0] == "code_analysis"
        assert "| React TypeScript | 2 | 40.0% |" in doc.section("languages").body
        assert "`react` ^18.2.0" in doc.section("dependencies").body
        health = doc.section("health").body
        assert "**Total Files**: 5" in health
        assert "Very Active (2 days since last update)" in health

    def test_architecture_summary_without_ai(self, make_snapshot):
        doc = build_technical_analysis(make_snapshot(), infer([]), EnrichmentResult.fallback(), NOW)
        assert "code_analysis" not in doc.keys
        assert "**Build System**: Not detected" in doc.section("architecture").body

    def test_code_analysis_capped(self, make_snapshot):
        enrichment = AI_RESULT.model_copy(update={"code_analysis": "y" * 5000})
        doc = build_technical_analysis(make_snapshot(), infer([]), enrichment, NOW)
        assert len(doc.section("code_analysis").body) == 2500


class TestRecommendations:
    def test_never_empty_without_ai(self, make_snapshot):
        recs = build_recommendations(make_snapshot(), infer([]), EnrichmentResult.fallback())
        assert recs
        assert recs[0] == "Clone the repository and review all README files"

    def test_ai_insights_first_and_capped(self, make_snapshot):
        recs = build_recommendations(make_snapshot(), infer([]), AI_RESULT)
        assert recs[:6] == [f"Insight {i}" for i in range(1, 7)]
        assert "Insight 7" not in recs
        assert len(recs) <= MAX_RECOMMENDATIONS

    def test_prisma_and_issue_triage(self, make_snapshot):
        snapshot = make_snapshot(
            {"prisma/schema.prisma": "model A {\n id Int @id\n}\n"},
            open_issues_count=42,
        )
        recs = build_recommendations(snapshot, infer(snapshot.key_files), EnrichmentResult.fallback())
        assert "Run `npx prisma generate` to generate the client" in recs
        assert any("42 open issues" in r for r in recs)

    def test_feature_exploration(self, make_snapshot):
        enrichment = EnrichmentResult(feature_list=["Search", "Export"], confidence=Confidence.ai_derived)
        recs = build_recommendations(make_snapshot(), infer([]), enrichment)
        assert "Explore the Search implementation" in recs


class TestRender:
    def test_render_markdown(self):
        doc = ReportDocument(title="Guide", subtitle="acme/widget")
        doc.add("a", "First", "body one")
        doc.add("b", "Second", "body two")
        assert render_markdown(doc) == (
            "# Guide\n*acme/widget*\n\n## First\nbody one\n\n## Second\nbody two\n"
        )


class TestSynthesize:
    def test_modes(self, make_snapshot):
        snapshot = make_snapshot()
        structure = infer([])
        ai = synthesize(snapshot, structure, AI_RESULT, generated_at=NOW)
        heuristic = synthesize(snapshot, structure, EnrichmentResult.fallback(), generated_at=NOW)
        assert ai.analysis_mode == AnalysisMode.ai_enhanced
        assert heuristic.analysis_mode == AnalysisMode.heuristic_fallback
        assert heuristic.generated_at == NOW

    def test_deterministic(self, make_snapshot, react_package_json):
        snapshot = make_snapshot({"package.json": react_package_json})
        structure = infer(snapshot.key_files)
        assert synthesize(snapshot, structure, AI_RESULT, NOW) == synthesize(
            snapshot, structure, AI_RESULT, NOW
        )

    def test_zero_key_files_still_has_guide_and_recommendations(self, make_snapshot):
        enrichment = EnrichmentResult(summary="Analysis completed", confidence=Confidence.ai_derived)
        report = synthesize(make_snapshot(), infer([]), enrichment, NOW)
        assert report.analysis_mode == AnalysisMode.ai_enhanced
        assert report.recommendations
        assert "Developer Setup Guide" in report.onboarding_guide

    def test_empty_enrichment_still_produces_guide(self, make_snapshot):
        report = synthesize(make_snapshot(), infer([]), EnrichmentResult.fallback(), NOW)
        assert "```bash" in report.onboarding_guide
        assert report.recommendations


class TestLanguageDistribution:
    def test_falls_back_to_key_files(self, make_snapshot, react_package_json):
        snapshot = make_snapshot({"package.json": react_package_json}, tree=[])
        assert language_distribution(snapshot) == [("JSON", 1)]

    def test_unknown_extensions_ignored(self, make_snapshot):
        snapshot = make_snapshot(tree=["Makefile", "a.py", "b.py"])
        assert language_distribution(snapshot) == [("Python", 2)]


def test_generated_at_defaults_to_now(make_snapshot):
    report = synthesize(make_snapshot(), infer([]), EnrichmentResult.fallback())
    assert report.generated_at.tzinfo is not None
    assert abs(report.generated_at - datetime.now(timezone.utc)) < timedelta(minutes=1)
