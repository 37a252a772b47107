"""Tests for the classifier module."""

import time

import pytest

from repo_onboarding import classifier
from repo_onboarding.classifier import MAX_KEY_FILE_CHARS, categorize, classify
from repo_onboarding.models import FileCategory


class TestCategorize:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("README.md", FileCategory.documentation),
            ("docs/readme.rst", FileCategory.documentation),
            ("package.json", FileCategory.dependency_manifest),
            ("requirements-dev.txt", FileCategory.dependency_manifest),
            ("backend/go.mod", FileCategory.dependency_manifest),
            ("Dockerfile", FileCategory.containerization),
            ("docker-compose.yml", FileCategory.containerization),
            ("compose.yaml", FileCategory.containerization),
            ("jest.config.js", FileCategory.test_config),
            ("e2e/playwright.config.ts", FileCategory.test_config),
            ("prisma/schema.prisma", FileCategory.database_schema),
            ("db/schema.sql", FileCategory.database_schema),
            ("tsconfig.json", FileCategory.generic_code),
            ("LICENSE", FileCategory.generic_code),
        ],
    )
    def test_category_by_filename(self, path, expected):
        assert categorize(path) == expected

    def test_case_insensitive(self):
        assert categorize("DOCKERFILE") == FileCategory.containerization
        assert categorize("Readme.MD") == FileCategory.documentation


class TestDocumentationInsights:
    def test_readme_markers(self, sample_readme):
        kf = classify("README.md", sample_readme)
        assert "Contains installation instructions" in kf.insights
        assert "Includes getting started guide" in kf.insights
        assert "Includes API documentation" in kf.insights
        assert "Provides examples or demos" in kf.insights
        assert "Found 1 setup command blocks" in kf.insights
        assert kf.language == "Markdown"

    def test_plain_readme_has_no_setup_blocks(self):
        kf = classify("README.md", "# Title\nJust words.")
        assert not any("setup command" in i for i in kf.insights)

    def test_command_in_prose_between_fences_is_not_a_block(self):
        content = "```js\nx = 1\n```\n\nThen run npm install yourself.\n\n```py\nprint(2)\n```\n"
        kf = classify("README.md", content)
        assert not any("setup command" in i for i in kf.insights)

    def test_counts_each_fenced_setup_block(self):
        content = (
            "```bash\npip install -e .\n```\n\nText.\n\n"
            "```js\nconsole.log(1)\n```\n\n"
            "```sh\ndocker compose up\n```\n"
        )
        kf = classify("README.md", content)
        assert "Found 2 setup command blocks" in kf.insights

    def test_large_readme_with_many_fences_is_fast(self):
        block = "```text\nhello world, nothing to run here\n```\n\nSome prose.\n\n"
        content = (block * 2500)[:100_000]
        start = time.monotonic()
        kf = classify("README.md", content)
        assert time.monotonic() - start < 2.0
        assert not any("setup command" in i for i in kf.insights)


class TestManifestInsights:
    def test_package_json(self, react_package_json):
        kf = classify("package.json", react_package_json)
        assert kf.category == FileCategory.dependency_manifest
        assert kf.manifest is not None
        assert kf.manifest.ecosystem == "npm"
        assert kf.insights[0] == "Available scripts: dev, build"
        assert "Has development server scripts" in kf.insights
        assert "Has build script" in kf.insights
        assert "Has test script" not in kf.insights
        assert "2 production dependencies" in kf.insights
        assert "2 development dependencies" in kf.insights
        assert "React application" in kf.insights
        assert "TypeScript project" in kf.insights
        assert "Uses Vite for bundling" in kf.insights

    def test_malformed_package_json(self):
        kf = classify("package.json", "{ not json")
        assert kf.insights == ("Contains package configuration",)
        assert kf.manifest is None

    def test_non_object_package_json(self):
        kf = classify("package.json", "[1, 2, 3]")
        assert kf.insights == ("Contains package configuration",)

    def test_python_framework(self):
        kf = classify("requirements.txt", "Django==4.2\npsycopg2-binary>=2.9\n")
        assert "Django application" in kf.insights
        assert "2 production dependencies" in kf.insights

    def test_manifest_parsed_from_full_content(self):
        padding = " " * (MAX_KEY_FILE_CHARS + 100)
        content = '{"dependencies": {"express": "^4"},' + padding + '"name": "x"}'
        kf = classify("package.json", content)
        assert kf.manifest is not None
        assert kf.manifest.name == "x"
        assert len(kf.truncated_content) == MAX_KEY_FILE_CHARS


class TestContainerizationInsights:
    def test_multi_stage_dockerfile(self):
        content = (
            "FROM node:20 AS build\nRUN npm ci\n"
            "FROM nginx:alpine\nEXPOSE 80\n"
        )
        kf = classify("Dockerfile", content)
        assert kf.insights == (
            "Node.js Docker container",
            "Nginx web server",
            "Multi-stage Docker build",
            "Exposes network ports",
        )
        assert kf.language == "Dockerfile"

    def test_compose_services(self):
        content = (
            "services:\n"
            "  web:\n    build: .\n"
            "  db:\n    image: postgres:16\n"
            "volumes:\n  data:\n"
        )
        kf = classify("docker-compose.yml", content)
        assert "Defines 2 compose services: web, db" in kf.insights
        assert "Uses PostgreSQL service" in kf.insights
        assert "Uses Docker volumes" in kf.insights


class TestSchemaInsights:
    def test_prisma(self):
        content = (
            'datasource db {\n  provider = "postgresql"\n  url = env("DATABASE_URL")\n}\n'
            "model User {\n  id Int @id\n}\n"
            "model Post {\n  id Int @id\n}\n"
        )
        kf = classify("prisma/schema.prisma", content)
        assert kf.insights == (
            "Prisma database schema",
            "Database models: 2",
            "Database provider: postgresql",
        )

    def test_sql(self):
        kf = classify("schema.sql", "CREATE TABLE a (id int);\ncreate table b (id int);")
        assert "Database tables: 2" in kf.insights


class TestGenericInsights:
    def test_env_example(self):
        kf = classify(".env.example", "DATABASE_URL=\nSECRET_KEY=\n# comment\n")
        assert kf.insights == ("Defines 2 environment variables",)

    def test_strict_tsconfig(self):
        kf = classify("tsconfig.json", '{"compilerOptions": {"strict": true}}')
        assert kf.insights == ("TypeScript configuration", "Strict type checking enabled")

    def test_license(self):
        kf = classify("LICENSE", "MIT License\n\nCopyright ...")
        assert kf.insights == ("License: MIT",)


class TestClassifyContract:
    def test_idempotent(self, react_package_json, sample_readme):
        for path, content in (("package.json", react_package_json), ("README.md", sample_readme)):
            assert classify(path, content) == classify(path, content)

    def test_truncates_content(self):
        kf = classify("README.md", "x" * 5000)
        assert len(kf.truncated_content) == MAX_KEY_FILE_CHARS

    def test_empty_content(self):
        kf = classify("Dockerfile", "")
        assert kf.insights == ()

    def test_never_raises_when_extractor_fails(self, monkeypatch):
        def boom(path, content):
            raise RuntimeError("extractor bug")

        monkeypatch.setitem(classifier._EXTRACTORS, FileCategory.documentation, boom)
        kf = classify("README.md", "# hi")
        assert kf.category == FileCategory.documentation
        assert kf.insights == ()
