"""Tests for the inferencer module."""

import json

from repo_onboarding.classifier import classify
from repo_onboarding.inferencer import architecture_label, infer, primary_manifest


class TestInferScenarios:
    def test_ui_library_with_dev_and_build_scripts(self, react_package_json):
        structure = infer([classify("package.json", react_package_json)])
        assert structure.framework == "React"
        assert structure.scripts == {"dev": "vite", "build": "vite build"}
        assert structure.language == "TypeScript"
        assert structure.build_system == "Vite"
        assert structure.architecture_label == "Single Page Application"
        assert structure.ecosystem == "npm"

    def test_container_rule_precedes_api_server(self, express_package_json):
        files = [
            classify("package.json", express_package_json),
            classify("Dockerfile", "FROM node:20\nEXPOSE 3000\n"),
        ]
        structure = infer(files)
        assert structure.framework == "Express.js"
        assert structure.architecture_label == "Containerized"
        assert structure.test_framework == "Jest"

    def test_no_key_files(self):
        structure = infer([])
        assert structure.language == "Unknown"
        assert structure.framework == "Unknown"
        assert structure.architecture_label == "Unknown"
        assert structure.build_system is None
        assert structure.test_framework is None

    def test_server_framework_is_api_server(self, express_package_json):
        structure = infer([classify("package.json", express_package_json)])
        assert structure.architecture_label == "API Server"
        assert structure.language == "JavaScript"
        assert structure.build_system is None  # no build script

    def test_meta_framework_wins_over_ui_library(self):
        pkg = json.dumps({
            "dependencies": {"next": "14.2.0", "react": "18.2.0"},
            "scripts": {"build": "next build"},
        })
        structure = infer([classify("package.json", pkg)])
        assert structure.framework == "Next.js"
        assert structure.build_system == "Next.js"

    def test_container_without_manifest(self):
        structure = infer([classify("Dockerfile", "FROM python:3.12\n")])
        assert structure.architecture_label == "Containerized"
        assert structure.language == "Unknown"

    def test_tsconfig_implies_typescript(self):
        pkg = json.dumps({"dependencies": {"vue": "^3.4.0"}})
        files = [classify("package.json", pkg), classify("tsconfig.json", "{}")]
        structure = infer(files)
        assert structure.framework == "Vue.js"
        assert structure.language == "TypeScript"


class TestEcosystems:
    def test_npm_preferred_over_python(self, react_package_json):
        files = [
            classify("requirements.txt", "flask==3.0\n"),
            classify("package.json", react_package_json),
        ]
        assert infer(files).ecosystem == "npm"
        assert primary_manifest(files).path == "package.json"

    def test_python_flask_with_pytest(self):
        structure = infer([classify("requirements.txt", "flask==3.0\npytest==8.0\n")])
        assert structure.language == "Python"
        assert structure.framework == "Flask"
        assert structure.test_framework == "pytest"
        assert structure.architecture_label == "API Server"

    def test_sibling_python_manifests_are_merged(self):
        files = [
            classify("requirements.txt", "fastapi>=0.110\n"),
            classify(
                "pyproject.toml",
                '[build-system]\nbuild-backend = "setuptools.build_meta"\n'
                '[project]\nname = "svc"\n',
            ),
        ]
        structure = infer(files)
        assert structure.framework == "FastAPI"
        assert structure.build_system == "setuptools"

    def test_go_gin(self):
        go_mod = "module example.com/api\n\ngo 1.22\n\nrequire github.com/gin-gonic/gin v1.9.1\n"
        structure = infer([classify("go.mod", go_mod)])
        assert structure.language == "Go"
        assert structure.framework == "Gin"
        assert structure.build_system == "Go modules"
        assert structure.architecture_label == "API Server"

    def test_shallowest_manifest_wins(self):
        root = json.dumps({"dependencies": {"react": "18"}})
        nested = json.dumps({"dependencies": {"express": "4"}})
        files = [classify("server/package.json", nested), classify("package.json", root)]
        assert infer(files).framework == "React"


class TestTestFramework:
    def test_from_test_config_file_only(self):
        structure = infer([classify("jest.config.js", "module.exports = {}")])
        assert structure.test_framework == "Jest"

    def test_unrelated_test_file_is_not_guessed(self):
        structure = infer([classify("tests/test_settings.json", "{}")])
        assert structure.test_framework is None


class TestArchitectureLabel:
    def test_unknown_framework(self):
        assert architecture_label("Unknown", []) == "Unknown"
