"""Lookup tables shared by the classifier, inferencer and synthesizer."""

from typing import NamedTuple, Optional


class Framework(NamedTuple):
    ecosystem: str
    dependency: str
    label: str
    kind: str  # "ui" or "server"
    insight: str


# Order matters: the first declared dependency wins. Meta-frameworks come
# before the UI libraries they build on.
FRAMEWORKS: tuple[Framework, ...] = (
    Framework("npm", "next", "Next.js", "ui", "Next.js application"),
    Framework("npm", "nuxt", "Nuxt", "ui", "Nuxt application"),
    Framework("npm", "react", "React", "ui", "React application"),
    Framework("npm", "vue", "Vue.js", "ui", "Vue.js application"),
    Framework("npm", "@angular/core", "Angular", "ui", "Angular application"),
    Framework("npm", "angular", "Angular", "ui", "Angular application"),
    Framework("npm", "svelte", "Svelte", "ui", "Svelte application"),
    Framework("npm", "@nestjs/core", "NestJS", "server", "NestJS server"),
    Framework("npm", "express", "Express.js", "server", "Express.js server"),
    Framework("npm", "fastify", "Fastify", "server", "Fastify server"),
    Framework("npm", "koa", "Koa", "server", "Koa server"),
    Framework("python", "django", "Django", "server", "Django application"),
    Framework("python", "flask", "Flask", "server", "Flask server"),
    Framework("python", "fastapi", "FastAPI", "server", "FastAPI server"),
    Framework("python", "tornado", "Tornado", "server", "Tornado server"),
    Framework("python", "pyramid", "Pyramid", "server", "Pyramid server"),
    Framework("go", "github.com/gin-gonic/gin", "Gin", "server", "Gin server"),
    Framework("go", "github.com/labstack/echo/v4", "Echo", "server", "Echo server"),
    Framework("go", "github.com/gofiber/fiber/v2", "Fiber", "server", "Fiber server"),
    Framework("rust", "actix-web", "Actix Web", "server", "Actix Web server"),
    Framework("rust", "axum", "Axum", "server", "Axum server"),
    Framework("rust", "rocket", "Rocket", "server", "Rocket server"),
    Framework("ruby", "rails", "Rails", "server", "Rails application"),
    Framework("ruby", "sinatra", "Sinatra", "server", "Sinatra server"),
    Framework("jvm", "org.springframework.boot:spring-boot-starter-web", "Spring Boot", "server", "Spring Boot server"),
    Framework("jvm", "org.springframework.boot:spring-boot-starter", "Spring Boot", "server", "Spring Boot application"),
    Framework("php", "laravel/framework", "Laravel", "server", "Laravel application"),
)

UI_FRAMEWORKS = frozenset(f.label for f in FRAMEWORKS if f.kind == "ui")
SERVER_FRAMEWORKS = frozenset(f.label for f in FRAMEWORKS if f.kind == "server")

# Ecosystem resolution order for polyglot repositories.
ECOSYSTEM_PRIORITY: tuple[str, ...] = ("npm", "python", "go", "rust", "ruby", "jvm", "php")

ECOSYSTEM_LANGUAGES = {
    "npm": "JavaScript",
    "python": "Python",
    "go": "Go",
    "rust": "Rust",
    "ruby": "Ruby",
    "jvm": "Java",
    "php": "PHP",
}

# dependency name -> test framework label
TEST_FRAMEWORKS: tuple[tuple[str, str], ...] = (
    ("jest", "Jest"),
    ("vitest", "Vitest"),
    ("mocha", "Mocha"),
    ("cypress", "Cypress"),
    ("@playwright/test", "Playwright"),
    ("playwright", "Playwright"),
    ("pytest", "pytest"),
    ("rspec", "RSpec"),
    ("phpunit/phpunit", "PHPUnit"),
    ("junit:junit", "JUnit"),
    ("org.junit.jupiter:junit-jupiter", "JUnit"),
)

# npm devDependency -> tooling insight
NPM_TOOLING: tuple[tuple[str, str], ...] = (
    ("typescript", "TypeScript project"),
    ("jest", "Uses Jest for testing"),
    ("vitest", "Uses Vitest for testing"),
    ("cypress", "Uses Cypress for E2E testing"),
    ("webpack", "Uses Webpack for bundling"),
    ("vite", "Uses Vite for bundling"),
    ("eslint", "Uses ESLint for linting"),
    ("prettier", "Uses Prettier for formatting"),
)

# substrings of an npm build script -> build system label
NPM_BUILD_TOOLS: tuple[tuple[str, str], ...] = (
    ("webpack", "Webpack"),
    ("vite", "Vite"),
    ("next", "Next.js"),
    ("rollup", "Rollup"),
    ("esbuild", "esbuild"),
    ("tsc", "TypeScript compiler"),
)

PYTHON_BUILD_BACKENDS: tuple[tuple[str, str], ...] = (
    ("poetry", "Poetry"),
    ("hatchling", "Hatch"),
    ("setuptools", "setuptools"),
    ("flit", "Flit"),
    ("pdm", "PDM"),
    ("maturin", "maturin"),
)

LANGUAGE_BY_EXTENSION = {
    "js": "JavaScript",
    "mjs": "JavaScript",
    "cjs": "JavaScript",
    "jsx": "React",
    "ts": "TypeScript",
    "tsx": "React TypeScript",
    "py": "Python",
    "java": "Java",
    "cpp": "C++",
    "cc": "C++",
    "c": "C",
    "h": "C",
    "cs": "C#",
    "php": "PHP",
    "rb": "Ruby",
    "go": "Go",
    "rs": "Rust",
    "swift": "Swift",
    "kt": "Kotlin",
    "dart": "Dart",
    "vue": "Vue.js",
    "svelte": "Svelte",
    "html": "HTML",
    "css": "CSS",
    "scss": "SCSS",
    "less": "LESS",
    "json": "JSON",
    "xml": "XML",
    "yaml": "YAML",
    "yml": "YAML",
    "toml": "TOML",
    "md": "Markdown",
    "sql": "SQL",
    "sh": "Shell",
    "prisma": "Prisma",
    "graphql": "GraphQL",
    "gradle": "Gradle",
}


def detect_language(path: str) -> str:
    """Language label for a path, by extension."""
    name = path.rsplit("/", 1)[-1]
    if name.lower().startswith("dockerfile"):
        return "Dockerfile"
    if "." not in name:
        return "Unknown"
    ext = name.rsplit(".", 1)[-1].lower()
    return LANGUAGE_BY_EXTENSION.get(ext, "Unknown")


def framework_for(ecosystem: str, declared: "set[str] | dict[str, str]") -> Optional[Framework]:
    """First framework in table order whose dependency is declared."""
    for fw in FRAMEWORKS:
        if fw.ecosystem == ecosystem and fw.dependency in declared:
            return fw
    return None
