[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sentrykit"
version = "0.24.1"
description = "Error and performance event toolkit: scopes, breadcrumbs, span recording, a sampling profiler, span status mapping and a logging handler."
requires-python = ">=3.10"
dependencies = []
keywords = ["error-tracking", "events", "scope", "profiling", "tracing", "logging"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Bug Tracking",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sentrykit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
