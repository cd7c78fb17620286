[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "microviewer"
version = "0.1.0"
description = "Read-only HTTP/JSON backend for browsing microcontroller boards by category and manufacturer"
requires-python = ">=3.10"
dependencies = []
keywords = ["microcontroller", "boards", "rest", "json", "http", "backend", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
microviewer = "microviewer.server:main"

[tool.hatch.build.targets.wheel]
packages = ["microviewer"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
