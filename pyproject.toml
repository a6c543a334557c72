[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "declpattern"
version = "0.1.0"
description = "Declarative Kubernetes manifest handling: parse, patch, order and apply objects, with a caching REST mapper and dynamic watches."
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "kubernetes",
    "manifest",
    "operator",
    "kubectl",
    "declarative",
    "restmapper",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["declpattern"]

[tool.hatch.build.targets.sdist]
include = [
    "declpattern",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
