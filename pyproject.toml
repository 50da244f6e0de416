[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "marinerctl"
version = "0.1.0"
description = "Idempotent provisioning and teardown of multi-cluster connectivity resources against an in-memory Kubernetes-style cluster model"
requires-python = ">=3.10"
keywords = ["kubernetes", "multi-cluster", "operator", "rbac", "provisioning", "uninstall"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["marinerctl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
