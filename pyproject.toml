[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oidclogin"
version = "0.1.0"
description = "Building blocks for OpenID Connect login to Kubernetes: kubeconfig handling, ID token decoding, login options and credential plugin output"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
    "filelock",
]
keywords = [
    "kubernetes",
    "kubeconfig",
    "oidc",
    "openid-connect",
    "credential-plugin",
    "jwt",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration :: Authentication/Directory",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["oidclogin"]

[tool.hatch.build.targets.sdist]
include = [
    "oidclogin",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
