[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rbacadmin"
version = "0.1.0"
description = "Role-based access control data layer: configuration, SQLite repositories for users, roles and menus, schema migration and policy loading."
requires-python = ">=3.11"
dependencies = [
    "pyyaml",
]
keywords = ["rbac", "admin", "roles", "permissions", "policy", "sqlite", "repository"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: System :: Systems Administration :: Authentication/Directory",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["rbacadmin"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
