[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kcroles"
version = "2.2.3"
description = "Batch configuration of Keycloak client roles, role groups and group membership from Excel request workbooks"
requires-python = ">=3.10"
keywords = ["keycloak", "roles", "groups", "ldap", "xlsx", "administration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration :: Authentication/Directory",
]
dependencies = [
    "requests>=2.28",
    "tqdm>=4.64",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
kcroles = "kcroles.app:main"

[tool.hatch.build.targets.wheel]
packages = ["kcroles"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
