[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "atlasdb"
version = "0.2.0"
description = "Distributed graph store with proposal-based consensus, peer management and scheduled cluster jobs"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "distributed",
    "consensus",
    "quorum",
    "graph",
    "cluster",
    "peers",
    "voting",
    "asyncio",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Distributed Computing",
    "Topic :: Database",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["atlasdb"]

[tool.hatch.build.targets.sdist]
include = ["atlasdb", "tests", "pyproject.toml", "README.md"]

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
check_untyped_defs = true
