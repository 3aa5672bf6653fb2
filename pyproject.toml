[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgautoindex"
version = "0.1.0"
description = "Interactive PostgreSQL shell that creates and retires indexes on its own, guided by the query workload"
requires-python = ">=3.10"
keywords = ["postgresql", "index", "advisor", "shell", "query", "tuning"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "sqlalchemy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
pgautoindex = "pgautoindex.shell:main"

[tool.hatch.build.targets.wheel]
packages = ["pgautoindex"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
