[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "joinquery"
version = "0.1.0"
description = "In-memory relational join engine with radix sort-merge joins and join cost statistics"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "database",
    "join",
    "sort-merge join",
    "radix sort",
    "query processing",
    "cardinality estimation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
joinquery = "joinquery.cli:main"
joinquery-csv = "joinquery.join_csv:main"

[tool.hatch.build.targets.wheel]
packages = ["joinquery"]

[tool.pytest.ini_options]
addopts = "-ra"
