[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "huadb"
version = "2024.0.0"
description = "Storage, logging, transaction and query-plan components of a small educational relational database"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "buffer-pool", "write-ahead-log", "query-plan", "education"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["huadb"]

[tool.pytest.ini_options]
addopts = "-ra"
