[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "costpilot"
version = "0.1.0"
description = "Common billing, instance and metric queries across several cloud providers"
requires-python = ">=3.10"
dependencies = []
keywords = ["cloud", "billing", "cost", "finops", "utilization"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Accounting",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["costpilot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
