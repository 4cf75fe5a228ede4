[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "redisclusterkit"
version = "0.2.2"
description = "Toolkit for inspecting and administering Redis Cluster nodes, slots and configuration"
requires-python = ">=3.10"
dependencies = []
keywords = ["redis", "redis-cluster", "cluster", "slots", "administration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["redisclusterkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
