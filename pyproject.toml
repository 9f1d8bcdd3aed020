[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "a2akit"
version = "0.1.0"
description = "Agent-to-agent (A2A) JSON-RPC server with task storage and server-sent event streaming"
requires-python = ">=3.10"
dependencies = []
keywords = ["a2a", "agent", "json-rpc", "server-sent-events", "sse", "tasks"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
a2akit-server = "a2akit.cli:main"
a2akit-helloworld = "a2akit.examples.helloworld:main"
a2akit-simple = "a2akit.examples.simple:main"

[tool.hatch.build.targets.wheel]
packages = ["a2akit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
