[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uagent"
version = "0.1.0"
description = "Agent Client Protocol client and Model Context Protocol tool bridge over JSON-RPC 2.0"
requires-python = ">=3.10"
dependencies = []
keywords = ["acp", "mcp", "json-rpc", "agent", "tools"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["uagent"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
