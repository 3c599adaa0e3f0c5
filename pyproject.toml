[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rsshkit"
version = "0.1.0"
description = "Building blocks for interactive SSH-style servers: line-editing terminal, command-line parsing, trie completion, tables, protocol multiplexing and more"
requires-python = ">=3.10"
dependencies = []
keywords = ["terminal", "vt100", "autocomplete", "trie", "multiplexer", "ssh", "table"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Terminals",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rsshkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
