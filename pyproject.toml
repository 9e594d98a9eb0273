[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nekort"
version = "0.1.0"
description = "Runtime values, builtins, UTF-8 and XML primitives of a small dynamic virtual machine"
requires-python = ">=3.10"
dependencies = []
keywords = ["virtual machine", "runtime", "hashtable", "utf8", "xml", "elf"]
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
    "Topic :: Software Development :: Interpreters",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["nekort"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
