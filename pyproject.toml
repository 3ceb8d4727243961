[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bptstore"
version = "0.1.0"
description = "A disk-backed B+ tree that maps string keys to integer values, with a small command interpreter"
requires-python = ">=3.10"
dependencies = []
keywords = ["b+tree", "btree", "index", "key-value", "storage", "database"]
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
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
bptstore = "bptstore.cli:main"
bptstore-gen = "bptstore.gen:main"

[tool.hatch.build.targets.wheel]
packages = ["bptstore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
