[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tagbox"
version = "0.1.0"
description = "An in-memory tag-based filesystem: files organised by key:value tags instead of directories"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "tags", "tagging", "inode", "block-storage", "query", "hash-table"]
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
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tagbox"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
