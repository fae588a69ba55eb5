[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tarlayer"
version = "0.1.0"
description = "Tar archive helpers for layered filesystems: compression detection and decompression, whiteout markers, and copy source and destination resolution with entry rebasing."
requires-python = ">=3.10"
keywords = ["tar", "archive", "layer", "whiteout", "compression", "zstd", "gzip", "copy"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving",
]
dependencies = [
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["tarlayer"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
