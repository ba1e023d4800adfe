[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "klibkit"
version = "0.1.0"
description = "Small building blocks: AVL tree, open-addressing hash tables, Smith-Waterman alignment, thread helpers and a buffered URL reader"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "avl",
    "hash table",
    "smith-waterman",
    "sequence alignment",
    "threading",
    "pipeline",
    "s3",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kurl = "klibkit.kurl:main"

[tool.hatch.build.targets.wheel]
packages = ["klibkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
