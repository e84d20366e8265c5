[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "threadkit"
version = "0.1.0"
description = "Concurrency building blocks: reference-counted stacks and queues, a blocking queue, actors, thread-joining helpers, thread pools and parallel list algorithms."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "threading",
    "concurrency",
    "thread pool",
    "actor",
    "queue",
    "stack",
    "parallel",
    "work stealing",
]
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
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-timeout",
]

[project.scripts]
threadkit-actors = "threadkit.actors:main"
threadkit-parallel = "threadkit.parallel:main"

[tool.hatch.build.targets.wheel]
packages = ["threadkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
