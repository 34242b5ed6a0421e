[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "concurrency-lab"
version = "0.1.0"
description = "Worked examples of concurrency primitives, timers, worker pools, request routing and list idioms"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "concurrency",
    "threading",
    "worker-pool",
    "timers",
    "race-conditions",
    "wsgi",
    "examples",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
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
    "pytest-asyncio",
]

[project.scripts]
concurrency-lab-orders = "concurrency_lab.orders:main"
concurrency-lab-services = "concurrency_lab.services:main"
concurrency-lab-sync = "concurrency_lab.sync_demos:main"
concurrency-lab-races = "concurrency_lab.races:main"
concurrency-lab-timers = "concurrency_lab.timer_patterns:main"
concurrency-lab-slices = "concurrency_lab.sliceops:main"
concurrency-lab-escape = "concurrency_lab.escape:main"

[tool.hatch.build.targets.wheel]
packages = ["concurrency_lab"]

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
