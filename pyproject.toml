[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fastws"
version = "0.10.0"
description = "A small RFC 6455 WebSocket implementation on asyncio streams"
requires-python = ">=3.10"
dependencies = []
keywords = ["websocket", "rfc6455", "asyncio", "protocol", "server", "client"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
fastws-echo = "fastws.echo:main"
fastws-autobahn = "fastws.autobahn:main"

[tool.hatch.build.targets.wheel]
packages = ["fastws"]

[tool.hatch.build.targets.sdist]
include = ["fastws", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
