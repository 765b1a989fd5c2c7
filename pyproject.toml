[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rssgator"
version = "0.1.0"
description = "A command-line RSS feed aggregator: register users, follow feeds, collect posts into SQLite and browse them."
requires-python = ">=3.10"
dependencies = []
keywords = ["rss", "feed", "aggregator", "cli", "news", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
gator = "rssgator.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rssgator"]

[tool.pytest.ini_options]
addopts = "-ra"
