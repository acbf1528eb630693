[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinystatic"
version = "0.1.0"
description = "A tiny static-file HTTP server that serves files and directory listings over GET"
requires-python = ">=3.10"
dependencies = []
keywords = ["http", "server", "static", "files", "directory-listing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tinystatic = "tinystatic.server:main"

[tool.hatch.build.targets.wheel]
packages = ["tinystatic"]

[tool.pytest.ini_options]
addopts = "-ra"
