[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rains"
version = "0.1.0"
description = "Building blocks of a RAINS name server: algorithm types, connection info and in-memory caches"
requires-python = ">=3.10"
dependencies = []
keywords = ["rains", "naming", "dns", "cache", "name-service"]
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
    "Topic :: Internet :: Name Service (DNS)",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rains"]

[tool.pytest.ini_options]
addopts = "-ra"
