[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dronelevel"
version = "0.1.0"
description = "Voxel level state and tick simulation for a drone automation game"
requires-python = ">=3.12"
dependencies = []
keywords = ["voxel", "simulation", "game", "drones", "inventory", "chunks"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Typing :: Typed",
    "Topic :: Games/Entertainment :: Simulation",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dronelevel"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py312"
