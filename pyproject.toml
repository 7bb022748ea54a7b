[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flightsw"
version = "0.1.0"
description = "Flight-software components for a small satellite: cron scheduler, state machine, telemetry wrapper and a simulated deployment loop"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "flight software",
    "satellite",
    "cubesat",
    "scheduler",
    "cron",
    "state machine",
    "telemetry",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Software Development :: Embedded Systems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
flightsw = "flightsw.topology:main"

[tool.hatch.build.targets.wheel]
packages = ["flightsw"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
