[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "krzorbit"
version = "0.1.0"
description = "Geodesic and radiation-reaction orbit integration in the KRZ parametrised black-hole spacetime"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "black hole",
    "KRZ metric",
    "geodesic",
    "radiation reaction",
    "extreme mass ratio inspiral",
    "Runge-Kutta-Fehlberg",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
krzorbit = "krzorbit.orbit:main"

[tool.hatch.build.targets.wheel]
packages = ["krzorbit"]

[tool.pytest.ini_options]
addopts = "-ra"
