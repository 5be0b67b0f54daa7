[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tbsim"
version = "0.1.0"
description = "Deterministic simulation of antibiotic target binding, bacterial replication and killing"
requires-python = ">=3.10"
keywords = ["tuberculosis", "pharmacodynamics", "ode", "simulation", "antibiotic"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Environment :: Console",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
]
dependencies = [
    "numpy",
    "scipy",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
tbsim = "tbsim.cli:main"
tbsim-argdemo = "tbsim.argdemo:main"

[tool.hatch.build.targets.wheel]
packages = ["tbsim"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
