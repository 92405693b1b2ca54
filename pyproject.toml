[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "polyx"
version = "0.1.0"
description = "Decoder and converter for PolyNav GNSS/INS binary and NMEA output streams"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["gnss", "ins", "nmea", "gps", "imu", "navigation", "geodesy", "ecef", "nad83"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
polyx-talker = "polyx.talker:main"

[tool.hatch.build.targets.wheel]
packages = ["polyx"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
