[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "heartglow"
version = "0.1.0"
description = "uECG packet decoding and heartbeat light and haptic pattern emulators"
requires-python = ">=3.10"
dependencies = []
keywords = ["ecg", "uecg", "heart rate", "hrv", "led", "haptic", "emulator"]
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
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["heartglow"]

[tool.pytest.ini_options]
addopts = "-ra"
