[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cx16emu"
version = "0.1.0"
description = "Chip-level models of Commander X16 peripherals: PSG sound, SD-card SPI, VIAs, SMC, serial bus, VERA scanline rendering and WAV capture"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "commander-x16",
    "emulator",
    "vera",
    "6522",
    "via",
    "psg",
    "retrocomputing",
]
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
    "Topic :: System :: Emulators",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cx16emu"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
