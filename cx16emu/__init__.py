"""Chip-level models of Commander X16 peripherals."""

__version__ = "0.1.0"

__all__ = [
    "psg",
    "serial",
    "smc",
    "spi",
    "testbench",
    "timing",
    "utf8",
    "vera_render",
    "via",
    "wav",
]