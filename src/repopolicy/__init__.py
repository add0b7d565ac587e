"""Repopolicy - repository governance checks driven by check.toml."""

__version__ = "0.4.0"
