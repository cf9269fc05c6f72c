"""Nightly release pipeline for the minesweeper game."""

__version__ = "0.1.0"
