"""Process execution and host detection."""

from .detection import Platform, detect_platform
from .process import ProcessError, run, run_silent

__all__ = [
    "Platform",
    "ProcessError",
    "detect_platform",
    "run",
    "run_silent",
]
