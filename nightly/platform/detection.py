"""Host platform detection.

Used to decide which native targets can be built on the current machine.
"""

from __future__ import annotations

import platform as _platform
from enum import Enum, auto
from functools import lru_cache

__all__ = ["Platform", "detect_platform"]


class Platform(Enum):
    """Operating system platform."""

    LINUX = auto()
    MACOS = auto()
    WINDOWS = auto()
    UNKNOWN = auto()

    def __str__(self) -> str:
        return self.name.lower()

    def can_build(self, host: str) -> bool:
        """Whether a target declared for `host` builds here ("any" always does)."""
        return host == "any" or host == str(self)


@lru_cache(maxsize=1)
def detect_platform() -> Platform:
    system = _platform.system().lower()
    if system.startswith("linux"):
        return Platform.LINUX
    if system.startswith("darwin"):
        return Platform.MACOS
    if system.startswith("windows") or system.startswith(("msys", "cygwin", "mingw")):
        return Platform.WINDOWS
    return Platform.UNKNOWN
