from __future__ import annotations

import sys
from enum import Enum


class HostPlatform(str, Enum):
    """
    Enumeration for host operating systems the emulator can run on.

    Used to select platform-dependent defaults (e.g. GPU backend)
    without querying the host inside pure functions.
    """

    DARWIN = "darwin"
    LINUX = "linux"
    WINDOWS = "windows"
    OTHER = "other"

    @classmethod
    def current(cls) -> HostPlatform:
        """Map `sys.platform` of the running interpreter to a HostPlatform member."""
        return cls.from_sys_platform(sys.platform)

    @classmethod
    def from_sys_platform(cls, value: str) -> HostPlatform:
        if value == "darwin":
            return cls.DARWIN
        if value.startswith("linux"):
            return cls.LINUX
        if value in ("win32", "cygwin"):
            return cls.WINDOWS
        return cls.OTHER
