from __future__ import annotations

import os
import shutil
from pathlib import Path

from ..config.models import EmulatorSettings
from ..errors import EmulatorNotFoundError


def get_android_sdk_root(settings: EmulatorSettings | None = None) -> str | None:
    """Return the Android SDK root from settings, ANDROID_SDK_ROOT or ANDROID_HOME."""
    if settings is not None and settings.sdk_root:
        return settings.sdk_root
    return os.getenv("ANDROID_SDK_ROOT") or os.getenv("ANDROID_HOME") or None


def get_android_emulator_path(settings: EmulatorSettings | None = None) -> str:
    """
    Resolve the filesystem path of the Android emulator binary.

    Lookup order:
      1. settings.emulator_path
      2. <sdk>/emulator/emulator
      3. <sdk>/tools/emulator (legacy SDK layout)
      4. `emulator` found on PATH

    Raises:
        EmulatorNotFoundError: If none of the locations contains the binary.
    """
    if settings is not None and settings.emulator_path:
        return settings.emulator_path

    exe = "emulator.exe" if os.name == "nt" else "emulator"
    candidates: list[Path] = []
    sdk = get_android_sdk_root(settings)
    if sdk:
        candidates += [Path(sdk) / "emulator" / exe, Path(sdk) / "tools" / exe]

    for candidate in candidates:
        if candidate.is_file():
            return str(candidate)

    on_path = shutil.which("emulator")
    if on_path:
        return on_path

    raise EmulatorNotFoundError(
        "Android emulator binary not found; set ANDROID_SDK_ROOT or EMUBOOT_EMULATOR_PATH",
        context={"searched": [str(c) for c in candidates]},
    )
