from __future__ import annotations

import os
from typing import Any

import yaml

from .models import EmulatorSettings

# Default path to the configuration file.
# Can be overridden with the "EMUBOOT_CONFIG" environment variable.
DEFAULT_CONFIG: str = os.getenv("EMUBOOT_CONFIG", "configs/emulator.yaml")


def load_settings(path: str | None = None, **overrides: Any) -> EmulatorSettings:
    """
    Load emulator settings from a YAML configuration file.

    Args:
        path (str | None): Optional path to the configuration file.
                           If not provided, DEFAULT_CONFIG is used.
        **overrides: Values that replace the loaded ones (e.g. CLI flags).
                     They win over environment variables too; None values are ignored.

    Returns:
        EmulatorSettings: Settings initialized with the loaded configuration.
                          If the file does not exist or is empty, defaults are used.
    """
    file_path: str = path or DEFAULT_CONFIG
    data: dict[str, Any] = {}

    if os.path.exists(file_path):
        with open(file_path, encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                # Accept both a flat file and one with an "emulator:" section
                section = loaded.get("emulator", loaded)
                if isinstance(section, dict):
                    data = section

    settings = EmulatorSettings(**data)
    update = {k: v for k, v in overrides.items() if v is not None}
    # Applied after construction so explicit flags beat EMUBOOT_* variables
    return settings.model_copy(update=update) if update else settings
