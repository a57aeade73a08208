from .fixtures import android_emulator, booted_emulator, emulator_settings
from .options import pytest_addoption

__all__ = ["pytest_addoption", "emulator_settings", "android_emulator", "booted_emulator"]
