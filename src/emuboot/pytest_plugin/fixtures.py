from __future__ import annotations

import allure
import pytest

from ..config.loader import load_settings
from ..config.models import EmulatorSettings
from ..device.android_emulator import AndroidEmulator
from ..device.models import BootOutcome
from ..utils.logging import bind_context, get_logger

_logger = get_logger(__name__)


@pytest.fixture(scope="session")
def emulator_settings(pytestconfig: pytest.Config) -> EmulatorSettings:
    """
    Load emulator configuration once per session.

    Command-line options (--avd, --emu-port, --headless, --read-only-emu, --gpu)
    override values from the file given by --emu-config.
    """
    return load_settings(
        pytestconfig.getoption("--emu-config"),
        avd=pytestconfig.getoption("--avd"),
        port=pytestconfig.getoption("--emu-port"),
        headless=pytestconfig.getoption("--headless"),
        read_only_emu=pytestconfig.getoption("--read-only-emu"),
        gpu=pytestconfig.getoption("--gpu"),
    )


@pytest.fixture(scope="session")
def android_emulator(emulator_settings: EmulatorSettings) -> AndroidEmulator:
    """AndroidEmulator bound to the session settings."""
    return AndroidEmulator(emulator_settings)


@pytest.fixture(scope="session")
def booted_emulator(
    emulator_settings: EmulatorSettings, request: pytest.FixtureRequest
) -> BootOutcome:
    """
    Boot the configured AVD once per session and return the boot outcome.

    - Skips dependent tests when no AVD is configured.
    - ALREADY_RUNNING is accepted: the tests use the instance that holds the AVD.
    - The emulator is left running after the session.
    """
    avd = emulator_settings.avd
    if not avd:
        pytest.skip("No AVD configured (use --avd or EMUBOOT_AVD)")

    # Resolved only now: without an AVD the SDK does not have to be installed
    android_emulator: AndroidEmulator = request.getfixturevalue("android_emulator")

    bind_context(avd=avd, port=emulator_settings.port)
    with allure.step(f"Boot Android emulator {avd}"):
        outcome = android_emulator.boot(avd, emulator_settings.port)
    _logger.info("Emulator boot finished", action="emulator_boot", outcome=outcome.value)
    return outcome
