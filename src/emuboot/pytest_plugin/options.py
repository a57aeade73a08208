import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    """
    Registers custom command-line (CLI) options for pytest.

    Adds options to configure the emulator booted for the test session:
      --emu-config <path> : Path to the YAML emulator configuration file.
      --avd <name>        : AVD to boot.
      --emu-port <port>   : Emulator console port.
      --headless          : Boot without a window.
      --read-only-emu     : Boot the AVD read-only.
      --gpu <backend>     : Explicit -gpu backend.

    Flags that are not given fall back to the configuration file / EMUBOOT_* variables.
    """
    g = parser.getgroup("emuboot")
    g.addoption(
        "--emu-config", action="store", default=None, help="Path to YAML emulator configuration"
    )
    g.addoption("--avd", action="store", default=None, help="AVD to boot for the session")
    g.addoption("--emu-port", action="store", type=int, default=None, help="Emulator port")
    g.addoption(
        "--headless", action="store_true", default=None, help="Boot the emulator without a window"
    )
    g.addoption(
        "--read-only-emu", action="store_true", default=None, help="Boot the AVD read-only"
    )
    g.addoption("--gpu", action="store", default=None, help="GPU backend passed to -gpu")
