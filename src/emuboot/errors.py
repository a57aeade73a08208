"""Exception hierarchy for emuboot.

Hierarchy:
    EmulatorError (base)
    ├── EmulatorSpawnError         ← emulator exited/failed before becoming ready
    ├── EmulatorBootTimeoutError   ← caller-imposed boot deadline elapsed
    └── EmulatorNotFoundError      ← emulator binary could not be resolved

An emulator that is already running for the requested AVD is not an error:
it is reported as BootOutcome.ALREADY_RUNNING.
"""

from __future__ import annotations

from typing import Any

from .device.models import BootOutcome


class EmulatorError(Exception):
    """Base exception for emulator errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context for logging/debugging
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class EmulatorSpawnError(EmulatorError):
    """The emulator process could not be started or exited before it became ready.

    Attributes:
        cause: The underlying spawn error (OSError or CalledProcessError)
        output: Text the emulator wrote to its log before the failure
    """

    outcome = BootOutcome.FAILED

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        output: str = "",
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context)
        self.cause = cause
        self.output = output


class EmulatorBootTimeoutError(EmulatorError, TimeoutError):
    """The boot did not resolve within the deadline given by the caller."""


class EmulatorNotFoundError(EmulatorError):
    """No emulator binary was found in the configured locations."""
