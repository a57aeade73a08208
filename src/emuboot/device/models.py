from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from ..platform import HostPlatform

if TYPE_CHECKING:
    from ..config.models import EmulatorSettings


class BootOutcome(str, Enum):
    """
    Result of a single boot attempt.

    READY and ALREADY_RUNNING are returned as values; FAILED is carried
    by EmulatorSpawnError and also used as the supervisor's terminal state.
    """

    READY = "ready"
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"

    @property
    def cold_boot(self) -> bool:
        """True only when a new emulator instance was booted by this attempt."""
        return self is BootOutcome.READY


@dataclass(frozen=True, slots=True)
class BootRequest:
    """Immutable description of one emulator boot."""

    device_name: str  # AVD name, passed to the emulator as @<device_name>
    port: int | None = None  # Console port (-port), emulator default when None
    headless: bool = False  # Run without a window (-no-window)
    read_only: bool = False  # Run the AVD read-only (-read-only)
    gpu_override: str | None = None  # Explicit -gpu backend, wins over platform defaults
    platform: HostPlatform = field(default_factory=HostPlatform.current)

    def __post_init__(self) -> None:
        if not self.device_name:
            raise ValueError("device_name must be a non-empty AVD name")
        if self.port is not None and self.port <= 0:
            raise ValueError(f"port must be a positive integer, got {self.port}")

    @classmethod
    def from_settings(
        cls, settings: EmulatorSettings, device_name: str, port: int | None = None
    ) -> BootRequest:
        """Build a request for `device_name` using headless/read-only/gpu flags from settings."""
        return cls(
            device_name=device_name,
            port=port if port is not None else settings.port,
            headless=settings.headless,
            read_only=settings.read_only_emu,
            gpu_override=settings.gpu or None,
        )


def log_sink_path(device_name: str, port: int | None = None, log_dir: str | Path = ".") -> Path:
    """
    Return the boot log path for a device: <log_dir>/<device_name>[-<port>].log.

    Distinct device/port pairs never share a file.
    """
    suffix = f"-{port}" if port else ""
    return Path(log_dir) / f"{device_name}{suffix}.log"
