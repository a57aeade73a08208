from .device.android_emulator import AndroidEmulator
from .device.boot import ALREADY_RUNNING_MARKER, BootSupervisor
from .device.emulator_args import build_launch_args, resolve_gpu_method
from .device.log_watcher import READY_MARKER, LogWatcher
from .device.models import BootOutcome, BootRequest, log_sink_path
from .errors import (
    EmulatorBootTimeoutError,
    EmulatorError,
    EmulatorNotFoundError,
    EmulatorSpawnError,
)
from .platform import HostPlatform

__all__ = [
    "ALREADY_RUNNING_MARKER",
    "READY_MARKER",
    "AndroidEmulator",
    "BootOutcome",
    "BootRequest",
    "BootSupervisor",
    "EmulatorBootTimeoutError",
    "EmulatorError",
    "EmulatorNotFoundError",
    "EmulatorSpawnError",
    "HostPlatform",
    "LogWatcher",
    "build_launch_args",
    "log_sink_path",
    "resolve_gpu_method",
]
