from __future__ import annotations

import shlex

from ..config.models import EmulatorSettings
from ..errors import EmulatorBootTimeoutError
from ..utils.cli import exec_with_retries
from ..utils.environment import get_android_emulator_path
from ..utils.logging import get_logger
from .boot import BootSupervisor
from .models import BootOutcome, BootRequest


class AndroidEmulator:
    """
    Entry point for working with the Android emulator binary.

    Lists available AVDs and boots them detached; the booted emulator keeps
    running after this object (and the current process) is gone.
    """

    def __init__(
        self, settings: EmulatorSettings | None = None, emulator_bin: str | None = None
    ) -> None:
        """
        Initialize AndroidEmulator.

        Args:
            settings (EmulatorSettings | None): Emulator settings; defaults are loaded
                from the environment when omitted.
            emulator_bin (str | None): Path to the emulator binary. Resolved from
                settings/SDK location when omitted.
        """
        self.settings = settings or EmulatorSettings()
        self.emulator_bin = emulator_bin or get_android_emulator_path(self.settings)
        self._log = get_logger(__name__)

    def exec_cmd(self, cmd: str) -> str:
        """
        Run `<emulator> <cmd>` and return its stdout.

        Retries are handled by exec_with_retries; its last error is propagated as is.
        """
        result = exec_with_retries(
            [self.emulator_bin, *shlex.split(cmd)],
            retries=self.settings.list_retries,
            interval=self.settings.list_retry_interval,
        )
        return result.stdout

    def list_avds(self) -> list[str]:
        """Return the names of the AVDs known to the emulator, one per output line."""
        output = self.exec_cmd("-list-avds --verbose")
        return [line.strip() for line in output.strip().splitlines() if line.strip()]

    def supervisor(self, device_name: str | None = None, port: int | None = None) -> BootSupervisor:
        """Create a (not yet started) boot attempt for an AVD using the configured flags."""
        name = device_name or self.settings.avd
        if not name:
            raise ValueError("No AVD name given and settings.avd is not set")
        request = BootRequest.from_settings(self.settings, name, port)
        return BootSupervisor(
            self.emulator_bin,
            request,
            log_dir=self.settings.log_dir,
            poll_interval=self.settings.poll_interval,
        )

    def boot(
        self,
        device_name: str | None = None,
        port: int | None = None,
        *,
        timeout: float | None = None,
    ) -> BootOutcome:
        """
        Boot an AVD and wait until it is ready.

        Args:
            device_name (str | None): AVD name; settings.avd when omitted.
            port (int | None): Console port; settings.port when omitted.
            timeout (float | None): Give up after this many seconds
                (settings.boot_timeout when omitted, no limit when both are None).

        Returns:
            BootOutcome: READY if a new instance booted, ALREADY_RUNNING if the AVD
            is already in use by another emulator instance.

        Raises:
            EmulatorSpawnError: If the emulator failed to start.
            EmulatorBootTimeoutError: If the deadline elapsed first. The emulator
                process is left running.
        """
        boot = self.supervisor(device_name, port)
        deadline = timeout if timeout is not None else self.settings.boot_timeout
        if deadline is None:
            return boot.run()

        try:
            boot.start()
            outcome = boot.wait(deadline)
        finally:
            boot.close()

        if outcome is None:
            self._log.error(
                "Emulator did not become ready within the timeout",
                action="emulator_ready_timeout",
                avd=boot.request.device_name,
                port=boot.request.port,
                timeout=deadline,
            )
            raise EmulatorBootTimeoutError(
                f"Emulator '{boot.request.device_name}' did not become ready within {deadline}s",
                context={"pid": boot.pid, "cmd": boot.command},
            )
        return outcome
