from __future__ import annotations

import subprocess
import threading
from concurrent import futures
from concurrent.futures import Future
from pathlib import Path
from types import TracebackType
from typing import IO, Any, cast

from ..errors import EmulatorSpawnError
from ..utils.cli import run_cmd
from ..utils.logging import get_logger
from .emulator_args import build_launch_args
from .log_watcher import DEFAULT_POLL_INTERVAL_SEC, READY_MARKER, LogWatcher
from .models import BootOutcome, BootRequest, log_sink_path

# Printed by the emulator when the AVD is locked by another running instance
ALREADY_RUNNING_MARKER = "There's another emulator instance running with the current AVD"

_SpawnError = (OSError, subprocess.SubprocessError)


class BootSupervisor:
    """
    Boots one emulator instance detached from the current process.

    The emulator's stdout/stderr go to a log file owned by this attempt. The
    attempt resolves on whichever comes first:
    - the readiness marker shows up in the log      -> BootOutcome.READY
    - the process fails to start or exits non-zero  -> BootOutcome.ALREADY_RUNNING
      if the log says the AVD is in use, EmulatorSpawnError otherwise

    The spawned emulator is never stopped or waited on by the supervisor.
    Cleanup (watcher, file handles, log file) runs exactly once, on every path.
    No timeout is applied here: pass one to wait() and call close() to give up.
    """

    def __init__(
        self,
        emulator_bin: str,
        request: BootRequest,
        *,
        log_dir: str | Path = ".",
        poll_interval: float = DEFAULT_POLL_INTERVAL_SEC,
    ) -> None:
        self.emulator_bin = emulator_bin
        self.request = request
        self.args = build_launch_args(request)
        self.log_path = log_sink_path(request.device_name, request.port, log_dir)
        self.poll_interval = poll_interval
        self.pid: int | None = None
        self.outcome: BootOutcome | None = None

        self._done: Future[BootOutcome] = Future()
        self._resolve_lock = threading.Lock()
        self._close_lock = threading.Lock()
        self._started = False
        self._closed = False
        self._output: str | None = None
        self._stdout: IO[bytes] | None = None
        self._stderr: IO[bytes] | None = None
        self._watcher: LogWatcher | None = None
        self._log = get_logger(__name__).bind(avd=request.device_name, port=request.port)

    @property
    def state(self) -> str:
        """'starting' until the attempt is classified, then the BootOutcome value."""
        return self.outcome.value if self.outcome is not None else "starting"

    @property
    def output(self) -> str | None:
        """Log text captured during cleanup; None before cleanup."""
        return self._output

    @property
    def command(self) -> list[str]:
        return [self.emulator_bin, *self.args]

    def start(self) -> None:
        """
        Open the log file, start watching it and spawn the emulator.

        A spawn error is not raised here; it resolves the attempt and is
        reported by wait().
        """
        if self._started:
            raise RuntimeError("Boot attempt has already been started")
        self._started = True

        self._log.debug("Spawning emulator", action="emulator_spawn_cmd", cmd=" ".join(self.command))

        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        # A leftover log from a crashed run would produce false markers
        self.log_path.unlink(missing_ok=True)
        self._stdout = self.log_path.open("ab")
        self._stderr = self.log_path.open("ab")

        self._watcher = LogWatcher(
            self.log_path,
            READY_MARKER,
            self._on_ready,
            interval=self.poll_interval,
            on_line=self._on_log_line,
            from_beginning=True,
        )
        self._watcher.start()

        try:
            proc = cast(
                subprocess.Popen[Any],
                run_cmd(
                    self.command, spawn=True, detach=True, stdout=self._stdout, stderr=self._stderr
                ),
            )
        except _SpawnError as e:
            self._resolve(e)
            return

        self.pid = proc.pid
        self._log = self._log.bind(pid=proc.pid)
        self._log.info("Emulator process started", action="emulator_spawned")

        # The process reference lives only in this thread; nothing else holds it
        threading.Thread(
            target=self._watch_exit,
            args=(proc,),
            name=f"emulator-exit:{self.request.device_name}",
            daemon=True,
        ).start()

    def wait(self, timeout: float | None = None) -> BootOutcome | None:
        """
        Wait for the attempt to resolve, clean up and classify it.

        Args:
            timeout (float | None): Seconds to wait; None waits indefinitely.

        Returns:
            BootOutcome | None: READY or ALREADY_RUNNING; None if `timeout` elapsed
            first (nothing is cleaned up in that case).

        Raises:
            EmulatorSpawnError: The emulator failed to start for any other reason.
        """
        if not self._started:
            raise RuntimeError("Boot attempt has not been started")

        futures.wait([self._done], timeout=timeout)
        if not self._done.done():
            return None
        error = self._done.exception()

        self.close()
        output = self._output or ""

        if error is None:
            self.outcome = BootOutcome.READY
            self._log.info("Emulator is ready", action="emulator_ready")
            self._log.debug("Emulator boot output", action="emulator_boot_output", output=output)
            return self.outcome

        if ALREADY_RUNNING_MARKER in output:
            self.outcome = BootOutcome.ALREADY_RUNNING
            self._log.info(
                "Another emulator instance is already running this AVD",
                action="emulator_already_running",
            )
            return self.outcome

        self.outcome = BootOutcome.FAILED
        self._log.error("Emulator failed to start", action="emulator_spawn_failed", error=str(error))
        self._log.error("Emulator boot output", action="emulator_boot_output", output=output)
        raise EmulatorSpawnError(
            f"Emulator '{self.request.device_name}' failed to start: {error}",
            cause=error,
            output=output,
            context={"cmd": self.command, "log_path": str(self.log_path), "pid": self.pid},
        ) from error

    def run(self) -> BootOutcome:
        """Start the attempt and wait for it without a deadline."""
        try:
            self.start()
            outcome = self.wait()
        finally:
            self.close()
        return cast(BootOutcome, outcome)

    def close(self) -> None:
        """
        Release everything the attempt owns: capture the log, stop the watcher,
        close both handles and delete the log file.

        Only the first call does anything; concurrent callers return once it has
        finished. Failures are logged and ignored.
        """
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
            self._release()

    def _release(self) -> None:
        if self._stdout is None:
            # Nothing was opened: the log file (if any) is not ours
            if self._watcher is not None:
                self._watcher.stop()
            return

        try:
            self._output = self.log_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            self._output = ""
            self._log.debug("Could not read emulator log", path=str(self.log_path), error=str(e))

        if self._watcher is not None:
            self._watcher.stop()

        for handle in (self._stdout, self._stderr):
            if handle is None:
                continue
            try:
                handle.close()
            except OSError as e:
                self._log.debug("Could not close emulator log handle", error=str(e))

        try:
            self.log_path.unlink(missing_ok=True)
        except OSError as e:
            self._log.debug("Could not delete emulator log", path=str(self.log_path), error=str(e))

    def _resolve(self, error: BaseException | None = None) -> bool:
        # First event wins; later ones are ignored
        with self._resolve_lock:
            if self._done.done():
                return False
            if error is None:
                self._done.set_result(BootOutcome.READY)
            else:
                self._done.set_exception(error)
            return True

    def _on_ready(self, line: str) -> None:
        self._resolve()

    def _on_log_line(self, line: str) -> None:
        self._log.debug(line, action="emulator_log_line")

    def _watch_exit(self, proc: subprocess.Popen[Any]) -> None:
        code = proc.wait()
        if code == 0:
            # A clean exit before the marker still counts as a successful boot
            self._resolve()
        else:
            self._resolve(subprocess.CalledProcessError(code, proc.args))

    def __enter__(self) -> BootSupervisor:
        try:
            self.start()
        except BaseException:
            self.close()
            raise
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
