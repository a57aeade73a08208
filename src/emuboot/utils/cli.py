from __future__ import annotations

import os
import subprocess
import time
from collections.abc import Sequence
from typing import IO, Any, cast

from .logging import get_logger

_log = get_logger(__name__)


class Completed:
    """
    Wrapper around subprocess.CompletedProcess that decodes stdout and stderr into strings.
    """

    def __init__(self, proc: subprocess.CompletedProcess):
        self.returncode = proc.returncode
        self.stdout = (
            proc.stdout.decode(errors="replace")
            if isinstance(proc.stdout, bytes | bytearray)
            else (proc.stdout or "")
        )
        self.stderr = (
            proc.stderr.decode(errors="replace")
            if isinstance(proc.stderr, bytes | bytearray)
            else (proc.stderr or "")
        )


def _detach_kwargs() -> dict[str, Any]:
    """Popen kwargs that keep the child alive after the parent exits."""
    if os.name == "nt":
        return {
            "creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
        }
    return {"start_new_session": True}


def run_cmd(
    args: Sequence[str],
    *,
    check: bool = True,
    spawn: bool = False,
    timeout: float | None = None,
    detach: bool = False,
    stdout: IO[Any] | int | None = None,
    stderr: IO[Any] | int | None = None,
) -> Completed | subprocess.Popen:
    """
    Execute a command as a subprocess.

    Args:
        args (Sequence[str]): Command and arguments to execute.
        check (bool): If True, raise CalledProcessError on failure.
        spawn (bool): If True, start the process asynchronously and return a Popen object.
        timeout (float | None): Optional timeout in seconds for waiting for completion.
        detach (bool): With `spawn`, start the process in its own session/process group
            so it outlives the caller. stdin is redirected to /dev/null.
        stdout, stderr: With `spawn`, where the child's output goes.

    Returns:
        Completed | subprocess.Popen:
            - Completed: Result with stdout/stderr as strings (if `spawn=False`)
            - subprocess.Popen: Process object (if `spawn=True`)

    Raises:
        subprocess.CalledProcessError: If `check=True` and process exits with a nonzero code.
        OSError: If the executable cannot be started.
    """
    if spawn:
        kwargs: dict[str, Any] = {"stdout": stdout, "stderr": stderr}
        if detach:
            kwargs["stdin"] = subprocess.DEVNULL
            kwargs.update(_detach_kwargs())
        return subprocess.Popen(list(args), **kwargs)

    proc = subprocess.run(list(args), capture_output=True, timeout=timeout, check=False)

    if check and proc.returncode != 0:
        raise subprocess.CalledProcessError(proc.returncode, list(args), proc.stdout, proc.stderr)

    return Completed(proc)


def exec_with_retries(
    args: Sequence[str],
    *,
    retries: int = 10,
    interval: float = 1.0,
    timeout: float | None = None,
) -> Completed:
    """
    Run a short-lived command, retrying when it fails.

    Args:
        args (Sequence[str]): Command and arguments to execute.
        retries (int): Additional attempts after the first failure.
        interval (float): Pause between attempts in seconds.
        timeout (float | None): Per-attempt timeout in seconds.

    Returns:
        Completed: Result of the first successful attempt.

    Raises:
        subprocess.CalledProcessError | subprocess.TimeoutExpired | OSError:
            The error of the last attempt, unchanged.
    """
    cmd = " ".join(args)
    for attempt in range(1, max(0, retries) + 1):
        _log.debug("Executing command", action="exec", cmd=cmd, attempt=attempt)
        try:
            return cast(Completed, run_cmd(args, check=True, timeout=timeout))
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            _log.warning(
                "Command failed, retrying",
                action="exec_retry",
                cmd=cmd,
                attempt=attempt,
                retries=retries,
                error=str(e),
            )
            time.sleep(interval)

    # Last attempt: its error goes to the caller unchanged
    try:
        return cast(Completed, run_cmd(args, check=True, timeout=timeout))
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
        _log.error("Command failed, no retries left", action="exec_failed", cmd=cmd, error=str(e))
        raise
