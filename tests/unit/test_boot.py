from __future__ import annotations

import subprocess
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from emuboot.device.boot import ALREADY_RUNNING_MARKER, BootSupervisor
from emuboot.device.log_watcher import READY_MARKER
from emuboot.device.models import BootOutcome, BootRequest
from emuboot.errors import EmulatorSpawnError
from emuboot.platform import HostPlatform

EMULATOR = "/sdk/emulator/emulator"


class FakeProc:
    """Stand-in for a detached emulator process; exits only when told to."""

    _next_pid = 1000

    def __init__(self, args: list[str], code: int | None = None) -> None:
        FakeProc._next_pid += 1
        self.pid = FakeProc._next_pid
        self.args = args
        self.returncode = code
        self.killed = False
        self._exited = threading.Event()
        if code is not None:
            self._exited.set()

    def wait(self, timeout: float | None = None) -> int | None:
        self._exited.wait(timeout)
        return self.returncode

    def exit(self, code: int) -> None:
        self.returncode = code
        self._exited.set()

    def terminate(self) -> None:
        self.killed = True

    kill = terminate

    @property
    def running(self) -> bool:
        return not self._exited.is_set()


class FakeSpawner:
    """Replacement for run_cmd: writes `output` into the child's stdout and returns a FakeProc."""

    def __init__(self, output: bytes = b"", code: int | None = None) -> None:
        self.output = output
        self.code = code
        self.calls: list[tuple[list[str], dict[str, Any]]] = []
        self.procs: list[FakeProc] = []

    def __call__(self, args: list[str], **kw: Any) -> FakeProc:
        self.calls.append((list(args), kw))
        if self.output:
            kw["stdout"].write(self.output)
            kw["stdout"].flush()
        proc = FakeProc(list(args), self.code)
        self.procs.append(proc)
        return proc


@pytest.fixture
def use_spawner(monkeypatch: pytest.MonkeyPatch) -> Iterator[Callable[[FakeSpawner], FakeSpawner]]:
    spawners: list[FakeSpawner] = []

    def install(spawner: FakeSpawner) -> FakeSpawner:
        monkeypatch.setattr("emuboot.device.boot.run_cmd", spawner)
        spawners.append(spawner)
        return spawner

    yield install

    # Let exit-watcher threads finish
    for s in spawners:
        for p in s.procs:
            if p.running:
                p.exit(0)


def _supervisor(tmp_path: Path, name: str = "Pixel_4_API_30", port: int | None = 5554) -> BootSupervisor:
    req = BootRequest(name, port=port, headless=True, platform=HostPlatform.LINUX)
    return BootSupervisor(EMULATOR, req, log_dir=tmp_path, poll_interval=0.01)


def test_ready_when_marker_is_logged(tmp_path: Path, use_spawner: Callable) -> None:
    """Scenario A: readiness marker arrives while the process keeps running."""
    spawner = use_spawner(FakeSpawner(b"emulator: INFO: boot\n" + READY_MARKER.encode() + b"\n"))
    sup = _supervisor(tmp_path)

    outcome = sup.run()

    assert outcome is BootOutcome.READY
    assert outcome.cold_boot
    assert sup.state == "ready"
    proc = spawner.procs[0]
    assert proc.running and not proc.killed
    assert sup.pid == proc.pid
    # Log was captured, then removed
    assert sup.output is not None and READY_MARKER in sup.output
    assert not sup.log_path.exists()

    args, kw = spawner.calls[0]
    assert args[0] == EMULATOR
    assert args[1:] == sup.args
    assert kw["spawn"] is True and kw["detach"] is True
    assert kw["stdout"] is not kw["stderr"]
    assert kw["stdout"].closed and kw["stderr"].closed


def test_already_running_is_a_value(tmp_path: Path, use_spawner: Callable) -> None:
    """Scenario B: spawn fails and the log says the AVD is in use."""
    msg = f"ERROR   | {ALREADY_RUNNING_MARKER} 'Pixel_4_API_30'. Exiting...\n"
    use_spawner(FakeSpawner(msg.encode(), code=1))
    sup = _supervisor(tmp_path)

    outcome = sup.run()

    assert outcome is BootOutcome.ALREADY_RUNNING
    assert not outcome.cold_boot
    assert sup.state == "already_running"
    assert not sup.log_path.exists()


def test_spawn_failure_raises_with_output(tmp_path: Path, use_spawner: Callable) -> None:
    """Scenario C: spawn fails without the already-running marker."""
    use_spawner(FakeSpawner(b"PANIC: Missing emulator engine program for 'x86' CPU.\n", code=1))
    sup = _supervisor(tmp_path)

    with pytest.raises(EmulatorSpawnError) as ei:
        sup.run()

    err = ei.value
    assert "PANIC: Missing emulator engine" in err.output
    assert isinstance(err.cause, subprocess.CalledProcessError)
    assert err.cause.returncode == 1
    assert err.__cause__ is err.cause
    assert err.outcome is BootOutcome.FAILED
    assert sup.state == "failed"
    assert not sup.log_path.exists()


def test_missing_binary_is_a_spawn_failure(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    def no_binary(args: list[str], **kw: Any) -> None:
        raise FileNotFoundError(2, "No such file or directory", args[0])

    monkeypatch.setattr("emuboot.device.boot.run_cmd", no_binary)
    sup = _supervisor(tmp_path)

    with pytest.raises(EmulatorSpawnError) as ei:
        sup.run()

    assert isinstance(ei.value.cause, FileNotFoundError)
    assert ei.value.output == ""
    assert sup.pid is None
    assert not sup.log_path.exists()


def test_clean_exit_before_marker_counts_as_ready(tmp_path: Path, use_spawner: Callable) -> None:
    use_spawner(FakeSpawner(b"starting\n", code=0))
    assert _supervisor(tmp_path).run() is BootOutcome.READY


def test_close_is_idempotent(tmp_path: Path, use_spawner: Callable) -> None:
    use_spawner(FakeSpawner(READY_MARKER.encode() + b"\n"))
    sup = _supervisor(tmp_path)

    sup.run()
    output = sup.output
    sup.close()
    sup.close()

    assert sup.output == output
    assert not sup.log_path.exists()


def test_concurrent_close_waits_for_captured_output(
    tmp_path: Path, use_spawner: Callable, monkeypatch: pytest.MonkeyPatch
) -> None:
    """close() from another thread must not leave wait() classifying without the log."""
    msg = f"ERROR   | {ALREADY_RUNNING_MARKER} 'Pixel_4_API_30'. Exiting...\n"
    use_spawner(FakeSpawner(msg.encode(), code=1))
    sup = _supervisor(tmp_path)

    reading = threading.Event()
    read_text = Path.read_text

    def slow_read_text(self: Path, *args: Any, **kwargs: Any) -> str:
        reading.set()
        time.sleep(0.3)
        return read_text(self, *args, **kwargs)

    monkeypatch.setattr(Path, "read_text", slow_read_text)

    sup.start()
    closer = threading.Thread(target=sup.close)
    closer.start()
    assert reading.wait(5)

    outcome = sup.wait(timeout=5)
    closer.join(5)

    assert outcome is BootOutcome.ALREADY_RUNNING
    assert sup.output is not None and ALREADY_RUNNING_MARKER in sup.output
    assert not sup.log_path.exists()


def test_close_before_start_leaves_foreign_file(tmp_path: Path) -> None:
    sup = _supervisor(tmp_path)
    sup.log_path.write_text("not ours\n", encoding="utf-8")

    sup.close()
    sup.close()

    assert sup.log_path.read_text(encoding="utf-8") == "not ours\n"
    assert sup.output is None


def test_stale_log_does_not_signal_ready(tmp_path: Path, use_spawner: Callable) -> None:
    spawner = use_spawner(FakeSpawner())
    sup = _supervisor(tmp_path)
    sup.log_path.write_text(f"{READY_MARKER}\n{ALREADY_RUNNING_MARKER}\n", encoding="utf-8")

    with sup:
        assert sup.wait(timeout=0.3) is None
        assert sup.state == "starting"

    assert not sup.log_path.exists()
    assert sup.output == ""
    assert spawner.procs[0].running


def test_wait_timeout_then_ready(tmp_path: Path, use_spawner: Callable) -> None:
    """A caller deadline that elapses leaves the attempt open; it can still resolve later."""
    spawner = use_spawner(FakeSpawner())
    sup = _supervisor(tmp_path)

    with sup:
        assert sup.wait(timeout=0.05) is None
        with sup.log_path.open("a", encoding="utf-8") as f:
            f.write(f"{READY_MARKER}\n")
        assert sup.wait(timeout=5) is BootOutcome.READY

    assert spawner.procs[0].running


def test_start_twice_is_rejected(tmp_path: Path, use_spawner: Callable) -> None:
    use_spawner(FakeSpawner(READY_MARKER.encode() + b"\n"))
    sup = _supervisor(tmp_path)
    with sup:
        with pytest.raises(RuntimeError):
            sup.start()


def test_wait_before_start_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        _supervisor(tmp_path).wait(0)


def test_distinct_devices_do_not_interfere(tmp_path: Path, use_spawner: Callable) -> None:
    """Scenario D: concurrent boots of different AVDs use separate log files."""
    use_spawner(FakeSpawner(READY_MARKER.encode() + b"\n"))
    a = _supervisor(tmp_path, "Pixel_4_API_30", None)
    b = _supervisor(tmp_path, "Pixel_5_API_31", None)
    c = _supervisor(tmp_path, "Pixel_5_API_31", 5556)
    assert len({a.log_path, b.log_path, c.log_path}) == 3
    assert a.log_path.name == "Pixel_4_API_30.log"
    assert c.log_path.name == "Pixel_5_API_31-5556.log"

    results: dict[str, BootOutcome] = {}

    def boot(sup: BootSupervisor) -> None:
        results[sup.log_path.name] = sup.run()

    threads = [threading.Thread(target=boot, args=(s,)) for s in (a, b, c)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert set(results.values()) == {BootOutcome.READY}
    assert len(results) == 3
    assert not any(s.log_path.exists() for s in (a, b, c))
