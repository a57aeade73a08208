from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from types import TracebackType

from ..utils.logging import get_logger

# Line the emulator prints once ADB is connected and the device is serving
READY_MARKER = "Adb connected, start proxing data"
DEFAULT_POLL_INTERVAL_SEC = 1.5


class LogWatcher:
    """
    Follows a log file by polling and reports the first line containing a marker.

    The file does not have to exist when watching starts: missing or unreadable
    files are retried on the next poll. Lines are delivered in the order they
    were appended and never re-delivered. The watcher never modifies the file.
    """

    def __init__(
        self,
        path: str | Path,
        marker: str,
        on_match: Callable[[str], None],
        *,
        interval: float = DEFAULT_POLL_INTERVAL_SEC,
        on_line: Callable[[str], None] | None = None,
        from_beginning: bool = False,
        encoding: str = "utf-8",
    ) -> None:
        """
        Args:
            path: File to follow.
            marker: Substring that triggers `on_match`.
            on_match: Called once, with the first matching line.
            interval: Seconds between polls.
            on_line: Optional callback for every complete line.
            from_beginning: Read the existing content too; otherwise start at the
                current end of the file (if it exists).
            encoding: Text encoding of the log.
        """
        self.path = Path(path)
        self.marker = marker
        self.on_match = on_match
        self.on_line = on_line
        self.interval = interval
        self.from_beginning = from_beginning
        self.encoding = encoding

        self._offset = 0
        self._pending = b""
        self._matched = False
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._poll_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._log = get_logger(__name__)

    @property
    def matched(self) -> bool:
        return self._matched

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the polling thread. Calling it again while running is a no-op."""
        with self._lock:
            if self._thread is not None or self._stop.is_set():
                return
            self._offset = 0
            if not self.from_beginning:
                try:
                    self._offset = self.path.stat().st_size
                except OSError:
                    pass
            self._thread = threading.Thread(
                target=self._run, name=f"log-watcher:{self.path.name}", daemon=True
            )
            self._thread.start()
        self._log.debug("Watching log file", action="log_watch_start", path=str(self.path))

    def stop(self) -> None:
        """Stop polling. Idempotent; safe before start() and from inside a callback."""
        with self._lock:
            already = self._stop.is_set()
            self._stop.set()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        if not already and thread is not None:
            self._log.debug("Stopped watching log file", action="log_watch_stop", path=str(self.path))

    def poll(self) -> None:
        """Read everything appended since the previous poll and dispatch complete lines."""
        with self._poll_lock:
            self._read_appended()

    def _read_appended(self) -> None:
        try:
            size = self.path.stat().st_size
        except OSError:
            return

        if size < self._offset:
            # Truncated or replaced: follow the new content from the start
            self._offset = 0
            self._pending = b""
        if size == self._offset:
            return

        try:
            with self.path.open("rb") as f:
                f.seek(self._offset)
                chunk = f.read(size - self._offset)
        except OSError:
            return

        self._offset += len(chunk)
        *lines, self._pending = (self._pending + chunk).split(b"\n")
        for raw in lines:
            if self._stop.is_set():
                return
            self._dispatch(raw.rstrip(b"\r").decode(self.encoding, errors="replace"))

    def _dispatch(self, line: str) -> None:
        if self.on_line is not None:
            try:
                self.on_line(line)
            except Exception:
                self._log.exception("Log line callback failed", path=str(self.path))

        if self._matched or self.marker not in line:
            return
        self._matched = True
        try:
            self.on_match(line)
        except Exception:
            self._log.exception("Log marker callback failed", path=str(self.path))

    def _run(self) -> None:
        while not self._stop.is_set():
            self.poll()
            self._stop.wait(self.interval)

    def __enter__(self) -> LogWatcher:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
