"""CLI progress helpers."""

from __future__ import annotations

import shutil
import sys
import threading
import time
from typing import TextIO

_BOLD = "\x1b[1m"
_GREY = "\x1b[38;2;150;157;165m"
_RESET = "\x1b[0m"


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(max(0, seconds), 60)
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def progress_line(label: str, start: float) -> str:
    elapsed = int(time.monotonic() - start)
    return f"• {label} ({format_duration(elapsed)})"


class ProgressTicker:
    """Redraws one status line while a blocking call runs.

    On a non-tty stream the label is printed once and a summary line is
    written on ``stop``.
    """

    def __init__(
        self,
        label: str,
        stream: TextIO | None = None,
        interval_s: float = 1.0,
        done_label: str = "Finished in",
    ) -> None:
        self.label = label
        self.done_label = done_label
        self.stream = stream or sys.stdout
        self.interval_s = max(0.2, interval_s)
        self.start = time.monotonic()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._tty = bool(getattr(self.stream, "isatty", lambda: False)())

    def __enter__(self) -> "ProgressTicker":
        self.start_ticking()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def start_ticking(self) -> None:
        self.start = time.monotonic()
        line = f"{_BOLD}{progress_line(self.label, self.start)}{_RESET}"
        if not self._tty:
            self.stream.write(f"{line}\n")
            self.stream.flush()
            return
        self._redraw(line)
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        if self._thread is not None:
            self._stop.set()
            self._thread.join()
            self._thread = None
        elapsed = int(time.monotonic() - self.start)
        width = shutil.get_terminal_size(fallback=(80, 20)).columns
        summary = f" {self.done_label} {format_duration(elapsed)} ".center(width, "─")
        if self._tty:
            self.stream.write("\r")
        self.stream.write(f"{_GREY}{summary}{_RESET}\n")
        self.stream.flush()

    def _run(self) -> None:
        while not self._stop.wait(self.interval_s):
            self._redraw(f"{_BOLD}{progress_line(self.label, self.start)}{_RESET}")

    def _redraw(self, line: str) -> None:
        self.stream.write(f"\r{line}\x1b[K")
        self.stream.flush()
