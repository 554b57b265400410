"""Signal-driven teardown of the workspace and process exit."""
from __future__ import annotations

import logging
import os
import signal
import sys
import threading
from typing import Any, Callable, Optional, Sequence, TextIO

from .logs import flush_handlers

QUIT_PROMPT = "Ctrl-C to quit..."


def terminate(code: int) -> None:
    """Exit the whole process now, even with worker threads blocked in I/O."""

    flush_handlers()
    sys.stdout.flush()
    os._exit(code)


class ShutdownCoordinator:
    """Owns the interrupt signal: drops the workspace once, then exits 0.

    Signal handlers run on the main thread and only set an event; the
    teardown itself happens on a dedicated thread.
    """

    def __init__(self, manager: Any, *, exit_fn: Callable[[int], None] = terminate) -> None:
        self._manager = manager
        self._exit_fn = exit_fn
        self._requested = threading.Event()
        self._reason = ""
        self._thread: Optional[threading.Thread] = None

    def install(self, signals: Sequence[signal.Signals] = (signal.SIGINT, signal.SIGTERM)) -> None:
        for signum in signals:
            signal.signal(signum, self._on_signal)

    def _on_signal(self, signum: int, frame: Any) -> None:
        self.request(signal.Signals(signum).name)

    def request(self, reason: str) -> None:
        if not self._requested.is_set():
            self._reason = reason
            self._requested.set()

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self._run, name="shutdown", daemon=True)
        self._thread.start()
        return self._thread

    def _run(self) -> None:
        self._requested.wait()
        logging.info("Shutdown requested (%s)", self._reason)
        try:
            self._manager.teardown()
        finally:
            self._exit_fn(0)

    def wait_for_quit(self, stream: TextIO) -> None:
        """Block the main thread until shutdown finishes.

        A line on ``stream`` requests shutdown; end of input leaves it to a signal.
        """

        print(QUIT_PROMPT, flush=True)
        if stream.readline():
            self.request("quit from console")
        if self._thread is not None:
            self._thread.join()
