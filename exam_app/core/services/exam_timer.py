"""Background countdown ticker for live exam sessions."""

from __future__ import annotations

from collections.abc import Callable
import logging
from threading import Event, Thread, current_thread

from exam_app.constants.exam_constants import TIMER_TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class ExamTimer:
    """Calls `on_tick` once per interval in a daemon thread until stopped."""

    def __init__(
        self,
        on_tick: Callable[[], None],
        interval_seconds: float = TIMER_TICK_INTERVAL_SECONDS,
        name: str = "ExamTimer",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Timer interval must be positive.")
        self._on_tick = on_tick
        self._interval = interval_seconds
        self._stopped = Event()
        self._thread = Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        if self._thread.is_alive() or self._stopped.is_set():
            raise RuntimeError("Timer can only be started once.")
        self._thread.start()

    def stop(self) -> None:
        """Stop ticking. Safe to call repeatedly and from the tick callback."""
        self._stopped.set()
        if self._thread.is_alive() and self._thread is not current_thread():
            self._thread.join(timeout=self._interval * 2)

    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stopped.is_set()

    def _run(self) -> None:
        # Event.wait returns True as soon as stop() is called.
        while not self._stopped.wait(self._interval):
            try:
                self._on_tick()
            except Exception:  # noqa: BLE001
                logger.exception("Exam timer tick failed; stopping timer.")
                self._stopped.set()
