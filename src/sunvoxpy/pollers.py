"""Background threads that watch a channel's playhead and report transitions."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Callable

from .errors import SunVoxError
from .pattern import Pattern

if TYPE_CHECKING:
    from .channel import Channel

logger = logging.getLogger(__name__)

DEFAULT_POLL_RESOLUTION = 0.01

LineChangeCallback = Callable[[int], bool]
PatternTouchCallback = Callable[[Pattern, bool], bool]


class Poller:
    """Run :meth:`poll` on a daemon thread until it returns ``False`` or is cancelled."""

    name = "Poller"

    def __init__(self, channel: "Channel", poll_resolution: float = DEFAULT_POLL_RESOLUTION) -> None:
        if poll_resolution is None or poll_resolution <= 0:
            poll_resolution = DEFAULT_POLL_RESOLUTION
        self.channel = channel
        self.poll_resolution = float(poll_resolution)
        self.thread: threading.Thread | None = None
        self._cancel = threading.Event()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self.thread is not None:
            return
        self.thread = threading.Thread(
            target=self._run,
            name=f"{self.name}-{self.channel.index}",
            daemon=True,
        )
        self.thread.start()

    def cancel(self) -> None:
        self._cancel.set()

    def stop(self, timeout: float = 1.0) -> None:
        """Cancel and wait for the thread, unless called from the thread itself."""

        self.cancel()
        thread = self.thread
        if thread is not None and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    def join(self, timeout: float | None = None) -> None:
        if self.thread is not None:
            self.thread.join(timeout=timeout)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def is_alive(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def poll(self) -> bool:
        raise NotImplementedError

    def _run(self) -> None:
        logger.debug("%s started on channel %d", self.name, self.channel.index)
        while not self._cancel.is_set():
            try:
                keep_going = self.poll()
            except SunVoxError as exc:
                logger.debug("%s on channel %d stopped: %s", self.name, self.channel.index, exc)
                break
            except Exception:
                logger.exception("%s on channel %d raised", self.name, self.channel.index)
                break
            if not keep_going:
                break
            self._cancel.wait(self.poll_resolution)
        logger.debug("%s finished on channel %d", self.name, self.channel.index)


class LineChangePoller(Poller):
    """Invoke ``callback(line)`` whenever the playhead moves to another line.

    The engine runs ahead of the callback by the audio latency, and playback
    from the beginning briefly reports line -1.
    """

    name = "LineChangePoller"

    def __init__(
        self,
        channel: "Channel",
        callback: LineChangeCallback,
        poll_resolution: float = DEFAULT_POLL_RESOLUTION,
    ) -> None:
        super().__init__(channel, poll_resolution)
        self.callback = callback
        self._last_line: int | None = None

    def poll(self) -> bool:
        line = self.channel.current_line()
        if line == self._last_line:
            return True
        if self.cancelled or not self.callback(line):
            return False
        self._last_line = line
        return True


class PatternTouchPoller(Poller):
    """Invoke ``callback(pattern, entered)`` as the playhead enters or leaves patterns."""

    name = "PatternTouchPoller"

    def __init__(
        self,
        channel: "Channel",
        callback: PatternTouchCallback,
        poll_resolution: float = DEFAULT_POLL_RESOLUTION,
    ) -> None:
        super().__init__(channel, poll_resolution)
        self.callback = callback
        self._touching: set[int] = set()

    def _touched_patterns(self, line: int) -> set[int]:
        touched = set()
        for pattern in self.channel.patterns():
            x = pattern.x()
            if x <= line < x + pattern.line_count():
                touched.add(pattern.index)
        return touched

    def poll(self) -> bool:
        line = self.channel.current_line()
        touching = self._touched_patterns(line)
        previous = self._touching
        self._touching = touching

        for index in sorted(touching - previous):
            if self.cancelled or not self.callback(Pattern(self.channel, index), True):
                return False
        for index in sorted(previous - touching):
            if self.cancelled or not self.callback(Pattern(self.channel, index), False):
                return False
        return True


__all__ = [
    "DEFAULT_POLL_RESOLUTION",
    "LineChangePoller",
    "PatternTouchPoller",
    "Poller",
]
