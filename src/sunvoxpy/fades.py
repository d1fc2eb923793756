"""Linear fades driven by an external per-frame ``update(dt)`` call."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .channel import Channel
    from .module import Module


class _Fade:
    def __init__(self, seconds: float) -> None:
        self.duration = float(seconds)
        self.elapsed = 0.0

    @property
    def percent(self) -> float:
        """Completion from 0 to 1."""

        if self.duration <= 0:
            return 1.0
        return min(max(self.elapsed / self.duration, 0.0), 1.0)

    @property
    def done(self) -> bool:
        return self.elapsed >= self.duration

    def restart(self) -> None:
        self.elapsed = 0.0

    def _advance(self, dt: float) -> None:
        self.elapsed = max(self.elapsed + float(dt), 0.0)


class VolumeFade(_Fade):
    """Fade a channel's volume from ``start`` to ``end`` over ``seconds``.

    ``None`` or a negative value for either end reads the channel's current
    volume. A fade that ends at or below zero stops the channel once it
    completes.
    """

    def __init__(
        self,
        channel: "Channel",
        start: float | None = None,
        end: float | None = None,
        seconds: float = 1.0,
    ) -> None:
        super().__init__(seconds)
        self.channel = channel
        self.start = channel.volume() if start is None or start < 0 else float(start)
        self.end = channel.volume() if end is None or end < 0 else float(end)
        self._stopped = False

    def restart(self) -> None:
        super().restart()
        self._stopped = False

    def update(self, dt: float) -> tuple[float, bool]:
        """Advance by ``dt`` seconds and return ``(volume, done)``."""

        self._advance(dt)
        done = self.done
        value = self.end if done else self.start + self.percent * (self.end - self.start)

        if self.channel.is_valid():
            self.channel.set_volume(value)
            if done and self.end <= 0 and not self._stopped:
                self.channel.stop()
                self._stopped = True
        return value, done


class ControllerFade(_Fade):
    """Fade controller ``controller`` (1-based) of ``module`` between two values.

    Controller ranges can be negative, so only ``None`` reads the current value.
    """

    def __init__(
        self,
        module: "Module",
        controller: int,
        start: int | None = None,
        end: int | None = None,
        seconds: float = 1.0,
    ) -> None:
        super().__init__(seconds)
        self.module = module
        self.controller = controller
        self.start = module.controller_value(controller) if start is None else int(start)
        self.end = module.controller_value(controller) if end is None else int(end)

    def update(self, dt: float) -> tuple[int, bool]:
        """Advance by ``dt`` seconds and return ``(value, done)``."""

        self._advance(dt)
        done = self.done
        if done:
            value = self.end
        else:
            value = int(self.start + self.percent * (self.end - self.start))

        if self.module.is_valid():
            self.module.set_controller_value(self.controller, value)
        return value, done


__all__ = ["ControllerFade", "VolumeFade"]
