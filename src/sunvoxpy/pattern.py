"""Patterns and their note grid.

:meth:`Pattern.data` returns a :class:`PatternData` whose ``cells`` array is a
numpy view laid directly over the engine's note memory. Writes land in the
live project immediately. The view is only valid until the project is
reloaded, the pattern is resized, or the channel is closed; the engine may
also change the memory underneath it at any time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from .errors import BoundsError, StateError, SunVoxError
from .native import NOTE_SIZE, check, ffi

if TYPE_CHECKING:
    from .channel import Channel

# A custom loop parks the patterns it leaves out this far to the left.
# Patterns already left of the threshold are not moved.
CUSTOM_LOOP_OFFSET = 99_999_999
CUSTOM_LOOP_THRESHOLD = -100_000

NOTE_DTYPE = np.dtype(
    [
        ("note", np.uint8),
        ("vel", np.uint8),
        ("module", np.uint16),
        ("ctl", np.uint16),
        ("ctl_val", np.uint16),
    ]
)

if NOTE_DTYPE.itemsize != NOTE_SIZE:  # pragma: no cover - depends on the C ABI
    raise ImportError(f"sunvox_note is {NOTE_SIZE} bytes but NOTE_DTYPE is {NOTE_DTYPE.itemsize}")

MAX_VELOCITY = 129


def _check_range(name: str, value: int, low: int, high: int) -> int:
    value = int(value)
    if value < low or value > high:
        raise BoundsError(f"{name} {value} is outside of the range {low}..{high}")
    return value


class PatternData:
    """Bounds-checked accessors over a ``(lines, tracks)`` note grid."""

    def __init__(self, cells: np.ndarray) -> None:
        if cells.ndim != 2 or cells.dtype != NOTE_DTYPE:
            raise ValueError("cells must be a 2-D array of NOTE_DTYPE")
        self.cells = cells

    def line_count(self) -> int:
        return int(self.cells.shape[0])

    def track_count(self) -> int:
        return int(self.cells.shape[1])

    def _check_cell(self, track: int, line: int) -> None:
        lines, tracks = self.cells.shape
        if not 0 <= track < tracks or not 0 <= line < lines:
            raise BoundsError(
                f"track {track} or line {line} is outside of the pattern ({tracks} tracks, {lines} lines)"
            )

    def _get(self, field_name: str, track: int, line: int) -> int:
        self._check_cell(track, line)
        return int(self.cells[field_name][line, track])

    def _set(self, field_name: str, track: int, line: int, value: int) -> None:
        self._check_cell(track, line)
        self.cells[field_name][line, track] = value

    def note(self, track: int, line: int) -> int:
        """Note value; 61 is C5, values of 128 and above are :class:`NoteCommand` codes."""

        return self._get("note", track, line)

    def set_note(self, track: int, line: int, note: int) -> None:
        self._set("note", track, line, _check_range("note", note, 0, 255))

    def velocity(self, track: int, line: int) -> int:
        """Velocity 1..129, or 0 for the module's default."""

        return self._get("vel", track, line)

    def set_velocity(self, track: int, line: int, velocity: int) -> None:
        self._set("vel", track, line, _check_range("velocity", velocity, 0, MAX_VELOCITY))

    def module(self, track: int, line: int) -> int | None:
        """Index of the module the cell addresses, or ``None`` for an empty cell."""

        raw = self._get("module", track, line)
        return raw - 1 if raw else None

    def set_module(self, track: int, line: int, module: int | None) -> None:
        raw = 0 if module is None else _check_range("module", module, 0, 0xFFFE) + 1
        self._set("module", track, line, raw)

    def controller(self, track: int, line: int) -> int:
        """Raw ``0xCCEE`` column: controller number in the high byte, effect in the low byte."""

        return self._get("ctl", track, line)

    def set_controller(self, track: int, line: int, controller: int) -> None:
        self._set("ctl", track, line, _check_range("controller", controller, 0, 0xFFFF))

    def controller_value(self, track: int, line: int) -> int:
        """Raw ``0xXXYY`` parameter column."""

        return self._get("ctl_val", track, line)

    def set_controller_value(self, track: int, line: int, value: int) -> None:
        self._set("ctl_val", track, line, _check_range("controller value", value, 0, 0xFFFF))

    def snapshot(self) -> np.ndarray:
        """Return a detached copy of the grid."""

        return self.cells.copy()


@dataclass(frozen=True)
class Pattern:
    """Reference to pattern ``index`` in a channel's project."""

    channel: "Channel" = field(repr=False)
    index: int

    def _call(self, name: str, *args: Any) -> Any:
        return self.channel.native.call(name, self.channel.index, self.index, *args)

    def is_valid(self) -> bool:
        """Return ``True`` when the pattern exists (has at least one line)."""

        try:
            return self.line_count() > 0
        except SunVoxError:
            return False

    def x(self) -> int:
        """Line at which the pattern starts on the timeline."""

        return int(self._call("sv_get_pattern_x"))

    def y(self) -> int:
        return int(self._call("sv_get_pattern_y"))

    def x2(self) -> int:
        """Line just past the pattern's end."""

        return self.x() + self.line_count()

    def loopless_x(self) -> int:
        """Starting line as it would be without the channel's custom loop."""

        return self._undo_custom_loop(self.x())

    def loopless_x2(self) -> int:
        return self._undo_custom_loop(self.x2())

    def _undo_custom_loop(self, x: int) -> int:
        return x + self.channel.custom_loop_shift(self.index)

    def set_xy(self, x: int, y: int) -> None:
        with self.channel.audio_paused(), self.channel.locked():
            check(
                self._call("sv_set_pattern_xy", int(x), int(y)),
                "sv_set_pattern_xy",
                f"error moving pattern {self.index} to {x}, {y} in channel {self.channel.index}",
                zero_is_success=True,
            )

    def move(self, dx: int, dy: int = 0) -> None:
        """Shift the pattern by ``dx`` lines and ``dy`` rows."""

        self.set_xy(self.x() + dx, self.y() + dy)

    def name(self) -> str:
        return self.channel.native.string(self._call("sv_get_pattern_name"))

    def set_mute(self, muted: bool) -> bool:
        """Mute or unmute the pattern and return whether it was muted before."""

        with self.channel.audio_paused(), self.channel.locked():
            result = self._call("sv_pattern_mute", 1 if muted else 0)
        check(result, "sv_pattern_mute", f"error muting pattern {self.index} in channel {self.channel.index}")
        return result == 1

    def line_count(self) -> int:
        return check(
            self._call("sv_get_pattern_lines"),
            "sv_get_pattern_lines",
            f"error getting the line count of pattern {self.index} in channel {self.channel.index}",
        )

    def track_count(self) -> int:
        return check(
            self._call("sv_get_pattern_tracks"),
            "sv_get_pattern_tracks",
            f"error getting the track count of pattern {self.index} in channel {self.channel.index}",
        )

    def data(self) -> PatternData:
        """Return a live view over the pattern's notes."""

        lines = self.line_count()
        tracks = self.track_count()
        if lines <= 0 or tracks <= 0:
            raise StateError(f"pattern {self.index} in channel {self.channel.index} does not exist")
        pointer = self._call("sv_get_pattern_data")
        if pointer == ffi.NULL:
            raise StateError(f"pattern {self.index} in channel {self.channel.index} has no note data")
        buffer = ffi.buffer(pointer, lines * tracks * NOTE_SIZE)
        cells = np.frombuffer(buffer, dtype=NOTE_DTYPE).reshape(lines, tracks)
        return PatternData(cells)


__all__ = [
    "CUSTOM_LOOP_OFFSET",
    "CUSTOM_LOOP_THRESHOLD",
    "MAX_VELOCITY",
    "NOTE_DTYPE",
    "Pattern",
    "PatternData",
]
