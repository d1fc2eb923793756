"""Channels: one native playback slot each, holding at most one project."""

from __future__ import annotations

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator

from .constants import (
    EFFECT_SET_SPEED,
    MAX_TPL,
    MIN_BPM,
    ModuleFlag,
    SIGNAL_LEVEL_SCALE,
    TICKS_PER_BEAT,
    VOLUME_SCALE,
)
from .errors import BoundsError, NativeCallError, StateError
from .module import OUTPUT_MODULE_INDEX, Module
from .native import NativeLibrary, check, encode, ffi
from .pattern import CUSTOM_LOOP_OFFSET, CUSTOM_LOOP_THRESHOLD, Pattern
from .pollers import (
    DEFAULT_POLL_RESOLUTION,
    LineChangeCallback,
    LineChangePoller,
    PatternTouchCallback,
    PatternTouchPoller,
    Poller,
)

if TYPE_CHECKING:
    from .engine import Engine

logger = logging.getLogger(__name__)

LINE_CHANGE_POLLER = "line_change"
PATTERN_TOUCH_POLLER = "pattern_touch"


class Channel:
    """A playback slot in the engine.

    Channels are created by :meth:`Engine.create_channel`. A channel can load
    a project until playback first begins; to play a different project close
    the channel and create a new one.

    Operations that change playback or the project layout pause the global
    audio engine around the change, whether or not anything is playing.
    Those pauses are slow (tens of milliseconds), so latency sensitive callers
    may want to issue them from a worker thread.
    """

    def __init__(self, engine: "Engine", index: int, channel_id: Any = None) -> None:
        self.engine = engine
        self.index = index
        self.id = channel_id
        self._data = b""
        self._data_pointer = None
        self._filename = ""
        self._playing = False
        self._started = False
        self._closed = False

        self._custom_loop_active = False
        self._custom_loop_start = 0
        self._custom_loop_end = 0
        self._custom_loop_request: tuple[int, int] | None = None
        # pattern index -> lines subtracted from its x by set_custom_loop
        self._custom_loop_shifts: dict[int, int] = {}

        self._pause_depth = 0
        self._pause_lock = threading.RLock()
        self._pollers: dict[str, Poller] = {}
        self._poller_lock = threading.Lock()

    def __repr__(self) -> str:
        return f"Channel(index={self.index}, id={self.id!r}, filename={self._filename!r})"

    def __enter__(self) -> "Channel":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def native(self) -> NativeLibrary:
        if self._closed:
            raise StateError(f"channel {self.index} is closed")
        return self.engine.require_native()

    def _call(self, name: str, *args: Any) -> Any:
        return self.native.call(name, self.index, *args)

    def is_open(self) -> bool:
        return not self._closed

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def _ensure_loadable(self) -> None:
        if self._closed:
            raise StateError(f"channel {self.index} is closed")
        if self._started:
            raise StateError(
                f"channel {self.index} has already begun playback; "
                "close it and create a new channel to load another project"
            )

    def _clear_data(self) -> None:
        self._data = b""
        self._data_pointer = None

    def load_bytes(self, data: bytes | bytearray | memoryview) -> None:
        """Load a project from the contents of a ``.sunvox`` file.

        The channel keeps its own copy of ``data`` alive for as long as the
        project stays loaded.
        Empty data raises :class:`StateError`.
        """

        self._ensure_loadable()
        payload = bytes(data)
        if not payload:
            self._clear_data()
            raise StateError(f"no project data given to channel {self.index}")
        pointer = ffi.from_buffer(payload)
        result = self._call("sv_load_from_memory", pointer, len(payload))
        if result != 0:
            self._clear_data()
            raise NativeCallError(
                f"error loading project into channel {self.index}; error code {result}",
                function="sv_load_from_memory",
                code=int(result),
            )
        self._data = payload
        self._data_pointer = pointer
        self._filename = ""
        logger.debug("Loaded %d bytes into channel %d", len(payload), self.index)

    def load_file(self, path: str | os.PathLike[str]) -> None:
        """Read and load the project file at ``path``."""

        self._ensure_loadable()
        try:
            data = Path(path).read_bytes()
        except OSError:
            self._clear_data()
            raise
        self.load_bytes(data)
        self._filename = os.fspath(path)

    def load_from_fs(self, root: Any, filename: str) -> None:
        """Load ``filename`` relative to ``root``.

        ``root`` is anything with ``joinpath`` returning an object with
        ``read_bytes``: a :class:`pathlib.Path`, a zip path, or an
        ``importlib.resources.files()`` traversable.
        """

        self._ensure_loadable()
        try:
            data = root.joinpath(filename).read_bytes()
        except OSError:
            self._clear_data()
            raise
        self.load_bytes(data)
        self._filename = filename

    @property
    def project_filename(self) -> str:
        """Filename the project was loaded from; empty when loaded from bytes."""

        return self._filename

    @project_filename.setter
    def project_filename(self, filename: str) -> None:
        self._filename = filename

    def is_valid(self) -> bool:
        """Return ``True`` when the channel is open and holds a project."""

        return not self._closed and len(self._data) > 0

    # ------------------------------------------------------------------
    # Project properties
    # ------------------------------------------------------------------
    def project_name(self) -> str:
        return self.native.string(self._call("sv_get_song_name"))

    def set_project_name(self, name: str) -> None:
        check(
            self._call("sv_set_song_name", encode(name)),
            "sv_set_song_name",
            f"error setting the project name in channel {self.index}",
            zero_is_success=True,
        )

    def set_volume(self, volume: float) -> None:
        """Set the volume from 0 to 1, in steps of 1/256."""

        volume = min(max(float(volume), 0.0), 1.0)
        check(
            self._call("sv_volume", int(volume * VOLUME_SCALE)),
            "sv_volume",
            f"error setting the volume of channel {self.index}",
        )

    def volume(self) -> float:
        # a negative volume leaves it unchanged and returns the current one
        result = check(
            self._call("sv_volume", -1),
            "sv_volume",
            f"error retrieving the volume of channel {self.index}",
        )
        return result / VOLUME_SCALE

    def bpm(self) -> float:
        return float(self._call("sv_get_song_bpm"))

    def set_bpm(self, bpm: float) -> None:
        """Change the tempo; values below 32 BPM are raised to 32."""

        self.send_event(0, 0, 0, 0, EFFECT_SET_SPEED, int(max(bpm, MIN_BPM)))

    def tpl(self) -> int:
        """Ticks per line."""

        return int(self._call("sv_get_song_tpl"))

    def set_tpl(self, tpl: int) -> None:
        """Change ticks per line, clamped to 1..31."""

        self.send_event(0, 0, 0, 0, EFFECT_SET_SPEED, int(min(max(tpl, 1), MAX_TPL)))

    def tpm(self) -> float:
        """Ticks per minute."""

        return self.bpm() * TICKS_PER_BEAT

    def lpm(self) -> float:
        """Lines per minute."""

        tpl = self.tpl()
        if tpl <= 0:
            return 0.0
        return self.tpm() / tpl

    def length_in_frames(self) -> int:
        return int(self._call("sv_get_song_length_frames"))

    def length_in_lines(self) -> int:
        return int(self._call("sv_get_song_length_lines"))

    def length(self) -> float:
        """Length of the project in seconds."""

        return self.length_in_frames() / self.engine.sample_rate()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def pause_audio_engine(self) -> None:
        """Pause the audio stream. Playback state is kept, only sound output stops."""

        check(self._call("sv_pause"), "sv_pause", f"error pausing the audio engine for channel {self.index}")

    def resume_audio_engine(self) -> None:
        check(self._call("sv_resume"), "sv_resume", f"error resuming the audio engine for channel {self.index}")

    @contextmanager
    def audio_paused(self) -> Iterator["Channel"]:
        """Pause audio for the duration of the block; nested blocks pause once."""

        with self._pause_lock:
            if self._pause_depth == 0:
                self.pause_audio_engine()
            self._pause_depth += 1
            try:
                yield self
            finally:
                self._pause_depth -= 1
                if self._pause_depth == 0 and not self._closed:
                    self.resume_audio_engine()

    def lock(self) -> None:
        """Take the engine's slot lock, required around concurrent structural edits."""

        check(self._call("sv_lock_slot"), "sv_lock_slot", f"error locking channel {self.index}", zero_is_success=True)

    def unlock(self) -> None:
        check(
            self._call("sv_unlock_slot"),
            "sv_unlock_slot",
            f"error unlocking channel {self.index}",
            zero_is_success=True,
        )

    @contextmanager
    def locked(self) -> Iterator["Channel"]:
        self.lock()
        try:
            yield self
        finally:
            self.unlock()

    def play(self) -> None:
        """Play from the current playhead position; also resumes a stopped channel."""

        with self.audio_paused():
            check(self._call("sv_play"), "sv_play", f"error playing channel {self.index}")
        self._playing = True
        self._started = True

    def play_from_beginning(self) -> None:
        with self.audio_paused():
            check(
                self._call("sv_play_from_beginning"),
                "sv_play_from_beginning",
                f"error playing channel {self.index} from the beginning",
            )
        self._playing = True
        self._started = True

    def stop(self) -> None:
        """Stop playback. A second stop also silences lingering echoes and tails.

        Does nothing when no project is loaded.
        """

        if not self.is_valid():
            return
        with self.audio_paused():
            check(self._call("sv_stop"), "sv_stop", f"error stopping channel {self.index}")
        self._playing = False

    def seek(self, line: int) -> None:
        with self.audio_paused():
            check(
                self._call("sv_rewind", int(line)),
                "sv_rewind",
                f"error seeking channel {self.index} to line {line}",
                zero_is_success=True,
            )

    def is_playing(self) -> bool:
        """Return ``True`` after play until stop, including at the end of a non-looping song."""

        return self._playing

    def is_looping(self) -> bool:
        return int(self._call("sv_get_autostop")) == 0

    def set_looping(self, loop: bool) -> None:
        if bool(loop) == self.is_looping():
            return
        with self.audio_paused():
            check(
                self._call("sv_set_autostop", 0 if loop else 1),
                "sv_set_autostop",
                f"error setting looping on channel {self.index}",
                zero_is_success=True,
            )

    def is_at_end_of_song(self) -> bool:
        """Only meaningful for projects that do not loop."""

        return int(self._call("sv_end_of_song")) == 1

    def current_line(self) -> int:
        return int(self._call("sv_get_current_line"))

    def current_signal_level(self) -> tuple[float, float]:
        """Left and right output level from 0 to 1."""

        left = int(self._call("sv_get_current_signal_level", 0))
        right = int(self._call("sv_get_current_signal_level", 1))
        return left / SIGNAL_LEVEL_SCALE, right / SIGNAL_LEVEL_SCALE

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def set_event_timestamp(self, set_timestamp: bool, timestamp: int = 0) -> None:
        """Control when events sent with :meth:`send_event` are heard.

        With ``set_timestamp`` false events play as soon as possible. Otherwise
        they play at ``timestamp`` (from :meth:`Engine.ticks`) plus twice the
        output latency.
        """

        check(
            self._call("sv_set_event_t", 1 if set_timestamp else 0, int(timestamp)),
            "sv_set_event_t",
            f"error setting the event timestamp for channel {self.index}",
        )

    def send_event(self, track: int, note: int, velocity: int, module: int, ctl: int, ctl_value: int) -> None:
        """Send a pattern-style event; ``module`` is the module index plus one, 0 for none."""

        check(
            self._call("sv_send_event", track, note, velocity, module, ctl, ctl_value),
            "sv_send_event",
            f"error sending event to channel {self.index}",
        )

    # ------------------------------------------------------------------
    # Patterns
    # ------------------------------------------------------------------
    def pattern_slot_count(self) -> int:
        """Number of pattern slots, including empty ones."""

        return check(
            self._call("sv_get_number_of_patterns"),
            "sv_get_number_of_patterns",
            f"error counting patterns in channel {self.index}",
        )

    def patterns(self) -> Iterator[Pattern]:
        """Iterate over the patterns that exist, skipping empty slots."""

        for index in range(self.pattern_slot_count()):
            if int(self._call("sv_get_pattern_lines", index)) > 0:
                yield Pattern(self, index)

    def pattern_count(self) -> int:
        return sum(1 for _ in self.patterns())

    def pattern_by_index(self, index: int) -> Pattern | None:
        if index < 0 or index >= self.pattern_slot_count():
            return None
        if int(self._call("sv_get_pattern_lines", index)) <= 0:
            return None
        return Pattern(self, index)

    def pattern_by_name(self, name: str) -> Pattern | None:
        index = int(self._call("sv_find_pattern", encode(name)))
        if index < 0:
            return None
        return Pattern(self, index)

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------
    def module_slot_count(self) -> int:
        """Number of module slots; deleted modules leave empty slots behind."""

        return check(
            self._call("sv_get_number_of_modules"),
            "sv_get_number_of_modules",
            f"error counting modules in channel {self.index}",
        )

    def _module_exists(self, index: int) -> bool:
        flags = int(self._call("sv_get_module_flags", index))
        return flags >= 0 and bool(flags & ModuleFlag.EXISTS)

    def modules(self) -> Iterator[Module]:
        for index in range(self.module_slot_count()):
            if self._module_exists(index):
                yield Module(self, index)

    def module_count(self) -> int:
        return sum(1 for _ in self.modules())

    def module_by_index(self, index: int) -> Module | None:
        """Module at ``index``, which matches the hexadecimal number shown in SunVox."""

        if index < 0 or not self._module_exists(index):
            return None
        return Module(self, index)

    def module_by_name(self, name: str) -> Module | None:
        index = int(self._call("sv_find_module", encode(name)))
        if index < 0:
            return None
        return Module(self, index)

    def output_module(self) -> Module:
        return Module(self, OUTPUT_MODULE_INDEX)

    # ------------------------------------------------------------------
    # Custom loop
    # ------------------------------------------------------------------
    def set_custom_loop(self, start_line: int, end_line: int) -> None:
        """Loop only the patterns lying entirely within ``[start_line, end_line)``.

        Every other pattern is parked far to the left of the timeline and
        the looped patterns are shifted so the earliest starts at line 0.
        The engine works out song bounds when playback starts, so call
        :meth:`play_from_beginning` afterwards.
        """

        if end_line <= start_line:
            raise BoundsError(f"custom loop end {end_line} must be after its start {start_line}")
        if self._custom_loop_active and self._custom_loop_request == (start_line, end_line):
            return

        self.reset_custom_loop()

        with self.audio_paused():
            inside: list[tuple[Pattern, int]] = []
            outside: list[tuple[Pattern, int]] = []
            for pattern in list(self.patterns()):
                x = pattern.x()
                if x >= start_line and x + pattern.line_count() <= end_line:
                    inside.append((pattern, x))
                else:
                    outside.append((pattern, x))
            if not inside:
                raise StateError(
                    f"no pattern in channel {self.index} lies entirely within lines {start_line}..{end_line}"
                )

            least_x = min(x for _, x in inside)
            shifts: dict[int, int] = {}
            for pattern, x in outside:
                if x > CUSTOM_LOOP_THRESHOLD:
                    pattern.set_xy(x - CUSTOM_LOOP_OFFSET, pattern.y())
                    shifts[pattern.index] = CUSTOM_LOOP_OFFSET
            for pattern, x in inside:
                pattern.set_xy(x - least_x, pattern.y())
                shifts[pattern.index] = least_x

        self._custom_loop_active = True
        self._custom_loop_start = least_x
        self._custom_loop_end = end_line - least_x
        self._custom_loop_request = (start_line, end_line)
        self._custom_loop_shifts = shifts
        logger.debug("Channel %d looping lines %d..%d", self.index, start_line, end_line)

    def reset_custom_loop(self) -> None:
        """Move every pattern back to where it was before :meth:`set_custom_loop`."""

        if not self._custom_loop_active:
            return
        with self.audio_paused():
            for pattern in list(self.patterns()):
                shift = self._custom_loop_shifts.get(pattern.index, 0)
                if shift:
                    pattern.set_xy(pattern.x() + shift, pattern.y())
        self._custom_loop_active = False
        self._custom_loop_start = 0
        self._custom_loop_end = 0
        self._custom_loop_request = None
        self._custom_loop_shifts = {}

    def has_custom_loop(self) -> bool:
        return self._custom_loop_active

    def custom_loop_start(self) -> int:
        """Original line of the first looped pattern, or 0 without a custom loop."""

        return self._custom_loop_start if self._custom_loop_active else 0

    def custom_loop_end(self) -> int:
        """Loop end on the shifted timeline, or 0 without a custom loop."""

        return self._custom_loop_end if self._custom_loop_active else 0

    def custom_loop_shift(self, pattern_index: int) -> int:
        """Lines the custom loop moved pattern ``pattern_index`` to the left."""

        if not self._custom_loop_active:
            return 0
        return self._custom_loop_shifts.get(pattern_index, 0)

    # ------------------------------------------------------------------
    # Pollers
    # ------------------------------------------------------------------
    def _replace_poller(self, name: str, poller: Poller | None) -> None:
        with self._poller_lock:
            previous = self._pollers.pop(name, None)
            if poller is not None:
                self._pollers[name] = poller
        if previous is not None:
            previous.stop()
        if poller is not None:
            poller.start()

    def set_on_current_line_change(
        self,
        callback: LineChangeCallback | None,
        poll_resolution: float = DEFAULT_POLL_RESOLUTION,
    ) -> LineChangePoller | None:
        """Call ``callback(line)`` from a background thread when the playhead changes line.

        Returning ``False`` from the callback ends polling, as does passing
        ``None``, setting another callback, or closing the channel.
        """

        if self._closed:
            raise StateError(f"channel {self.index} is closed")
        poller = None if callback is None else LineChangePoller(self, callback, poll_resolution)
        self._replace_poller(LINE_CHANGE_POLLER, poller)
        return poller

    def set_on_pattern_touch(
        self,
        callback: PatternTouchCallback | None,
        poll_resolution: float = DEFAULT_POLL_RESOLUTION,
    ) -> PatternTouchPoller | None:
        """Call ``callback(pattern, entered)`` when the playhead enters or leaves a pattern.

        ``entered`` is ``True`` when the pattern starts playing and ``False``
        when it finishes. Stops under the same conditions as
        :meth:`set_on_current_line_change`.
        """

        if self._closed:
            raise StateError(f"channel {self.index} is closed")
        poller = None if callback is None else PatternTouchPoller(self, callback, poll_resolution)
        self._replace_poller(PATTERN_TOUCH_POLLER, poller)
        return poller

    def _cancel_pollers(self) -> None:
        with self._poller_lock:
            pollers = list(self._pollers.values())
            self._pollers.clear()
        for poller in pollers:
            poller.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        """Close the slot and hand it back to the engine."""

        if self._closed:
            return
        check(
            self.native.call("sv_close_slot", self.index),
            "sv_close_slot",
            f"error closing channel {self.index}",
            zero_is_success=True,
        )
        self._release()
        logger.debug("Closed channel %d", self.index)

    def _release(self) -> None:
        self._closed = True
        self.engine.release_slot(self.index)
        self._cancel_pollers()
        self._playing = False
        self._clear_data()


__all__ = ["Channel", "LINE_CHANGE_POLLER", "PATTERN_TOUCH_POLLER"]
