"""The process-wide SunVox engine and its pool of channel slots."""

from __future__ import annotations

import logging
import os
import threading
from enum import IntEnum
from pathlib import Path
from typing import Any, Callable, Iterator

from .channel import Channel
from .config import InitConfig
from .constants import MAX_CHANNELS, OUTPUT_CHANNELS
from .errors import CapacityError, InitError, LoadError
from .native import NativeLibrary, check, encode, ffi, load_library
from .native_paths import library_override, library_path_for_directory

logger = logging.getLogger(__name__)


class ChannelSelection(IntEnum):
    """How :meth:`Engine.channel_by_id` treats the playing state of matches."""

    ANY = 0
    IN_USE = 1  # must be playing
    IN_USE_MAYBE = 2  # prefer playing, otherwise any match
    NOT_IN_USE = 3  # must not be playing
    NOT_IN_USE_MAYBE = 4  # prefer not playing, otherwise any match


class Engine:
    """Owner of the loaded library and of up to 16 open channels.

    The native engine supports one instance per process; :func:`get_engine`
    returns that shared instance. Constructing an :class:`Engine` directly is
    useful when the loader has to be swapped out.
    """

    def __init__(self, loader: Callable[[Path], NativeLibrary] = load_library) -> None:
        self._loader = loader
        self.native: NativeLibrary | None = None
        self.initialized = False
        self.major_version = 0
        self.minor_version = 0
        self.minor_version2 = 0
        self._channels: dict[int, Channel] = {}
        self._lock = threading.RLock()

    @property
    def version(self) -> tuple[int, int, int]:
        return (self.major_version, self.minor_version, self.minor_version2)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def init(self, library_path: str | os.PathLike[str] | None = None, config: InitConfig | None = None) -> None:
        """Load the library at ``library_path`` and start the engine.

        Does nothing when the engine is already running. ``SUNVOX_LIBRARY_PATH``
        takes precedence over ``library_path`` when set.
        """

        with self._lock:
            if self.initialized:
                return
            path = library_override() or library_path
            if path is None:
                raise LoadError("no SunVox library path was given")
            native = self._loader(Path(path))
            config = config or InitConfig()
            extra = encode(config.extra) if config.extra else ffi.NULL
            version = int(
                native.call(
                    "sv_init",
                    extra,
                    config.resolved_sample_rate(),
                    OUTPUT_CHANNELS,
                    int(config.flags),
                )
            )
            if version < 0:
                self.initialized = False
                raise InitError(f"error initializing the SunVox engine; error code {version}")

            self.native = native
            self.major_version = (version >> 16) & 255
            self.minor_version = (version >> 8) & 255
            self.minor_version2 = version & 255
            self.initialized = True
        logger.info(
            "SunVox engine %d.%d.%d initialised from %s",
            self.major_version,
            self.minor_version,
            self.minor_version2,
            path,
        )

    def init_from_directory(self, base_directory: str | os.PathLike[str], config: InitConfig | None = None) -> None:
        """Initialise from the ``<base>/<os>/<arch>/<file>`` layout of the library download."""

        if self.initialized:
            return
        self.init(library_path_for_directory(base_directory), config)

    def deinit(self) -> None:
        """Shut the native engine down.

        When the native call fails the error is raised and ``initialized`` is
        left as it was; the engine's own deinit is not reliable enough to
        tell what state it ended up in.
        """

        native = self.require_native()
        check(native.call("sv_deinit"), "sv_deinit", "error deinitializing the SunVox engine", zero_is_success=True)
        with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
            self.initialized = False
        for channel in channels:
            channel._release()
        logger.info("SunVox engine deinitialised")

    def require_native(self) -> NativeLibrary:
        if not self.initialized or self.native is None:
            raise InitError("the SunVox engine has not been initialized")
        return self.native

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------
    def create_channel(self, channel_id: Any = None) -> Channel:
        """Open the lowest free slot and return a :class:`Channel` for it."""

        native = self.require_native()
        with self._lock:
            index = next((i for i in range(MAX_CHANNELS) if i not in self._channels), None)
            if index is None:
                raise CapacityError(
                    f"a maximum of {MAX_CHANNELS} channels are already open; close an existing channel"
                )
            check(
                native.call("sv_open_slot", index),
                "sv_open_slot",
                f"error opening slot {index}",
                zero_is_success=True,
            )
            channel = Channel(self, index, channel_id)
            self._channels[index] = channel
        logger.debug("Opened channel %d (id=%r)", index, channel_id)
        return channel

    def release_slot(self, index: int) -> None:
        with self._lock:
            self._channels.pop(index, None)

    def channels(self) -> Iterator[Channel]:
        """Iterate over open channels in slot order."""

        with self._lock:
            snapshot = [self._channels[i] for i in sorted(self._channels)]
        return iter(snapshot)

    def channel_count(self) -> int:
        with self._lock:
            return len(self._channels)

    def channel_by_index(self, index: int) -> Channel | None:
        with self._lock:
            return self._channels.get(index)

    def channel_by_id(self, channel_id: Any, selection: ChannelSelection = ChannelSelection.ANY) -> Channel | None:
        """Return the first channel whose ``id`` equals ``channel_id``."""

        matches = [channel for channel in self.channels() if channel.id == channel_id]
        if not matches:
            return None
        if selection == ChannelSelection.ANY:
            return matches[0]

        want_playing = selection in (ChannelSelection.IN_USE, ChannelSelection.IN_USE_MAYBE)
        for channel in matches:
            if channel.is_playing() == want_playing:
                return channel
        if selection in (ChannelSelection.IN_USE_MAYBE, ChannelSelection.NOT_IN_USE_MAYBE):
            return matches[0]
        return None

    def channel_by_filename(self, filename: str | os.PathLike[str]) -> Channel | None:
        """Return the channel whose project was loaded from ``filename``."""

        target = os.fspath(filename)
        for channel in self.channels():
            if channel.project_filename == target:
                return channel
        return None

    # ------------------------------------------------------------------
    # Global queries
    # ------------------------------------------------------------------
    def sample_rate(self) -> int:
        native = self.require_native()
        return check(native.call("sv_get_sample_rate"), "sv_get_sample_rate", "error retrieving engine sample rate")

    def ticks(self) -> int:
        """Current system tick count, used to timestamp events."""

        return int(self.require_native().call("sv_get_ticks"))

    def ticks_per_second(self) -> int:
        return int(self.require_native().call("sv_get_ticks_per_second"))


_ENGINE = Engine()


def get_engine() -> Engine:
    """Return the single engine instance for this process."""

    return _ENGINE


__all__ = ["ChannelSelection", "Engine", "get_engine"]
