"""cffi declarations for the SunVox shared library and the loader around them.

The library is opened in ABI mode with ``ffi.dlopen`` so no compiler is
needed. Entry points are resolved lazily by symbol name on first use, which
means a library build lacking an optional function still loads and only
fails when that function is actually called.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Any

import cffi

from . import diagnostics
from .errors import LoadError, NativeCallError

_CDEF = """
typedef struct {
    uint8_t note;
    uint8_t vel;
    uint16_t module;
    uint16_t ctl;
    uint16_t ctl_val;
} sunvox_note;

int sv_init(const char *config, int freq, int channels, uint32_t flags);
int sv_deinit(void);
int sv_get_sample_rate(void);
uint32_t sv_get_ticks(void);
uint32_t sv_get_ticks_per_second(void);

int sv_open_slot(int slot);
int sv_close_slot(int slot);
int sv_lock_slot(int slot);
int sv_unlock_slot(int slot);

int sv_load(int slot, const char *name);
int sv_load_from_memory(int slot, void *data, uint32_t data_size);

int sv_play(int slot);
int sv_play_from_beginning(int slot);
int sv_stop(int slot);
int sv_pause(int slot);
int sv_resume(int slot);
int sv_set_autostop(int slot, int autostop);
int sv_get_autostop(int slot);
int sv_end_of_song(int slot);
int sv_rewind(int slot, int line_num);
int sv_volume(int slot, int vol);
int sv_set_event_t(int slot, int set, int t);
int sv_send_event(int slot, int track_num, int note, int vel, int module, int ctl, int ctl_val);
int sv_get_current_line(int slot);
int sv_get_current_signal_level(int slot, int channel);

const char *sv_get_song_name(int slot);
int sv_set_song_name(int slot, const char *name);
int sv_get_song_bpm(int slot);
int sv_get_song_tpl(int slot);
uint32_t sv_get_song_length_frames(int slot);
uint32_t sv_get_song_length_lines(int slot);

int sv_find_module(int slot, const char *name);
int sv_find_pattern(int slot, const char *name);

int sv_get_number_of_modules(int slot);
int sv_get_module_flags(int slot, int mod_num);
const char *sv_get_module_name(int slot, int mod_num);
int sv_get_number_of_module_ctls(int slot, int mod_num);
const char *sv_get_module_ctl_name(int slot, int mod_num, int ctl_num);
int sv_get_module_ctl_value(int slot, int mod_num, int ctl_num, int scaled);
int sv_set_module_ctl_value(int slot, int mod_num, int ctl_num, int val, int scaled);
int sv_get_module_ctl_min(int slot, int mod_num, int ctl_num, int scaled);
int sv_get_module_ctl_max(int slot, int mod_num, int ctl_num, int scaled);
uint32_t sv_get_module_finetune(int slot, int mod_num);
int sv_set_module_finetune(int slot, int mod_num, int finetune);
int sv_set_module_relnote(int slot, int mod_num, int relative_note);
int sv_connect_module(int slot, int source, int destination);
int sv_disconnect_module(int slot, int source, int destination);
uint32_t sv_get_module_scope2(int slot, int mod_num, int channel, int16_t *dest_buf, uint32_t samples_to_read);

int sv_get_number_of_patterns(int slot);
int sv_get_pattern_x(int slot, int pat_num);
int sv_get_pattern_y(int slot, int pat_num);
int sv_set_pattern_xy(int slot, int pat_num, int x, int y);
int sv_get_pattern_tracks(int slot, int pat_num);
int sv_get_pattern_lines(int slot, int pat_num);
const char *sv_get_pattern_name(int slot, int pat_num);
sunvox_note *sv_get_pattern_data(int slot, int pat_num);
int sv_pattern_mute(int slot, int pat_num, int mute);
"""

ffi = cffi.FFI()
ffi.cdef(_CDEF)

NOTE_SIZE = ffi.sizeof("sunvox_note")

_LOADED: dict[Path, "NativeLibrary"] = {}
_LOAD_LOCK = threading.Lock()


class NativeLibrary:
    """A loaded SunVox library with name-based access to its entry points."""

    def __init__(self, lib: Any, path: str | os.PathLike[str] | None = None) -> None:
        self.lib = lib
        self.path = None if path is None else Path(path)

    def __repr__(self) -> str:
        return f"NativeLibrary(path={self.path!s})"

    def function(self, name: str):
        try:
            return getattr(self.lib, name)
        except AttributeError as exc:
            raise NativeCallError(
                f"entry point '{name}' is not exported by {self.path or 'the SunVox library'}",
                function=name,
            ) from exc

    def call(self, name: str, *args: Any) -> Any:
        """Invoke the entry point ``name`` and return its raw result."""

        result = self.function(name)(*args)
        if diagnostics.native_call_logging_enabled():
            diagnostics.log_native_call(f"{name}{args!r} -> {result!r}")
        return result

    def string(self, pointer: Any) -> str:
        """Decode a ``const char *`` returned by the library."""

        if pointer is None or pointer == ffi.NULL:
            return ""
        return ffi.string(pointer).decode("utf-8", errors="replace")


def encode(text: str) -> bytes:
    return text.encode("utf-8")


def check(result: int, function: str, message: str, *, zero_is_success: bool = False) -> int:
    """Raise :class:`NativeCallError` when ``result`` signals failure.

    Most entry points report failure with a negative value; the ones that
    document ``0`` as their only success value pass ``zero_is_success``.
    """

    failed = result != 0 if zero_is_success else result < 0
    if failed:
        raise NativeCallError(f"{message}; error code {result}", function=function, code=int(result))
    return int(result)


def load_library(path: str | os.PathLike[str]) -> NativeLibrary:
    """Open the shared library at ``path``.

    Opening the same path twice returns the already loaded handle.
    """

    resolved = Path(path).expanduser()
    with _LOAD_LOCK:
        cached = _LOADED.get(resolved)
        if cached is not None:
            return cached
        if not resolved.exists():
            raise LoadError(f"SunVox library not found: {resolved}")
        try:
            lib = ffi.dlopen(str(resolved), ffi.RTLD_NOW | ffi.RTLD_GLOBAL)
        except OSError as exc:
            raise LoadError(f"Failed to open SunVox library {resolved}: {exc}") from exc
        library = NativeLibrary(lib, resolved)
        _LOADED[resolved] = library
    return library


__all__ = ["NOTE_SIZE", "NativeLibrary", "check", "encode", "ffi", "load_library"]
