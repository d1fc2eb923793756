"""Engine configuration: the ``sv_init`` builder and JSON loading."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from .constants import DEFAULT_SAMPLE_RATE, InitFlag

_REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_CONFIG_PATH = _REPO_ROOT / "configs" / "default.json"


@dataclass(slots=True)
class InitConfig:
    """Arguments handed to ``sv_init``.

    ``extra`` is the engine's option string, ``key=value`` pairs joined by
    ``|`` (for example ``"buffer=1024|audiodriver=alsa|audiodevice=hw:0,0"``).
    The ``with_*`` methods append to it and return ``self`` so calls chain.
    """

    sample_rate: int = 0
    flags: int = 0
    extra: str = ""

    def with_option(self, key: str, value: object) -> "InitConfig":
        if self.extra:
            self.extra += "|"
        self.extra += f"{key}={value}"
        return self

    def with_buffer(self, buffer_size: int) -> "InitConfig":
        """Preferred buffer size; the engine may settle on a different one."""

        return self.with_option("buffer", int(buffer_size))

    def with_audio_driver(self, driver_name: str) -> "InitConfig":
        """Audio driver by name, e.g. ``alsa``, ``pulse``, ``dsound``, ``asio`` or ``sdl``."""

        return self.with_option("audiodriver", driver_name)

    def with_audio_driver_linux_jack(self) -> "InitConfig":
        if sys.platform.startswith("linux"):
            self.with_option("audiodriver", "jack")
        return self

    def with_audio_driver_linux_pipewire(self) -> "InitConfig":
        if sys.platform.startswith("linux"):
            self.with_option("audiodriver", "pipewire")
        return self

    def with_audio_driver_linux_pulseaudio(self) -> "InitConfig":
        if sys.platform.startswith("linux"):
            self.with_option("audiodriver", "pulse")
        return self

    def with_audio_driver_sdl(self) -> "InitConfig":
        return self.with_option("audiodriver", "sdl")

    def with_device(self, device_name: str) -> "InitConfig":
        """Output device, e.g. ``hw:0,0`` for the first ALSA device."""

        return self.with_option("audiodevice", device_name)

    def with_sample_rate(self, sample_rate: int) -> "InitConfig":
        self.sample_rate = int(sample_rate)
        return self

    def with_flag(self, flag: int) -> "InitConfig":
        self.flags |= int(flag)
        return self

    def with_no_debug(self) -> "InitConfig":
        return self.with_flag(InitFlag.NO_DEBUG_OUTPUT)

    def with_one_thread(self) -> "InitConfig":
        return self.with_flag(InitFlag.ONE_THREAD)

    def resolved_sample_rate(self) -> int:
        return self.sample_rate if self.sample_rate > 0 else DEFAULT_SAMPLE_RATE


@dataclass(slots=True)
class EngineConfig:
    """File-backed settings used by the command line front end."""

    library_dir: str | None = None
    library_path: str | None = None
    sample_rate: int = DEFAULT_SAMPLE_RATE
    buffer: int | None = None
    audio_driver: str | None = None
    audio_device: str | None = None
    debug_output: bool = True
    one_thread: bool = False
    extra_options: Mapping[str, str] = field(default_factory=dict)

    def to_init_config(self) -> InitConfig:
        config = InitConfig().with_sample_rate(self.sample_rate)
        if self.buffer:
            config.with_buffer(self.buffer)
        if self.audio_driver:
            config.with_audio_driver(self.audio_driver)
        if self.audio_device:
            config.with_device(self.audio_device)
        for key, value in self.extra_options.items():
            config.with_option(key, value)
        if not self.debug_output:
            config.with_no_debug()
        if self.one_thread:
            config.with_one_thread()
        return config


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _normalise(data: Mapping[str, Any]) -> EngineConfig:
    buffer = data.get("buffer")
    if buffer is not None:
        buffer = int(buffer)
        if buffer <= 0:
            raise ValueError("buffer must be a positive frame count")
    extra = data.get("extra_options", {}) or {}
    if not isinstance(extra, Mapping):
        raise TypeError("extra_options must be an object of option names to values")
    return EngineConfig(
        library_dir=_optional_str(data.get("library_dir")),
        library_path=_optional_str(data.get("library_path")),
        sample_rate=int(data.get("sample_rate", DEFAULT_SAMPLE_RATE)),
        buffer=buffer,
        audio_driver=_optional_str(data.get("audio_driver")),
        audio_device=_optional_str(data.get("audio_device")),
        debug_output=bool(data.get("debug_output", True)),
        one_thread=bool(data.get("one_thread", False)),
        extra_options={str(key): str(value) for key, value in extra.items()},
    )


def load_configuration(path: str | Path) -> EngineConfig:
    """Load an :class:`EngineConfig` from the JSON file at ``path``."""

    with open(path, "r", encoding="utf8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, Mapping):
        raise ValueError("configuration root must be a JSON object")
    return _normalise(raw)


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EngineConfig",
    "InitConfig",
    "load_configuration",
]
