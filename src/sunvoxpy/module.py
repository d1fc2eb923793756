"""Modules: the generators and effects that make up a project's signal graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from .constants import CTL_SCALE_DISPLAYED, EFFECT_SET_BSM, ModuleFlag
from .errors import BoundsError, StateError, SunVoxError
from .native import check, ffi

if TYPE_CHECKING:
    from .channel import Channel

OUTPUT_MODULE_INDEX = 0


def _signed16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


@dataclass(frozen=True)
class Module:
    """Reference to module ``index`` in a channel's project.

    Controllers are addressed by the number shown in the SunVox interface,
    starting at 1; the engine itself counts from 0.
    """

    channel: "Channel" = field(repr=False)
    index: int

    def _call(self, name: str, *args: Any) -> Any:
        return self.channel.native.call(name, self.channel.index, self.index, *args)

    def name(self) -> str:
        return self.channel.native.string(self._call("sv_get_module_name"))

    def is_valid(self) -> bool:
        if not self.channel.is_open():
            return False
        try:
            flags = int(self._call("sv_get_module_flags"))
        except SunVoxError:
            return False
        return flags >= 0 and bool(flags & ModuleFlag.EXISTS)

    def flags(self) -> ModuleFlag:
        result = check(
            self._call("sv_get_module_flags"),
            "sv_get_module_flags",
            f"error retrieving flags for module {self.index} in channel {self.channel.index}",
        )
        return ModuleFlag(result)

    def is_generator(self) -> bool:
        return ModuleFlag.GENERATOR in self.flags()

    def is_effect(self) -> bool:
        return ModuleFlag.EFFECT in self.flags()

    def is_muted(self) -> bool:
        return ModuleFlag.MUTE in self.flags()

    def is_solo(self) -> bool:
        return ModuleFlag.SOLO in self.flags()

    def is_bypassed(self) -> bool:
        return ModuleFlag.BYPASS in self.flags()

    def set_bsm(self, bypass: bool, solo: bool, mute: bool) -> None:
        """Set bypass, solo and mute at once. Only instruments honour this."""

        value = (0x100 if bypass else 0) + (0x10 if solo else 0) + (0x1 if mute else 0)
        with self.channel.audio_paused():
            self.channel.send_event(0, 0, 0, self.index + 1, EFFECT_SET_BSM, value)

    # ------------------------------------------------------------------
    # Controllers
    # ------------------------------------------------------------------
    def controller_count(self) -> int:
        return check(
            self._call("sv_get_number_of_module_ctls"),
            "sv_get_number_of_module_ctls",
            f"error counting controllers of module {self.index} in channel {self.channel.index}",
        )

    def _controller_index(self, number: int, action: str) -> int:
        number = int(number)
        if number <= 0:
            raise BoundsError(f"cannot {action} controller {number}; controller numbers start at 1")
        count = self.controller_count()
        if number > count:
            raise BoundsError(
                f"cannot {action} controller {number}; module {self.index} has {count} controllers"
            )
        return number - 1

    def controller_name(self, number: int) -> str:
        ctl = self._controller_index(number, "name")
        return self.channel.native.string(self._call("sv_get_module_ctl_name", ctl))

    def controller_value(self, number: int, scaled: int = CTL_SCALE_DISPLAYED) -> int:
        """Current value of controller ``number`` (1-based) as shown in the interface."""

        ctl = self._controller_index(number, "read")
        return int(self._call("sv_get_module_ctl_value", ctl, scaled))

    def controller_minimum(self, number: int, scaled: int = CTL_SCALE_DISPLAYED) -> int:
        ctl = self._controller_index(number, "read the minimum of")
        return int(self._call("sv_get_module_ctl_min", ctl, scaled))

    def controller_maximum(self, number: int, scaled: int = CTL_SCALE_DISPLAYED) -> int:
        ctl = self._controller_index(number, "read the maximum of")
        return int(self._call("sv_get_module_ctl_max", ctl, scaled))

    def set_controller_value(self, number: int, value: int, scaled: int = CTL_SCALE_DISPLAYED) -> None:
        """Set controller ``number`` (1-based) to ``value``.

        ``value`` is the displayed value, e.g. panning on an Analog Generator
        (controller 3) runs from -128 to 128, so 64 is half right.
        """

        ctl = self._controller_index(number, "set")
        check(
            self._call("sv_set_module_ctl_value", ctl, int(value), scaled),
            "sv_set_module_ctl_value",
            f"error setting controller {number} of module {self.index} to {value}",
        )

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------
    def connect(self, destination: "Module") -> None:
        if destination is None:
            raise StateError(f"cannot connect module {self.index}; destination module is None")
        with self.channel.locked():
            result = self._call("sv_connect_module", destination.index)
        check(
            result,
            "sv_connect_module",
            f"error connecting module {self.index} (source) to module {destination.index} (destination)",
        )

    def disconnect(self, destination: "Module") -> None:
        if destination is None:
            raise StateError(f"cannot disconnect module {self.index}; destination module is None")
        with self.channel.locked():
            result = self._call("sv_disconnect_module", destination.index)
        check(
            result,
            "sv_disconnect_module",
            f"error disconnecting module {self.index} (source) from module {destination.index} (destination)",
        )

    # ------------------------------------------------------------------
    # Tuning
    # ------------------------------------------------------------------
    def finetune(self) -> int:
        return _signed16(int(self._call("sv_get_module_finetune")) >> 16)

    def relative_note(self) -> int:
        return _signed16(int(self._call("sv_get_module_finetune")))

    def set_finetune(self, finetune: int) -> None:
        """Finetune from -256 to 256; 0 is the default."""

        check(
            self._call("sv_set_module_finetune", int(finetune)),
            "sv_set_module_finetune",
            f"error setting finetune of module {self.index} to {finetune}",
        )

    def set_relative_note(self, relative_note: int) -> None:
        check(
            self._call("sv_set_module_relnote", int(relative_note)),
            "sv_set_module_relnote",
            f"error setting relative note of module {self.index} to {relative_note}",
        )

    def scope(self, audio_channel: int = 0, samples: int = 1024) -> np.ndarray:
        """Return the most recent ``samples`` of audio passing through the module."""

        if samples <= 0:
            raise BoundsError("samples must be positive")
        buffer = np.zeros(samples, dtype=np.int16)
        pointer = ffi.from_buffer("int16_t[]", buffer)
        received = int(self._call("sv_get_module_scope2", int(audio_channel), pointer, samples))
        return buffer[: min(received, samples)]


__all__ = ["Module", "OUTPUT_MODULE_INDEX"]
