"""Python binding for the SunVox modular synthesizer engine."""

from __future__ import annotations

from .channel import Channel
from .config import EngineConfig, InitConfig, load_configuration
from .constants import MIDDLE_C, InitFlag, ModuleFlag, NoteCommand
from .engine import ChannelSelection, Engine, get_engine
from .errors import (
    BoundsError,
    CapacityError,
    InitError,
    LoadError,
    NativeCallError,
    StateError,
    SunVoxError,
)
from .fades import ControllerFade, VolumeFade
from .module import Module
from .pattern import Pattern, PatternData

__all__ = [
    "BoundsError",
    "CapacityError",
    "Channel",
    "ChannelSelection",
    "ControllerFade",
    "Engine",
    "EngineConfig",
    "InitConfig",
    "InitError",
    "InitFlag",
    "LoadError",
    "MIDDLE_C",
    "Module",
    "ModuleFlag",
    "NativeCallError",
    "NoteCommand",
    "Pattern",
    "PatternData",
    "StateError",
    "SunVoxError",
    "VolumeFade",
    "get_engine",
    "load_configuration",
]
