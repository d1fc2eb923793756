"""Numeric encodings shared with the native engine."""

from __future__ import annotations

from enum import IntEnum, IntFlag

MAX_CHANNELS = 16
DEFAULT_SAMPLE_RATE = 44100
OUTPUT_CHANNELS = 2  # the engine only supports stereo output

VOLUME_SCALE = 256  # 0..256 fixed point for 0.0..1.0
SIGNAL_LEVEL_SCALE = 255

MIDDLE_C = 61  # C5

TICKS_PER_BEAT = 24
MIN_BPM = 0x20
MAX_TPL = 0x1F

# Pattern effect codes used with send_event (ctl = 0xCCEE, module 0 for global effects)
EFFECT_SET_SPEED = 0x000F
EFFECT_SET_BSM = 0x0013

# Controller value scaling passed to the ctl value/min/max entry points
CTL_SCALE_REAL = 0
CTL_SCALE_PATTERN = 1
CTL_SCALE_DISPLAYED = 2


class InitFlag(IntFlag):
    NO_DEBUG_OUTPUT = 1 << 0
    USER_AUDIO_CALLBACK = 1 << 1
    AUDIO_INT16 = 1 << 2
    AUDIO_FLOAT32 = 1 << 3
    ONE_THREAD = 1 << 4


class ModuleFlag(IntFlag):
    EXISTS = 1 << 0
    GENERATOR = 1 << 1
    EFFECT = 1 << 2
    MUTE = 1 << 3
    SOLO = 1 << 4
    BYPASS = 1 << 5


class NoteCommand(IntEnum):
    """Note values at or above 128 are commands rather than pitches."""

    NOTE_OFF = 128
    ALL_NOTES_OFF = 129  # note off on every module
    CLEAN_SYNTHS = 130  # stop every module and clear its buffers
    STOP = 131
    PLAY = 132
    SET_PITCH = 133  # pitch taken from XXYY; 0x0000 highest, 0x7800 is C0
    CLEAN_MODULE = 140


def is_note_command(note: int) -> bool:
    return note >= NoteCommand.NOTE_OFF


__all__ = [
    "CTL_SCALE_DISPLAYED",
    "CTL_SCALE_PATTERN",
    "CTL_SCALE_REAL",
    "DEFAULT_SAMPLE_RATE",
    "EFFECT_SET_BSM",
    "EFFECT_SET_SPEED",
    "InitFlag",
    "MAX_CHANNELS",
    "MAX_TPL",
    "MIDDLE_C",
    "MIN_BPM",
    "ModuleFlag",
    "NoteCommand",
    "OUTPUT_CHANNELS",
    "SIGNAL_LEVEL_SCALE",
    "TICKS_PER_BEAT",
    "VOLUME_SCALE",
    "is_note_command",
]
