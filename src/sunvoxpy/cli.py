"""Command line player: load a project, play it and take simple commands."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Sequence, TextIO

import numpy as np

from .channel import Channel
from .config import DEFAULT_CONFIG_PATH, EngineConfig, load_configuration
from .constants import NoteCommand
from .engine import Engine, get_engine
from .errors import SunVoxError
from .logging_setup import configure_logging
from .native_paths import library_path_for_directory

logger = logging.getLogger(__name__)

BPM_STEP = 0.2

HELP_TEXT = (
    "s+ : speed up | s- : slow down | p+ : pitch up | p- : pitch down | "
    "l START END : loop lines START..END | r : play the whole song | q : quit"
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play a SunVox project")
    parser.add_argument("project", type=Path, help="Path to the .sunvox project to play")
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to configuration file")
    source = parser.add_mutually_exclusive_group()
    source.add_argument(
        "--library-dir",
        type=Path,
        help="Directory holding the SunVox library download (<dir>/<os>/<arch>/<file>)",
    )
    source.add_argument("--library", type=Path, help="Exact path to the SunVox shared library")
    parser.add_argument("--channel-id", default="music", help="Identifier given to the playback channel")
    parser.add_argument(
        "--trace-native-calls",
        action="store_true",
        help="Append every native call to logs/native_calls.log",
    )
    return parser


def _configuration(path: Path) -> EngineConfig:
    if path.exists():
        return load_configuration(path)
    logger.info("Configuration %s not found; using defaults", path)
    return EngineConfig()


def resolve_library_path(args: argparse.Namespace, config: EngineConfig) -> Path | None:
    """Pick the library from the command line first, then the configuration file."""

    if args.library is not None:
        return args.library
    if args.library_dir is not None:
        return library_path_for_directory(args.library_dir)
    if config.library_path:
        return Path(config.library_path)
    if config.library_dir:
        return library_path_for_directory(config.library_dir)
    return None


def transpose(channel: Channel, semitones: int) -> int:
    """Shift every pitched note in the project; returns the number of notes changed."""

    highest = int(NoteCommand.NOTE_OFF) - 1
    changed = 0
    for pattern in channel.patterns():
        notes = pattern.data().cells["note"]
        pitched = (notes > 0) & (notes <= highest)
        shifted = np.clip(notes[pitched].astype(np.int16) + semitones, 1, highest)
        notes[pitched] = shifted.astype(np.uint8)
        changed += int(np.count_nonzero(pitched))
    return changed


def handle_command(channel: Channel, command: str) -> tuple[str, bool]:
    """Apply one prompt command and return ``(message, keep_running)``."""

    parts = command.split()
    if not parts:
        return HELP_TEXT, True
    name, rest = parts[0], parts[1:]

    if name == "q":
        channel.stop()
        return "Playback stopped", False
    if name == "s+":
        channel.set_bpm(channel.bpm() * (1 + BPM_STEP))
        return "BPM sped up by 20%", True
    if name == "s-":
        channel.set_bpm(channel.bpm() * (1 - BPM_STEP))
        return "BPM slowed down by 20%", True
    if name in ("p+", "p-"):
        step = 1 if name == "p+" else -1
        transpose(channel, step)
        return f"Song pitched {'up' if step > 0 else 'down'} by 1 semitone", True
    if name == "l":
        try:
            start, end = (int(value) for value in rest)
        except ValueError:
            return "usage: l START END", True
        channel.set_custom_loop(start, end)
        channel.play_from_beginning()
        return f"Looping lines {start}..{end}", True
    if name == "r":
        channel.reset_custom_loop()
        channel.play_from_beginning()
        return "Playing the whole song", True
    return f"Command '{command.strip()}' is not recognized", True


def run_prompt(channel: Channel, stdin: TextIO, stdout: TextIO) -> None:
    """Read commands from ``stdin`` until ``q``, end of input, or playback ends."""

    while channel.is_playing():
        stdout.write(f"\n{HELP_TEXT}\n> ")
        stdout.flush()
        line = stdin.readline()
        if not line:
            channel.stop()
            break
        try:
            message, keep_running = handle_command(channel, line)
        except SunVoxError as exc:
            message, keep_running = f"error: {exc}", True
        stdout.write(message + "\n")
        if not keep_running:
            break


def run(
    args: argparse.Namespace,
    engine: Engine | None = None,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    if engine is None:
        engine = get_engine()
    if stdin is None:
        stdin = sys.stdin
    if stdout is None:
        stdout = sys.stdout

    config = _configuration(args.config)
    library_path = resolve_library_path(args, config)
    try:
        engine.init(library_path, config.to_init_config())
    except SunVoxError as exc:
        logger.error("%s", exc)
        return 1

    exit_code = 0
    try:
        with engine.create_channel(args.channel_id) as channel:
            channel.load_file(args.project)
            logger.info("Playing %s (%s)", args.project, channel.project_name())
            channel.play_from_beginning()
            run_prompt(channel, stdin, stdout)
    except (OSError, SunVoxError) as exc:
        logger.error("%s", exc)
        exit_code = 1
    try:
        engine.deinit()
    except SunVoxError as exc:
        logger.error("%s", exc)
        exit_code = 1
    return exit_code


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(trace_native_calls=True if args.trace_native_calls else None)
    return run(args)


__all__ = ["build_parser", "handle_command", "main", "resolve_library_path", "run", "run_prompt", "transpose"]
