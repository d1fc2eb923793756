from __future__ import annotations

import io
from pathlib import Path

import pytest

from fake_sunvox import PROJECT_BYTES
from sunvoxpy import cli
from sunvoxpy.cli import build_parser, handle_command, resolve_library_path, run, run_prompt, transpose
from sunvoxpy.config import EngineConfig
from sunvoxpy.constants import NoteCommand
from sunvoxpy.engine import Engine
from sunvoxpy.native_paths import library_path_for_directory


@pytest.fixture
def project(tmp_path: Path) -> Path:
    path = tmp_path / "song.sunvox"
    path.write_bytes(PROJECT_BYTES)
    return path


def test_parser_defaults(project: Path) -> None:
    args = build_parser().parse_args([str(project)])
    assert args.project == project
    assert args.channel_id == "music"
    assert args.library is None
    assert args.library_dir is None
    assert args.trace_native_calls is False


def test_library_and_directory_are_exclusive(project: Path) -> None:
    with pytest.raises(SystemExit):
        build_parser().parse_args([str(project), "--library", "a.so", "--library-dir", "lib"])


def test_library_resolution_order(project: Path, tmp_path: Path) -> None:
    parser = build_parser()
    config = EngineConfig(library_dir=str(tmp_path / "cfg-dir"))

    args = parser.parse_args([str(project), "--library", "explicit.so"])
    assert resolve_library_path(args, config) == Path("explicit.so")

    args = parser.parse_args([str(project), "--library-dir", str(tmp_path)])
    assert resolve_library_path(args, config) == library_path_for_directory(tmp_path)

    args = parser.parse_args([str(project)])
    assert resolve_library_path(args, config) == library_path_for_directory(tmp_path / "cfg-dir")
    assert resolve_library_path(args, EngineConfig(library_path="from-config.so")) == Path("from-config.so")
    assert resolve_library_path(args, EngineConfig()) is None


def test_speed_commands(channel, slot) -> None:
    slot.bpm = 100
    assert handle_command(channel, "s+") == ("BPM sped up by 20%", True)
    assert slot.bpm == 120
    handle_command(channel, "s-")
    assert slot.bpm == 96


def test_transpose_leaves_empty_cells_and_commands(channel, slot) -> None:
    data = channel.pattern_by_index(1).data()
    data.set_note(0, 0, 61)
    data.set_note(1, 0, NoteCommand.NOTE_OFF)
    data.set_note(2, 0, 127)

    changed = transpose(channel, 1)

    assert changed == 2
    assert data.note(0, 0) == 62
    assert data.note(1, 0) == NoteCommand.NOTE_OFF
    assert data.note(2, 0) == 127
    assert data.note(3, 0) == 0

    handle_command(channel, "p-")
    assert data.note(0, 0) == 61


def test_loop_commands(channel) -> None:
    message, keep_running = handle_command(channel, "l 10 48")
    assert keep_running
    assert channel.has_custom_loop()
    assert channel.is_playing()
    assert handle_command(channel, "l ten")[0] == "usage: l START END"
    handle_command(channel, "r")
    assert not channel.has_custom_loop()


def test_unknown_and_quit(channel) -> None:
    assert handle_command(channel, "x") == ("Command 'x' is not recognized", True)
    channel.play()
    assert handle_command(channel, "q") == ("Playback stopped", False)
    assert not channel.is_playing()


def test_prompt_reports_errors_and_quits(channel) -> None:
    channel.play()
    stdout = io.StringIO()
    run_prompt(channel, io.StringIO("l 2 9\nq\n"), stdout)
    output = stdout.getvalue()
    assert "error:" in output
    assert "Playback stopped" in output


def test_prompt_stops_at_end_of_input(channel) -> None:
    channel.play()
    run_prompt(channel, io.StringIO(""), io.StringIO())
    assert not channel.is_playing()


def test_run_plays_project_and_shuts_down(native, fake, project: Path, tmp_path: Path) -> None:
    engine = Engine(loader=lambda path: native)
    args = build_parser().parse_args(
        [str(project), "--library", "fake-sunvox.so", "--config", str(tmp_path / "missing.json")]
    )
    stdout = io.StringIO()

    assert run(args, engine, io.StringIO("s+\nq\n"), stdout) == 0

    assert "BPM sped up by 20%" in stdout.getvalue()
    assert native.lib.called("sv_play_from_beginning")
    assert not engine.initialized
    assert fake.slots == {}


def test_run_without_library_fails(native, project: Path, tmp_path: Path) -> None:
    engine = Engine(loader=lambda path: native)
    args = build_parser().parse_args([str(project), "--config", str(tmp_path / "missing.json")])
    assert run(args, engine, io.StringIO(""), io.StringIO()) == 1
    assert not engine.initialized


def test_run_with_missing_project_fails(native, tmp_path: Path) -> None:
    engine = Engine(loader=lambda path: native)
    args = build_parser().parse_args(
        [str(tmp_path / "nope.sunvox"), "--library", "fake.so", "--config", str(tmp_path / "missing.json")]
    )
    assert run(args, engine, io.StringIO(""), io.StringIO()) == 1
    assert not engine.initialized


def test_run_reports_failed_shutdown(native, fake, project: Path, tmp_path: Path, caplog) -> None:
    fake.deinit_result = -1
    engine = Engine(loader=lambda path: native)
    args = build_parser().parse_args(
        [str(project), "--library", "fake-sunvox.so", "--config", str(tmp_path / "missing.json")]
    )

    with caplog.at_level("ERROR", logger="sunvoxpy.cli"):
        assert run(args, engine, io.StringIO("q\n"), io.StringIO()) == 1

    assert native.lib.called("sv_deinit")
    assert "deinitializing" in caplog.text
    assert engine.initialized


def test_main_switches_on_native_trace(monkeypatch: pytest.MonkeyPatch, project: Path) -> None:
    configured = {}
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: configured.update(kwargs))
    monkeypatch.setattr(cli, "run", lambda args: 0)

    assert cli.main([str(project), "--trace-native-calls"]) == 0
    assert configured == {"trace_native_calls": True}
