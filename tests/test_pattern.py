from __future__ import annotations

import numpy as np
import pytest

from sunvoxpy.constants import MIDDLE_C, NoteCommand, is_note_command
from sunvoxpy.errors import BoundsError, StateError
from sunvoxpy.pattern import NOTE_DTYPE, Pattern, PatternData


def test_note_write_is_visible_through_fresh_view(channel, slot) -> None:
    verse = channel.pattern_by_index(1)
    assert verse.x() == 10
    assert verse.line_count() == 20

    data = verse.data()
    data.set_note(0, 0, MIDDLE_C)
    assert data.note(0, 0) == 61

    fresh = verse.data()
    assert fresh.note(0, 0) == 61
    assert slot.patterns[1].cell(0, 0).note == 61


def test_view_shape_matches_pattern(channel) -> None:
    data = channel.pattern_by_index(1).data()
    assert data.line_count() == 20
    assert data.track_count() == 4
    assert data.cells.shape == (20, 4)
    assert data.cells.dtype == NOTE_DTYPE


def test_native_writes_show_up_in_view(channel, slot) -> None:
    data = channel.pattern_by_index(2).data()
    slot.patterns[2].cell(3, 15).vel = 90
    assert data.velocity(3, 15) == 90


@pytest.mark.parametrize("track,line", [(4, 0), (0, 20), (-1, 0), (0, -1)])
def test_out_of_bounds_cells_raise(channel, track: int, line: int) -> None:
    data = channel.pattern_by_index(1).data()
    with pytest.raises(BoundsError):
        data.note(track, line)
    with pytest.raises(IndexError):
        data.set_note(track, line, 1)


def test_value_ranges_are_checked(channel) -> None:
    data = channel.pattern_by_index(1).data()
    with pytest.raises(BoundsError):
        data.set_note(0, 0, 256)
    with pytest.raises(BoundsError):
        data.set_velocity(0, 0, 130)
    with pytest.raises(BoundsError):
        data.set_module(0, 0, -1)


def test_module_column_is_offset_by_one(channel, slot) -> None:
    data = channel.pattern_by_index(1).data()
    assert data.module(0, 1) is None
    data.set_module(0, 1, 5)
    assert slot.patterns[1].cell(0, 1).module == 6
    assert data.module(0, 1) == 5
    data.set_module(0, 1, None)
    assert data.module(0, 1) is None


def test_controller_columns(channel) -> None:
    data = channel.pattern_by_index(1).data()
    data.set_controller(1, 2, 0x0213)
    data.set_controller_value(1, 2, 0x8000)
    data.set_velocity(1, 2, 129)
    assert data.controller(1, 2) == 0x0213
    assert data.controller_value(1, 2) == 0x8000
    assert data.velocity(1, 2) == 129


def test_snapshot_is_detached(channel) -> None:
    data = channel.pattern_by_index(0).data()
    copy = data.snapshot()
    data.set_note(0, 0, 70)
    assert copy["note"][0, 0] == 0


def test_pattern_data_requires_note_grid() -> None:
    with pytest.raises(ValueError):
        PatternData(np.zeros((2, 2), dtype=np.uint8))


def test_data_for_missing_pattern_raises(channel) -> None:
    with pytest.raises(StateError):
        Pattern(channel, 3).data()


def test_is_valid(channel) -> None:
    assert channel.pattern_by_index(0).is_valid()
    assert not Pattern(channel, 3).is_valid()
    assert not Pattern(channel, 42).is_valid()


def test_move_runs_paused_and_locked(channel, slot) -> None:
    intro = channel.pattern_by_index(0)
    intro.move(2, 3)
    assert (intro.x(), intro.y()) == (2, 3)
    assert intro.x2() == 10
    assert slot.moves_outside_lock == 0
    assert slot.lock_depth == 0
    assert slot.pause_depth == 0


def test_set_mute_returns_previous_state(channel, slot) -> None:
    verse = channel.pattern_by_index(1)
    pauses = slot.pause_calls
    assert verse.set_mute(True) is False
    assert slot.pause_calls == pauses + 1
    assert slot.patterns[1].muted
    assert verse.set_mute(False) is True
    assert slot.lock_depth == 0
    assert slot.pause_depth == 0


def test_note_commands() -> None:
    assert is_note_command(NoteCommand.NOTE_OFF)
    assert is_note_command(NoteCommand.CLEAN_MODULE)
    assert not is_note_command(MIDDLE_C)
    assert NoteCommand.CLEAN_MODULE == 140
