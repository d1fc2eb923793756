from __future__ import annotations

import pytest

from fake_sunvox import FakePattern
from sunvoxpy.errors import BoundsError, StateError
from sunvoxpy.pattern import CUSTOM_LOOP_OFFSET, CUSTOM_LOOP_THRESHOLD


def _positions(slot) -> dict[int, tuple[int, int]]:
    return {i: (p.x, p.y) for i, p in enumerate(slot.patterns) if p is not None}


def test_loop_isolates_patterns_inside_range(channel, slot) -> None:
    channel.set_custom_loop(10, 48)

    assert channel.has_custom_loop()
    assert channel.custom_loop_start() == 10
    assert channel.custom_loop_end() == 38
    assert slot.patterns[1].x == 0
    assert slot.patterns[2].x == 22
    assert slot.patterns[0].x == -CUSTOM_LOOP_OFFSET
    assert slot.patterns[4].x == 48 - CUSTOM_LOOP_OFFSET
    assert slot.moves_outside_lock == 0
    assert slot.pause_depth == 0


def test_reset_restores_positions(channel, slot) -> None:
    before = _positions(slot)
    channel.set_custom_loop(10, 48)
    channel.reset_custom_loop()
    assert _positions(slot) == before
    assert not channel.has_custom_loop()
    assert channel.custom_loop_start() == 0
    assert channel.custom_loop_end() == 0


@pytest.mark.parametrize("start,end", [(0, 8), (0, 30), (32, 64), (0, 64), (48, 64)])
def test_loop_then_reset_round_trips(channel, slot, start: int, end: int) -> None:
    before = _positions(slot)
    channel.set_custom_loop(start, end)
    channel.reset_custom_loop()
    assert _positions(slot) == before


def test_changing_the_loop_resets_first(channel, slot) -> None:
    before = _positions(slot)
    channel.set_custom_loop(10, 48)
    channel.set_custom_loop(48, 64)
    assert slot.patterns[4].x == 0
    assert slot.patterns[1].x == 10 - CUSTOM_LOOP_OFFSET
    channel.reset_custom_loop()
    assert _positions(slot) == before


def test_same_loop_twice_is_a_no_op(channel, slot) -> None:
    channel.set_custom_loop(10, 48)
    moved = _positions(slot)
    channel.set_custom_loop(10, 48)
    assert _positions(slot) == moved


def test_loopless_positions(channel) -> None:
    channel.set_custom_loop(10, 48)
    intro = channel.pattern_by_index(0)
    chorus = channel.pattern_by_index(2)
    assert intro.x() < CUSTOM_LOOP_THRESHOLD
    assert intro.loopless_x() == 0
    assert intro.loopless_x2() == 8
    assert chorus.x() == 22
    assert chorus.loopless_x() == 32
    assert chorus.loopless_x2() == 48


@pytest.mark.parametrize("far_x", [-200_000, 99_950_000])
def test_far_away_pattern_round_trips(channel, slot, far_x: int) -> None:
    slot.patterns.append(FakePattern("Far", x=far_x, y=64, lines=16))
    before = _positions(slot)
    channel.set_custom_loop(10, 48)
    far = channel.pattern_by_index(5)
    assert far.loopless_x() == far_x
    assert far.loopless_x2() == far_x + 16
    channel.reset_custom_loop()
    assert _positions(slot) == before


def test_pattern_left_of_threshold_is_not_parked(channel, slot) -> None:
    slot.patterns.append(FakePattern("Far", x=-200_000, y=64, lines=16))
    channel.set_custom_loop(10, 48)
    assert slot.patterns[5].x == -200_000
    assert channel.custom_loop_shift(5) == 0
    assert channel.custom_loop_shift(0) == CUSTOM_LOOP_OFFSET
    assert channel.custom_loop_shift(2) == 10


def test_range_without_patterns_raises(channel, slot) -> None:
    before = _positions(slot)
    with pytest.raises(StateError):
        channel.set_custom_loop(2, 9)
    assert _positions(slot) == before
    assert not channel.has_custom_loop()


def test_empty_range_raises(channel) -> None:
    with pytest.raises(BoundsError):
        channel.set_custom_loop(10, 10)


def test_reset_without_loop_does_nothing(channel, slot) -> None:
    before = _positions(slot)
    channel.reset_custom_loop()
    assert _positions(slot) == before
