from __future__ import annotations

import numpy as np
import pytest

from sunvoxpy.constants import ModuleFlag
from sunvoxpy.errors import BoundsError, NativeCallError, StateError


@pytest.fixture
def kicker(channel):
    return channel.module_by_name("Kicker")


@pytest.fixture
def reverb(channel):
    return channel.module_by_name("Reverb")


def test_module_identity(kicker) -> None:
    assert kicker.index == 1
    assert kicker.name() == "Kicker"
    assert kicker.is_valid()
    assert kicker.is_generator()
    assert not kicker.is_effect()
    assert ModuleFlag.EXISTS in kicker.flags()


def test_effect_flags(reverb) -> None:
    assert reverb.is_effect()
    assert not reverb.is_generator()


@pytest.mark.parametrize("number", [0, -1, -20])
@pytest.mark.parametrize(
    "accessor",
    [
        lambda m, n: m.controller_name(n),
        lambda m, n: m.controller_value(n),
        lambda m, n: m.controller_minimum(n),
        lambda m, n: m.controller_maximum(n),
        lambda m, n: m.set_controller_value(n, 10),
    ],
)
def test_non_positive_controller_numbers_never_reach_native(kicker, native, accessor, number: int) -> None:
    before = len(native.lib.calls)
    with pytest.raises(BoundsError, match="controller numbers start at 1"):
        accessor(kicker, number)
    assert len(native.lib.calls) == before


def test_controller_past_count_raises(kicker) -> None:
    assert kicker.controller_count() == 3
    with pytest.raises(BoundsError):
        kicker.controller_value(4)


def test_controllers_are_one_based(kicker, slot) -> None:
    assert kicker.controller_name(1) == "Volume"
    assert kicker.controller_name(2) == "Panning"
    assert kicker.controller_minimum(2) == -128
    assert kicker.controller_maximum(2) == 128
    kicker.set_controller_value(2, 64)
    assert kicker.controller_value(2) == 64
    assert slot.modules[1].controllers[1].value == 64


def test_negative_controller_values_are_returned(kicker) -> None:
    kicker.set_controller_value(2, -100)
    assert kicker.controller_value(2) == -100


def test_set_bsm(kicker, slot) -> None:
    pauses = slot.pause_calls
    kicker.set_bsm(bypass=False, solo=False, mute=True)
    assert slot.pause_calls == pauses + 1
    assert slot.pause_depth == 0
    assert slot.events[-1] == (0, 0, 0, 2, 0x13, 0x1)
    assert kicker.is_muted()
    assert not kicker.is_solo()
    kicker.set_bsm(bypass=True, solo=True, mute=False)
    assert kicker.is_bypassed()
    assert kicker.is_solo()
    assert not kicker.is_muted()


def test_finetune_and_relative_note_are_signed(kicker) -> None:
    kicker.set_finetune(-100)
    kicker.set_relative_note(-12)
    assert kicker.finetune() == -100
    assert kicker.relative_note() == -12
    kicker.set_finetune(200)
    assert kicker.finetune() == 200
    assert kicker.relative_note() == -12


def test_connect_and_disconnect(channel, kicker, reverb, slot) -> None:
    kicker.connect(reverb)
    assert (1, 3) in slot.connections
    assert slot.lock_depth == 0
    kicker.disconnect(reverb)
    assert (1, 3) not in slot.connections
    with pytest.raises(StateError):
        kicker.connect(None)


def test_failed_disconnect_releases_lock(kicker, reverb, slot) -> None:
    with pytest.raises(NativeCallError):
        kicker.disconnect(reverb)
    assert slot.lock_depth == 0


def test_scope(kicker) -> None:
    samples = kicker.scope(0, 4)
    assert samples.dtype == np.int16
    assert samples.tolist() == [0, 1000, -1000, 2000]
    assert kicker.scope(0, 64).size == 8


def test_scope_rejects_empty_request(kicker) -> None:
    with pytest.raises(BoundsError):
        kicker.scope(0, 0)


def test_module_invalid_after_close(channel, kicker) -> None:
    channel.close()
    assert not kicker.is_valid()
