from __future__ import annotations

import pytest

from fake_sunvox import PROJECT_BYTES, FakeSunVox, make_native
from sunvoxpy import diagnostics
from sunvoxpy.engine import Engine


@pytest.fixture(autouse=True)
def _no_library_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SUNVOX_LIBRARY_PATH", raising=False)


@pytest.fixture(autouse=True)
def _native_tracing_off():
    enabled = diagnostics.native_call_logging_enabled()
    diagnostics.enable_native_call_logging(False)
    yield
    diagnostics.enable_native_call_logging(enabled)


@pytest.fixture
def fake() -> FakeSunVox:
    return FakeSunVox()


@pytest.fixture
def native(fake: FakeSunVox):
    return make_native(fake)


@pytest.fixture
def loaded_paths() -> list:
    return []


@pytest.fixture
def engine(native, loaded_paths) -> Engine:
    def loader(path):
        loaded_paths.append(path)
        return native

    engine = Engine(loader=loader)
    engine.init("fake-sunvox.so")
    return engine


@pytest.fixture
def channel(engine: Engine):
    channel = engine.create_channel("music")
    channel.load_bytes(PROJECT_BYTES)
    yield channel
    if channel.is_open() and engine.initialized:
        channel.close()


@pytest.fixture
def slot(fake: FakeSunVox, channel):
    return fake.slots[channel.index]
