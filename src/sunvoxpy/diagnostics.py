"""Opt-in trace of every call made across the Python/native boundary."""
from __future__ import annotations

import os
import threading
import time
from pathlib import Path

__all__ = [
    "enable_native_call_logging",
    "log_native_call",
    "native_call_logging_enabled",
    "set_log_path",
]

_TRACE_ENV = "SUNVOX_TRACE_NATIVE_CALLS"

_LOG_NATIVE_CALLS = os.environ.get(_TRACE_ENV, "").lower() in {"1", "true", "yes", "on"}
_LOG_PATH = Path("logs/native_calls.log")
_LOG_LOCK = threading.Lock()


def enable_native_call_logging(enabled: bool) -> None:
    """Enable or disable tracing of native entry point calls."""

    global _LOG_NATIVE_CALLS
    _LOG_NATIVE_CALLS = bool(enabled)


def native_call_logging_enabled() -> bool:
    """Return ``True`` when native call tracing is enabled."""

    return _LOG_NATIVE_CALLS


def set_log_path(path: str | os.PathLike[str]) -> None:
    global _LOG_PATH
    _LOG_PATH = Path(path)


def log_native_call(message: str) -> None:
    """Append ``message`` to the trace file when tracing is enabled."""

    if not _LOG_NATIVE_CALLS:
        return
    try:
        _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        return
    stamp = f"{time.monotonic():.6f}"
    try:
        with _LOG_LOCK:
            with _LOG_PATH.open("a", encoding="utf-8") as handle:
                handle.write(f"{stamp} {message}\n")
    except OSError:
        return
