"""Exception hierarchy for the SunVox binding."""

from __future__ import annotations


class SunVoxError(RuntimeError):
    """Base class for every error raised by :mod:`sunvoxpy`."""


class LoadError(SunVoxError):
    """Raised when the shared library cannot be located or opened."""


class InitError(SunVoxError):
    """Raised when the engine refuses to initialise or is used before init."""


class CapacityError(SunVoxError):
    """Raised when all channel slots are occupied."""


class NativeCallError(SunVoxError):
    """A native entry point reported failure.

    ``function`` is the exported symbol name and ``code`` the raw value it
    returned (``None`` when the symbol could not be resolved at all).
    """

    def __init__(self, message: str, *, function: str, code: int | None = None) -> None:
        super().__init__(message)
        self.function = function
        self.code = code


class BoundsError(SunVoxError, IndexError):
    """Raised for track, line or controller numbers outside the valid range."""


class StateError(SunVoxError):
    """Raised when an object is not in a state that permits the operation."""


__all__ = [
    "BoundsError",
    "CapacityError",
    "InitError",
    "LoadError",
    "NativeCallError",
    "StateError",
    "SunVoxError",
]
