"""Helpers for locating the SunVox shared library.

The official library download ships one build per OS and architecture laid
out as ``<base>/<os>/<arch>/<file>``, for example
``sunvox_lib/linux/lib_x86_64/sunvox.so``. The helpers here map the running
interpreter's platform onto that layout. An explicit path in
``SUNVOX_LIBRARY_PATH`` always wins.
"""

from __future__ import annotations

import os
import platform
import sys
from pathlib import Path

from .errors import LoadError

LIBRARY_OVERRIDE_ENV = "SUNVOX_LIBRARY_PATH"

_OS_FOLDERS = {
    "darwin": "macos",
    "linux": "linux",
    "win32": "windows",
}

_LIBRARY_FILENAMES = {
    "darwin": "sunvox.dylib",
    "linux": "sunvox.so",
    "win32": "sunvox.dll",
}

_ARCH_FOLDERS = {
    "i386": "lib_x86",
    "i686": "lib_x86",
    "x86": "lib_x86",
    "x86_64": "lib_x86_64",
    "amd64": "lib_x86_64",
    "arm": "lib_arm",
    "armv6l": "lib_arm",
    "armv7l": "lib_arm",
    "arm64": "lib_arm64",
    "aarch64": "lib_arm64",
}


def _platform_key(platform_name: str | None) -> str:
    name = sys.platform if platform_name is None else platform_name
    if name.startswith("linux"):
        return "linux"
    return name


def os_folder(platform_name: str | None = None) -> str:
    key = _platform_key(platform_name)
    try:
        return _OS_FOLDERS[key]
    except KeyError:
        raise LoadError(f"SunVox does not ship a library for platform '{key}'") from None


def library_filename(platform_name: str | None = None) -> str:
    key = _platform_key(platform_name)
    try:
        return _LIBRARY_FILENAMES[key]
    except KeyError:
        raise LoadError(f"SunVox does not ship a library for platform '{key}'") from None


def arch_folder(machine: str | None = None) -> str:
    name = (platform.machine() if machine is None else machine).lower()
    try:
        return _ARCH_FOLDERS[name]
    except KeyError:
        raise LoadError(f"SunVox does not ship a library for architecture '{name}'") from None


def library_path_for_directory(
    base: str | os.PathLike[str],
    *,
    platform_name: str | None = None,
    machine: str | None = None,
) -> Path:
    """Return ``<base>/<os-folder>/<arch-folder>/<filename>`` for this host."""

    return (
        Path(base)
        / os_folder(platform_name)
        / arch_folder(machine)
        / library_filename(platform_name)
    )


def library_override() -> Path | None:
    """Return the path named by ``SUNVOX_LIBRARY_PATH`` if it is set."""

    value = os.environ.get(LIBRARY_OVERRIDE_ENV, "").strip()
    if not value:
        return None
    return Path(value).expanduser()


__all__ = [
    "LIBRARY_OVERRIDE_ENV",
    "arch_folder",
    "library_filename",
    "library_override",
    "library_path_for_directory",
    "os_folder",
]
