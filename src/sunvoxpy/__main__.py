"""Module entry point."""

from __future__ import annotations

import faulthandler

from .cli import main

# A crash inside the native engine bypasses Python's exception handling;
# faulthandler still gets a traceback out to stderr.
faulthandler.enable()


if __name__ == "__main__":
    raise SystemExit(main())
