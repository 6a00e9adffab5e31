"""Module execution entrypoint for `python -m autologin.cli`."""

from __future__ import annotations

import sys

from autologin.cli import main

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
