from __future__ import annotations

"""Run the scale-pro CLI with ``python -m scalepro``."""

from .app.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
