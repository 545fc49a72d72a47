from __future__ import annotations

"""Explain mode: terse one-line traces of what the drill engine is doing.

Switched on with ``--explain``; also raises the log level to DEBUG.
"""

import json
import logging
from typing import Any, Dict

_ENABLED = False


def enable(flag: bool = True) -> None:
    global _ENABLED
    _ENABLED = bool(flag)
    logging.getLogger("scalepro").setLevel(logging.DEBUG if _ENABLED else logging.NOTSET)


def enabled() -> bool:
    return _ENABLED


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not _ENABLED:
        return
    try:
        data = payload or {}
        print(f"[EXPLAIN] {event} :: {json.dumps(data, separators=(',', ':'))}")
    except (TypeError, ValueError):
        # payload not JSON serializable
        print(f"[EXPLAIN] {event}")
