"""Result record and trace log writers."""
from __future__ import annotations

import logging
from pathlib import Path

from .cs5480.session import Reading

TRACE_FORMAT = "%(asctime)s: %(message)s"


def remove_stale_record(path: Path) -> None:
    """Delete the record from a previous run so a failed run leaves no data."""

    if path.exists():
        path.unlink()


def write_power_record(path: Path, reading: Reading) -> str:
    """Write the single `voltage,current,power` line to *path* and return it."""

    record = reading.as_record()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(record, encoding="utf-8")
    return record


def configure_trace_log(path: Path, level: int = logging.DEBUG) -> logging.Handler:
    """Attach a file handler to the `pload` logger tree, truncating *path*."""

    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setFormatter(logging.Formatter(TRACE_FORMAT))
    handler.setLevel(level)
    root = logging.getLogger("pload")
    root.addHandler(handler)
    root.setLevel(min(level, root.level) if root.level else level)
    return handler


def close_trace_log(handler: logging.Handler) -> None:
    logging.getLogger("pload").removeHandler(handler)
    handler.flush()
    handler.close()
