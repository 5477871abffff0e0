from __future__ import annotations

import logging
import os
import re
from datetime import datetime

from checkdisk.config import DebugConfig

TRACE = 5
TRACE_DIR = "debug"

logging.addLevelName(TRACE, "TRACE")

_CONSOLE_FMT = "%(asctime)s %(levelname)s %(message)s"
_CONSOLE_DATEFMT = "%H:%M:%S"
_FILE_FMT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s:%(funcName)s:%(lineno)d %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9_.-]+")


def console_level(debug: DebugConfig) -> int:
    """Console threshold for the given debug settings.

    INFO shows operator output only (progress, completion, interruption).
    ``enabled`` or ``trace`` lowers it to DEBUG; ``trace`` with ``verbose``
    also prints every reconstructed scanner line.
    """
    if debug.trace and debug.verbose:
        return TRACE
    if debug.enabled or debug.trace:
        return logging.DEBUG
    return logging.INFO


def trace_filename(device: str | None, when: datetime) -> str:
    """Name of the trace file for one run, e.g. ``trace-dev-sdb-2024-...log``."""
    timestamp = when.strftime("%Y-%m-%dT%H-%M-%S")
    if not device:
        return f"trace-{timestamp}.log"
    slug = _UNSAFE_CHARS_RE.sub("-", device).strip("-") or "device"
    return f"trace-{slug}-{timestamp}.log"


def setup_logging(debug: DebugConfig, device: str | None = None) -> logging.Logger:
    """Configure the ``checkdisk`` logger tree from the debug settings.

    With ``debug.trace`` every record, down to TRACE, is also written to
    ``debug/trace-<device>-<timestamp>.log`` so a scan can be replayed
    line by line afterwards.

    Args:
        debug: Debug section of the config, after command-line overrides.
        device: Device being checked, used to name the trace file.

    Returns:
        The configured ``checkdisk`` logger.
    """
    root = logging.getLogger("checkdisk")
    root.handlers.clear()
    root.setLevel(TRACE)

    console = logging.StreamHandler()
    console.setLevel(console_level(debug))
    console.setFormatter(logging.Formatter(_CONSOLE_FMT, datefmt=_CONSOLE_DATEFMT))
    root.addHandler(console)

    if debug.trace:
        os.makedirs(TRACE_DIR, exist_ok=True)
        filepath = os.path.join(TRACE_DIR, trace_filename(device, datetime.now()))
        fh = logging.FileHandler(filepath)
        fh.setLevel(TRACE)
        fh.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_FILE_DATEFMT))
        root.addHandler(fh)

    return root
