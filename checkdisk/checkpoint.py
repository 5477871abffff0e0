from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from checkdisk.parsing.models import ScanState

logger = logging.getLogger(__name__)


class CheckpointError(Exception):
    """Raised when the checkpoint file cannot be written."""

    pass


class CheckpointStore:
    """Per-device scan state kept in one JSON file.

    The file maps a device identifier to that device's last known
    ScanState. Reads never fail: a missing or unreadable file counts as
    "no prior state". Writes replace one device's entry and rewrite the
    whole mapping; other devices' entries are written back exactly as they
    were read. There is no locking, so two runs must not share a file.
    """

    def __init__(self, path: str) -> None:
        """Initialize the store without touching the filesystem.

        Args:
            path: Filesystem path to the JSON checkpoint file.
        """
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def read_all(self) -> dict:
        """Return the raw persisted mapping, or an empty dict if there is none."""
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            logger.debug("No checkpoint file at %s", self._path)
            return {}
        except OSError as exc:
            logger.warning("Cannot read checkpoint file %s: %s", self._path, exc)
            return {}
        try:
            # json.loads detects the encoding; undecodable bytes raise
            # UnicodeDecodeError, a ValueError
            data = json.loads(raw)
        except ValueError as exc:
            logger.warning("Ignoring corrupt checkpoint file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring checkpoint file %s: not a JSON object", self._path)
            return {}
        return data

    def load(self, device: str) -> ScanState | None:
        """Return the stored state for a device, or None.

        Args:
            device: Device identifier as given on the command line.

        Returns:
            The last saved ScanState, or None when there is no entry or
            the entry is malformed.
        """
        entry = self.read_all().get(device)
        if entry is None:
            return None
        try:
            return ScanState.from_dict(entry)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Ignoring malformed checkpoint entry for %s: %s", device, exc)
            return None

    def save(self, device: str, state: ScanState | None) -> None:
        """Replace the entry for one device and write the mapping back.

        Does nothing when ``state`` is None, which happens when the scanner
        never printed its start line.

        Args:
            device: Device identifier the state belongs to.
            state: Final state of the run.

        Raises:
            CheckpointError: If the file cannot be written.
        """
        if state is None:
            logger.info("No scan state to persist for %s.", device)
            return
        states = self.read_all()
        states[device] = state.to_dict()
        self._write(states)
        logger.debug("Saved checkpoint for %s to %s", device, self._path)

    def clear(self, device: str) -> bool:
        """Remove the entry for one device.

        Returns:
            True if an entry existed and was removed.

        Raises:
            CheckpointError: If the file cannot be written.
        """
        states = self.read_all()
        if device not in states:
            return False
        del states[device]
        self._write(states)
        logger.debug("Cleared checkpoint for %s", device)
        return True

    def _write(self, states: dict) -> None:
        # Temp file + rename: the checkpoint on disk is never half-written
        tmp = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(states, f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as exc:
            try:
                tmp.unlink(missing_ok=True)
            except OSError as unlink_exc:
                logger.debug("Cannot remove %s: %s", tmp, unlink_exc)
            raise CheckpointError(f"Failed to write checkpoint file {self._path}: {exc}") from exc
