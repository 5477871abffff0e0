from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Sequence

from checkdisk.parsing.models import ScanState

logger = logging.getLogger(__name__)


class ScanSetupError(Exception):
    """Raised when the scanner process cannot be started."""

    pass


class BadblocksProcess:
    """Async wrapper around one badblocks subprocess.

    Manages the lifecycle of a single scan: spawning with stderr piped for
    progress parsing, forwarding signals, and waiting for exit. stdout,
    where badblocks lists the bad blocks it found, goes straight to the
    operator's terminal.
    """

    def __init__(self, command: str, args: Sequence[str]) -> None:
        """Initialize a BadblocksProcess without spawning it.

        Args:
            command: Path of the badblocks executable.
            args: Full argument list, usually from :meth:`build_args`.
        """
        self._command = command
        self._args = list(args)
        self._process: asyncio.subprocess.Process | None = None

    @staticmethod
    def build_args(
        device: str,
        resume_from: ScanState | None = None,
        flags: Sequence[str] = ("-sv",),
        extra_args: Sequence[str] = (),
    ) -> list[str]:
        """Build the badblocks argument list for a fresh or resumed scan.

        badblocks takes ``device [last_block [first_block]]``, so a resumed
        scan passes the previous end bound followed by the interrupt block.

        Args:
            device: Device to scan.
            resume_from: Interrupted state to continue, or None for a
                full-device scan.
            flags: Progress/verbosity flags.
            extra_args: Further options placed before the device.

        Returns:
            Arguments to pass after the command.
        """
        args = [*flags, *extra_args, device]
        if resume_from is not None:
            resume = resume_from.resume_range()
            if resume is None:
                raise ValueError("resume_from has no interrupt block")
            first, last = resume
            args += [str(last), str(first)]
        return args

    @property
    def args(self) -> list[str]:
        return list(self._args)

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def stderr(self) -> asyncio.StreamReader:
        """The progress stream. Only valid after :meth:`spawn`."""
        if self._process is None or self._process.stderr is None:
            raise RuntimeError("process has not been spawned")
        return self._process.stderr

    async def spawn(self) -> None:
        """Start the scanner with its stderr connected to a pipe.

        Raises:
            ScanSetupError: If the executable is missing, not runnable, or
                the pipe cannot be created.
        """
        logger.debug("Spawning process: cmd=%s args=%s", self._command, self._args)
        try:
            self._process = await asyncio.create_subprocess_exec(
                self._command,
                *self._args,
                stdin=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ScanSetupError(f"Error starting {self._command}: {exc}") from exc
        logger.debug("Process spawned pid=%d", self._process.pid)

    def is_alive(self) -> bool:
        """Check whether the process was spawned and has not been reaped."""
        if self._process is None:
            return False
        return self._process.returncode is None

    def send_signal(self, sig: int) -> bool:
        """Forward a signal to the scanner if it is still running.

        Once the exit status has been collected the pid may already belong
        to another process, so nothing is sent after that point.

        Returns:
            True if the signal was delivered.
        """
        if not self.is_alive():
            logger.debug("Not sending signal %s: process not running", sig)
            return False
        try:
            self._process.send_signal(sig)
        except ProcessLookupError:
            return False
        logger.debug("Sent %s to pid=%d", signal.Signals(sig).name, self._process.pid)
        return True

    async def wait(self) -> int:
        """Wait for the process to exit and return its exit code."""
        if self._process is None:
            raise RuntimeError("process has not been spawned")
        code = await self._process.wait()
        logger.debug("Process pid=%d exited with %d", self._process.pid, code)
        return code

    def exit_code(self) -> int | None:
        """Return the exit status in shell form.

        A child killed by signal N is reported as ``128 + N``. Returns None
        if the process was never spawned or is still running.
        """
        if self._process is None or self._process.returncode is None:
            return None
        code = self._process.returncode
        return 128 - code if code < 0 else code
