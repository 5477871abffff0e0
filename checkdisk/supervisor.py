"""Run one badblocks scan and keep its checkpoint up to date.

- :func:`plan_scan` decides between a fresh scan and a resumed one.
- :class:`SignalRelay` forwards operator interrupts to the scanner for
  exactly as long as the scanner process is alive.
- :func:`pump_lines` / :func:`classify_queue` are the reader and classifier
  tasks, joined by a one-slot queue.
- :func:`run_check` wires everything together and persists the result.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Sequence
from dataclasses import dataclass

from checkdisk.badblocks_process import BadblocksProcess
from checkdisk.checkpoint import CheckpointError, CheckpointStore
from checkdisk.config import AppConfig
from checkdisk.parsing.badblocks_patterns import DEFAULT_GRAMMAR, OutputGrammar
from checkdisk.parsing.line_reader import aiter_lines
from checkdisk.parsing.models import ScanState
from checkdisk.parsing.output_classifier import fold_line

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one supervised run."""

    exit_code: int
    state: ScanState | None


def plan_scan(prior: ScanState | None) -> ScanState | None:
    """Return the state to resume from, or None for a fresh full scan."""
    if prior is not None and prior.is_interrupted:
        return prior
    return None


def describe_state(device: str, state: ScanState | None) -> str:
    """One-line operator summary of a stored state."""
    if state is None:
        return f"{device}: no saved scan"
    errors = f"({state.errors} errors)"
    if state.interrupt_block is not None:
        return (
            f"{device}: interrupted at block {state.interrupt_block} "
            f"of {state.from_block} to {state.to_block} {errors}"
        )
    return f"{device}: completed blocks {state.from_block} to {state.to_block} {errors}"


class SignalRelay:
    """Forward operator signals to one scanner process.

    Used as an async context manager around the lifetime of the process:
    entering installs event loop handlers and starts the relay task,
    leaving removes the handlers and cancels and joins the task. Callers
    leave the context only after the process exit has been observed, so
    no signal is ever sent to a pid that may have been reused.
    """

    def __init__(
        self,
        process: BadblocksProcess,
        signals: Sequence[int] = (signal.SIGINT,),
    ) -> None:
        self._process = process
        self._signals = tuple(signals)
        self._pending: asyncio.Queue[int] = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._installed: list[int] = []

    def notify(self, sig: int) -> None:
        """Queue a signal for forwarding; ignored once the relay is stopped."""
        if self._task is None or self._task.done():
            return
        self._pending.put_nowait(sig)

    async def _relay(self) -> None:
        while True:
            sig = await self._pending.get()
            logger.info("Received %s, passing it on to the scanner.", signal.Signals(sig).name)
            self._process.send_signal(sig)

    async def __aenter__(self) -> SignalRelay:
        loop = asyncio.get_running_loop()
        self._task = asyncio.create_task(self._relay())
        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, self.notify, sig)
            except (NotImplementedError, RuntimeError, ValueError) as exc:
                # Not on the main thread, or no signal support (Windows)
                logger.debug("Cannot relay %s: %s", sig, exc)
                continue
            self._installed.append(sig)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def stop(self) -> None:
        """Remove the handlers and join the relay task."""
        loop = asyncio.get_running_loop()
        for sig in self._installed:
            loop.remove_signal_handler(sig)
        self._installed.clear()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


async def pump_lines(stream: asyncio.StreamReader, queue: asyncio.Queue) -> int:
    """Reader task: push reconstructed lines into ``queue``, then None.

    Returns:
        Number of lines handed off.
    """
    count = 0
    async for line in aiter_lines(stream):
        await queue.put(line)
        count += 1
    await queue.put(None)
    return count


async def classify_queue(
    queue: asyncio.Queue, grammar: OutputGrammar = DEFAULT_GRAMMAR
) -> ScanState | None:
    """Classifier task: fold lines from ``queue`` until the None sentinel."""
    state: ScanState | None = None
    while True:
        line = await queue.get()
        if line is None:
            return state
        state = fold_line(state, line, grammar)


async def run_check(device: str, config: AppConfig, fresh: bool = False) -> CheckResult:
    """Run badblocks on ``device``, resuming a previous interrupted scan if any.

    Waits for both the process exit and the end of its output before the
    final state is saved to the checkpoint file.

    Args:
        device: Device to scan, also the checkpoint key.
        config: Application configuration.
        fresh: Discard any saved state and scan the whole device.

    Returns:
        The scanner's exit code and the final scan state.

    Raises:
        ScanSetupError: If the scanner cannot be started.
    """
    store = CheckpointStore(config.checkpoint.path)
    if fresh:
        try:
            if store.clear(device):
                logger.info("Discarded saved state for %s.", device)
        except CheckpointError as exc:
            logger.error("%s", exc)
        prior = None
    else:
        prior = store.load(device)

    resume_from = plan_scan(prior)
    if resume_from is not None:
        logger.info(
            "Resuming an earlier check at block %d.", resume_from.interrupt_block
        )
    else:
        logger.info("Starting a new check.")

    process = BadblocksProcess(
        config.badblocks.command,
        BadblocksProcess.build_args(
            device,
            resume_from,
            flags=config.badblocks.flags,
            extra_args=config.badblocks.extra_args,
        ),
    )
    await process.spawn()

    lines: asyncio.Queue = asyncio.Queue(maxsize=1)
    reader = asyncio.create_task(pump_lines(process.stderr, lines))
    classifier = asyncio.create_task(classify_queue(lines, config.grammar))
    try:
        async with SignalRelay(process):
            await process.wait()
        line_count = await reader
        state = await classifier
    finally:
        # No-op after a normal drain; otherwise neither task may outlive the run
        for task in (reader, classifier):
            task.cancel()
        await asyncio.gather(reader, classifier, return_exceptions=True)
    exit_code = process.exit_code()
    logger.debug("Scanner exit=%s lines=%d", exit_code, line_count)

    try:
        store.save(device, state)
    except CheckpointError as exc:
        logger.error("%s", exc)

    if state is not None and state.interrupt_block is not None:
        logger.info("Check has been interrupted at block %d.", state.interrupt_block)
        logger.info(
            "So far (%d, %d, %d) errors have been found.",
            state.errors.read, state.errors.write, state.errors.corruption,
        )
    return CheckResult(exit_code=exit_code, state=state)
