from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from checkdisk.parsing.badblocks_patterns import DEFAULT_GRAMMAR, OutputGrammar
from checkdisk.parsing.models import (
    MAX_UINT64,
    ErrorCounts,
    LineKind,
    LineMatch,
    ScanState,
)

logger = logging.getLogger(__name__)

# Kinds that only make sense once a "Checking blocks" line set up a state
_NEEDS_STATE = {LineKind.PROGRESS, LineKind.SUMMARY, LineKind.INTERRUPTED}


def classify_line(line: bytes, grammar: OutputGrammar = DEFAULT_GRAMMAR) -> LineMatch:
    """Match one logical line against the badblocks grammar.

    Patterns are tried in precedence order: start, progress, empty progress
    marker, progress done marker, summary, interrupted. A zero-length line is
    BLANK and anything else is UNKNOWN; this never raises.

    Args:
        line: Logical line as produced by the line reconstructor.
        grammar: Patterns to match against.

    Returns:
        A LineMatch with the kind and the captured groups as strings.
    """
    text = line.decode("utf-8", errors="replace")
    for kind, pattern in (
        (LineKind.START, grammar.start),
        (LineKind.PROGRESS, grammar.progress),
        (LineKind.EMPTY_PROGRESS, grammar.empty_progress),
        (LineKind.PROGRESS_DONE, grammar.progress_done),
        (LineKind.SUMMARY, grammar.summary),
        (LineKind.INTERRUPTED, grammar.interrupted),
    ):
        m = pattern.search(text)
        if m:
            return LineMatch(kind=kind, text=text, groups=m.groups())
    if not text:
        return LineMatch(kind=LineKind.BLANK, text=text)
    return LineMatch(kind=LineKind.UNKNOWN, text=text)


def _parse_uint(value: str | None, field_name: str, text: str) -> int | None:
    """Parse an unsigned 64-bit decimal, logging and returning None on failure."""
    try:
        number = int(value, 10)
        if not 0 <= number <= MAX_UINT64:
            raise ValueError(f"value out of range: {value}")
    except (TypeError, ValueError) as exc:
        logger.warning("Could not parse %s in %r: %s", field_name, text, exc)
        return None
    return number


def _parse_errors(groups: tuple[str, ...], current: ErrorCounts, text: str) -> ErrorCounts:
    values = [
        _parse_uint(raw, f"{name} errors", text)
        for raw, name in zip(groups, ErrorCounts._fields)
    ]
    return ErrorCounts(*(
        old if new is None else new for old, new in zip(current, values)
    ))


def fold_line(
    state: ScanState | None,
    line: bytes,
    grammar: OutputGrammar = DEFAULT_GRAMMAR,
) -> ScanState | None:
    """Fold one logical line into the scan state accumulator.

    The only side effect is logging: progress and completion at INFO,
    unknown or out-of-order lines and unparsable numbers at WARNING.

    Args:
        state: Accumulator so far, None until a start line was seen.
        line: Next logical line.
        grammar: Patterns to classify with.

    Returns:
        The new accumulator. Unchanged (the same object) for lines that
        carry no state.
    """
    match = classify_line(line, grammar)
    kind = match.kind

    if kind in _NEEDS_STATE and state is None:
        logger.warning("Discarding %s line before scan start: %r", kind.value, match.text)
        return state

    if kind is LineKind.START:
        first = _parse_uint(match.groups[0], "first block", match.text)
        last = _parse_uint(match.groups[1], "last block", match.text)
        if first is None or last is None:
            return state
        if first > last:
            logger.warning("Discarding start line with inverted range: %r", match.text)
            return state
        logger.debug("Scan range %d to %d", first, last)
        return ScanState(from_block=first, to_block=last)

    if kind is LineKind.PROGRESS:
        pct, elapsed = match.groups[0], match.groups[1]
        try:
            logger.info("Progress: %.2f%% (%s elapsed)", float(pct), elapsed)
        except (TypeError, ValueError):
            logger.warning("Could not parse progress percentage in %r", match.text)
        errors = _parse_errors(match.groups[2:5], state.errors, match.text)
        if errors == state.errors:
            return state
        return replace(state, errors=errors)

    if kind is LineKind.SUMMARY:
        bad = _parse_uint(match.groups[0], "bad block count", match.text)
        errors = _parse_errors(match.groups[1:4], state.errors, match.text)
        logger.info(
            "Check done. %s bad blocks found (%s errors).",
            bad if bad is not None else "?", errors,
        )
        if errors == state.errors:
            return state
        return replace(state, errors=errors)

    if kind is LineKind.INTERRUPTED:
        block = _parse_uint(match.groups[0], "interrupt block", match.text)
        if block is None:
            return state
        if not state.from_block <= block < state.to_block:
            logger.warning(
                "Ignoring interrupt block %d outside scan range %d to %d",
                block, state.from_block, state.to_block,
            )
            return state
        return replace(state, interrupt_block=block)

    if kind is LineKind.UNKNOWN:
        logger.warning("Ignoring unknown line: %r", match.text)

    # EMPTY_PROGRESS, PROGRESS_DONE, BLANK: nothing reported
    return state


def classify_lines(
    lines: Iterable[bytes], grammar: OutputGrammar = DEFAULT_GRAMMAR
) -> ScanState | None:
    """Reduce a whole sequence of logical lines to the final scan state."""
    state: ScanState | None = None
    for line in lines:
        state = fold_line(state, line, grammar)
    return state
