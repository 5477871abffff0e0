"""Regex grammar for the progress output ``badblocks -sv`` writes to stderr.

The wording below matches e2fsprogs 1.4x. Each pattern can be replaced from
the ``grammar`` config section if another release words things differently;
the capture groups must stay the same.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields

_ERRORS = r"\((\d+)/(\d+)/(\d+) errors\)"

# "Checking blocks 0 to 976762583"
_START = r"^Checking blocks (\d+) to (\d+)$"
# "Checking for bad blocks (read-only test):  12.34% done, 1:02:03 elapsed. (0/0/0 errors)"
_PROGRESS = (
    r"^Checking for bad blocks[^:]*: +(\d+(?:\.\d+)?)% done, "
    r"(\d+(?::\d+)+) elapsed\. " + _ERRORS + r"$"
)
# Printed once before the first redraw
_EMPTY_PROGRESS = r"^Checking for bad blocks[^:]*: *$"
_PROGRESS_DONE = r"^Checking for bad blocks[^:]*: done"
# "Pass completed, 0 bad blocks found. (0/0/0 errors)"
_SUMMARY = r"^Pass completed, (\d+) bad blocks found\. " + _ERRORS + r"$"
_INTERRUPTED = r"^Interrupted at block (\d+)$"


@dataclass(frozen=True)
class OutputGrammar:
    """Compiled patterns, tried in field order; the first match wins."""

    start: re.Pattern = re.compile(_START)
    progress: re.Pattern = re.compile(_PROGRESS)
    empty_progress: re.Pattern = re.compile(_EMPTY_PROGRESS)
    progress_done: re.Pattern = re.compile(_PROGRESS_DONE)
    summary: re.Pattern = re.compile(_SUMMARY)
    interrupted: re.Pattern = re.compile(_INTERRUPTED)

    @classmethod
    def from_mapping(cls, overrides: dict[str, str] | None) -> OutputGrammar:
        """Build a grammar with some patterns replaced.

        Args:
            overrides: Pattern name to regex source, e.g.
                ``{"progress": r"^Scanning: (\\d+)% ..."}``.

        Raises:
            ValueError: On an unknown pattern name, a regex that does not
                compile, or one with the wrong number of capture groups.
        """
        if not overrides:
            return cls()
        known = {f.name for f in fields(cls)}
        compiled: dict[str, re.Pattern] = {}
        for name, source in overrides.items():
            if name not in known:
                raise ValueError(f"unknown grammar pattern: {name}")
            try:
                pattern = re.compile(source)
            except (re.error, TypeError) as exc:
                raise ValueError(f"grammar.{name} is not a valid regex: {exc}") from exc
            expected = EXPECTED_GROUPS[name]
            if pattern.groups != expected:
                raise ValueError(
                    f"grammar.{name} must have {expected} capture groups, "
                    f"has {pattern.groups}"
                )
            compiled[name] = pattern
        return cls(**compiled)


EXPECTED_GROUPS: dict[str, int] = {
    "start": 2,
    "progress": 5,
    "empty_progress": 0,
    "progress_done": 0,
    "summary": 4,
    "interrupted": 1,
}

DEFAULT_GRAMMAR = OutputGrammar()
