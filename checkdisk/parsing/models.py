"""Shared data types for the badblocks output pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

# badblocks reports block numbers and counters as unsigned 64-bit values.
MAX_UINT64 = 2**64 - 1


class LineKind(Enum):
    """Possible classifications of one logical line of badblocks output."""

    START = "start"
    PROGRESS = "progress"
    EMPTY_PROGRESS = "empty_progress"
    PROGRESS_DONE = "progress_done"
    SUMMARY = "summary"
    INTERRUPTED = "interrupted"
    BLANK = "blank"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class LineMatch:
    """Classified line with its raw text and the captured fields."""

    kind: LineKind
    text: str
    groups: tuple[str, ...] = ()


class ErrorCounts(NamedTuple):
    """The ``(read/write/corruption errors)`` triple badblocks prints."""

    read: int = 0
    write: int = 0
    corruption: int = 0

    def __str__(self) -> str:
        return f"{self.read}/{self.write}/{self.corruption}"


def _check_uint(name: str, value: object) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
    if not 0 <= value <= MAX_UINT64:
        raise ValueError(f"{name} out of range: {value}")


@dataclass(frozen=True)
class ScanState:
    """What is known about one scan run (or one resumed continuation).

    ``interrupt_block`` is ``None`` while the run is complete or still going;
    a number means the scan stopped there and the next run resumes from it.
    Block 0 is a valid interruption point.

    Attributes:
        from_block: First block of the scanned range.
        to_block: End of the scanned range as reported by badblocks.
        interrupt_block: Block the scan stopped at, if it was interrupted.
        errors: Read, write and corruption error counters.
    """

    from_block: int
    to_block: int
    interrupt_block: int | None = None
    errors: ErrorCounts = field(default_factory=ErrorCounts)

    def __post_init__(self) -> None:
        _check_uint("from_block", self.from_block)
        _check_uint("to_block", self.to_block)
        if self.from_block > self.to_block:
            raise ValueError(
                f"from_block {self.from_block} is past to_block {self.to_block}"
            )
        if self.interrupt_block is not None:
            _check_uint("interrupt_block", self.interrupt_block)
            if not self.from_block <= self.interrupt_block < self.to_block:
                raise ValueError(
                    f"interrupt_block {self.interrupt_block} outside "
                    f"[{self.from_block}, {self.to_block})"
                )
        if len(self.errors) != 3:
            raise ValueError(f"errors must have 3 counters, got {len(self.errors)}")
        for name, value in zip(ErrorCounts._fields, self.errors):
            _check_uint(f"errors.{name}", value)
        if not isinstance(self.errors, ErrorCounts):
            object.__setattr__(self, "errors", ErrorCounts(*self.errors))

    @property
    def is_interrupted(self) -> bool:
        return self.interrupt_block is not None

    def resume_range(self) -> tuple[int, int] | None:
        """Return ``(first, end)`` for a resumed scan, or None if not interrupted."""
        if self.interrupt_block is None:
            return None
        return self.interrupt_block, self.to_block

    def to_dict(self) -> dict:
        return {
            "from": self.from_block,
            "to": self.to_block,
            "interrupt_block": self.interrupt_block,
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict) -> ScanState:
        """Build a state from its persisted form.

        Raises:
            KeyError: If ``from`` or ``to`` is missing.
            TypeError: If a field has the wrong type.
            ValueError: If the values break the range invariants.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")
        errors = data.get("errors", [0, 0, 0])
        if not isinstance(errors, (list, tuple)):
            raise TypeError("errors must be a list of three counters")
        return cls(
            from_block=data["from"],
            to_block=data["to"],
            interrupt_block=data.get("interrupt_block"),
            errors=ErrorCounts(*errors) if len(errors) == 3 else tuple(errors),
        )
