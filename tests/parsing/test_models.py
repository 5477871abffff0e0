import dataclasses

import pytest

from checkdisk.parsing.models import MAX_UINT64, ErrorCounts, LineKind, ScanState


class TestLineKind:
    def test_all_kinds_exist(self):
        assert LineKind.START.value == "start"
        assert LineKind.PROGRESS.value == "progress"
        assert LineKind.EMPTY_PROGRESS.value == "empty_progress"
        assert LineKind.PROGRESS_DONE.value == "progress_done"
        assert LineKind.SUMMARY.value == "summary"
        assert LineKind.INTERRUPTED.value == "interrupted"
        assert LineKind.BLANK.value == "blank"
        assert LineKind.UNKNOWN.value == "unknown"

    def test_enum_count(self):
        assert len(LineKind) == 8


class TestErrorCounts:
    def test_defaults_to_zero(self):
        assert ErrorCounts() == (0, 0, 0)

    def test_str_uses_badblocks_notation(self):
        assert str(ErrorCounts(1, 2, 3)) == "1/2/3"


class TestScanState:
    def test_defaults(self):
        state = ScanState(from_block=0, to_block=99)
        assert state.interrupt_block is None
        assert state.errors == ErrorCounts(0, 0, 0)
        assert not state.is_interrupted
        assert state.resume_range() is None

    def test_is_immutable(self):
        state = ScanState(from_block=0, to_block=99)
        with pytest.raises(dataclasses.FrozenInstanceError):
            state.interrupt_block = 5

    def test_resume_range(self):
        state = ScanState(from_block=0, to_block=99, interrupt_block=42)
        assert state.resume_range() == (42, 99)

    def test_block_zero_counts_as_interrupted(self):
        state = ScanState(from_block=0, to_block=99, interrupt_block=0)
        assert state.is_interrupted
        assert state.resume_range() == (0, 99)

    def test_plain_tuple_errors_are_normalized(self):
        state = ScanState(from_block=0, to_block=1, errors=(1, 2, 3))
        assert isinstance(state.errors, ErrorCounts)
        assert state.errors.corruption == 3

    def test_empty_range_allowed(self):
        assert ScanState(from_block=5, to_block=5).to_block == 5

    @pytest.mark.parametrize("kwargs", [
        {"from_block": 10, "to_block": 5},
        {"from_block": 0, "to_block": 99, "interrupt_block": 99},
        {"from_block": 10, "to_block": 99, "interrupt_block": 9},
        {"from_block": -1, "to_block": 99},
        {"from_block": 0, "to_block": MAX_UINT64 + 1},
        {"from_block": 0, "to_block": 9, "errors": (1, 2)},
        {"from_block": 0, "to_block": 9, "errors": (1, -2, 3)},
    ])
    def test_invariants_enforced(self, kwargs):
        with pytest.raises(ValueError):
            ScanState(**kwargs)

    @pytest.mark.parametrize("kwargs", [
        {"from_block": "0", "to_block": 99},
        {"from_block": True, "to_block": 99},
        {"from_block": 0, "to_block": 99.0},
    ])
    def test_types_enforced(self, kwargs):
        with pytest.raises(TypeError):
            ScanState(**kwargs)

    def test_to_dict(self):
        state = ScanState(0, 99, 42, ErrorCounts(1, 2, 3))
        assert state.to_dict() == {
            "from": 0, "to": 99, "interrupt_block": 42, "errors": [1, 2, 3],
        }

    def test_from_dict_defaults(self):
        state = ScanState.from_dict({"from": 3, "to": 7})
        assert state == ScanState(from_block=3, to_block=7)

    @pytest.mark.parametrize("data, exc", [
        ({"to": 7}, KeyError),
        ({"from": 0, "to": 7, "errors": "0/0/0"}, TypeError),
        ({"from": 0, "to": 7, "errors": [0, 0]}, ValueError),
        ({"from": 0, "to": 7, "interrupt_block": 8}, ValueError),
        ([0, 7], TypeError),
    ])
    def test_from_dict_rejects_malformed(self, data, exc):
        with pytest.raises(exc):
            ScanState.from_dict(data)
