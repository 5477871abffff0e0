from __future__ import annotations

import asyncio
import logging
import signal

import pytest

from checkdisk.badblocks_process import BadblocksProcess, ScanSetupError
from checkdisk.parsing.models import ScanState


class TestBuildArgs:
    def test_fresh_scan(self):
        assert BadblocksProcess.build_args("/dev/sdb") == ["-sv", "/dev/sdb"]

    def test_resume_passes_last_then_first_block(self):
        state = ScanState(from_block=0, to_block=99, interrupt_block=42)
        args = BadblocksProcess.build_args("/dev/sdb", state)
        assert args == ["-sv", "/dev/sdb", "99", "42"]

    def test_resume_from_block_zero(self):
        state = ScanState(from_block=0, to_block=99, interrupt_block=0)
        assert BadblocksProcess.build_args("sda", state)[-2:] == ["99", "0"]

    def test_flags_and_extra_args(self):
        args = BadblocksProcess.build_args("sda", flags=["-s"], extra_args=["-b", "4096"])
        assert args == ["-s", "-b", "4096", "sda"]

    def test_resume_requires_interrupt_block(self):
        with pytest.raises(ValueError):
            BadblocksProcess.build_args("sda", ScanState(0, 99))


class TestBadblocksProcess:
    @pytest.mark.asyncio
    async def test_spawn_and_read_stderr(self):
        proc = BadblocksProcess("sh", ["-c", "printf 'hello\\n' >&2"])
        await proc.spawn()
        output = await proc.stderr.read()
        assert output == b"hello\n"
        assert await proc.wait() == 0

    @pytest.mark.asyncio
    async def test_exit_code(self):
        proc = BadblocksProcess("sh", ["-c", "exit 3"])
        await proc.spawn()
        await proc.wait()
        assert proc.exit_code() == 3
        assert not proc.is_alive()

    @pytest.mark.asyncio
    async def test_missing_command_raises_setup_error(self, tmp_path):
        proc = BadblocksProcess(str(tmp_path / "no-such-badblocks"), [])
        with pytest.raises(ScanSetupError, match="Error starting"):
            await proc.spawn()
        assert not proc.is_alive()

    @pytest.mark.asyncio
    async def test_send_signal_to_running_process(self):
        proc = BadblocksProcess("sleep", ["10"])
        await proc.spawn()
        assert proc.is_alive()
        assert proc.send_signal(signal.SIGINT) is True
        await proc.wait()
        assert proc.exit_code() == 128 + signal.SIGINT

    @pytest.mark.asyncio
    async def test_no_signal_after_exit(self):
        proc = BadblocksProcess("true", [])
        await proc.spawn()
        await proc.wait()
        assert proc.send_signal(signal.SIGINT) is False

    def test_not_spawned(self):
        proc = BadblocksProcess("true", [])
        assert not proc.is_alive()
        assert proc.exit_code() is None
        assert proc.pid is None
        assert proc.send_signal(signal.SIGINT) is False
        with pytest.raises(RuntimeError):
            proc.stderr

    @pytest.mark.asyncio
    async def test_spawn_logs_command(self, caplog):
        proc = BadblocksProcess("true", ["-sv", "sda"])
        with caplog.at_level(logging.DEBUG, logger="checkdisk.badblocks_process"):
            await proc.spawn()
            await proc.wait()
        assert any("spawn" in r.message.lower() for r in caplog.records)
