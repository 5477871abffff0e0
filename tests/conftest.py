import stat

import pytest

from checkdisk.config import AppConfig, BadblocksConfig, CheckpointConfig


def _write_script(path, body: str):
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_scanner(tmp_path):
    """Build a stand-in badblocks that replays a transcript on stderr.

    Returns a factory ``make(transcript, exit_code=0)`` giving the script
    path. The script records its arguments, one per line, in ``args.txt``.
    """
    args_file = tmp_path / "args.txt"

    def make(transcript: bytes, exit_code: int = 0):
        transcript_file = tmp_path / "transcript.bin"
        transcript_file.write_bytes(transcript)
        return _write_script(
            tmp_path / "badblocks",
            f'printf "%s\\n" "$@" > "{args_file}"\n'
            f'cat "{transcript_file}" >&2\n'
            f"exit {exit_code}\n",
        )

    make.args_file = args_file
    return make


@pytest.fixture
def interruptible_scanner(tmp_path):
    """A stand-in badblocks that runs until it receives SIGINT.

    Writes its pid to ``ready`` once started; on SIGINT prints the interruption line
    and exits 130 like badblocks does.
    """
    ready = tmp_path / "ready"
    script = _write_script(
        tmp_path / "badblocks-slow",
        "trap 'printf \"\\nInterrupted at block 42\\n\" >&2; exit 130' INT\n"
        "printf 'Checking blocks 0 to 99\\n' >&2\n"
        "printf 'Checking for bad blocks (read-only test): ' >&2\n"
        f'echo $$ > "{ready}.tmp" && mv "{ready}.tmp" "{ready}"\n'
        "while true; do sleep 0.05; done\n",
    )
    return script, ready


@pytest.fixture
def make_config(tmp_path):
    """AppConfig pointing at a scanner script and a temp checkpoint file."""

    def make(command) -> AppConfig:
        return AppConfig(
            badblocks=BadblocksConfig(command=str(command)),
            checkpoint=CheckpointConfig(path=str(tmp_path / "checkdisk.json")),
        )

    return make
