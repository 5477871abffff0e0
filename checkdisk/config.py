from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from checkdisk.parsing.badblocks_patterns import OutputGrammar

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


@dataclass
class BadblocksConfig:
    """How to invoke the external block-checking tool."""

    command: str = "/usr/sbin/badblocks"
    flags: list[str] = field(default_factory=lambda: ["-sv"])
    extra_args: list[str] = field(default_factory=list)


@dataclass
class CheckpointConfig:
    """Where scan state is persisted between runs."""

    path: str = "checkdisk.json"


@dataclass
class DebugConfig:
    """Debug mode settings."""

    enabled: bool = False
    trace: bool = False
    verbose: bool = False


@dataclass
class AppConfig:
    """Top-level application configuration aggregating all subsections."""

    badblocks: BadblocksConfig = field(default_factory=BadblocksConfig)
    checkpoint: CheckpointConfig = field(default_factory=CheckpointConfig)
    grammar: OutputGrammar = field(default_factory=OutputGrammar)
    debug: DebugConfig = field(default_factory=DebugConfig)


def _string_list(raw: object, name: str) -> list[str]:
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise ConfigError(f"{name} must be a list of strings")
    return list(raw)


def load_config(path: str | None) -> AppConfig:
    """Load and validate application configuration from a YAML file.

    Every section is optional; missing keys get the defaults of the
    matching dataclass. Passing None skips the file and returns defaults.

    Args:
        path: Filesystem path to the YAML configuration file, or None.

    Returns:
        A fully populated AppConfig instance.

    Raises:
        ConfigError: If the file does not exist, is not a YAML mapping, or
            holds invalid values (non-list flags, bad grammar patterns).
    """
    if path is None:
        return AppConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    # An empty file loads as None
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    # `or {}` fallback handles YAML null values for optional sections
    badblocks_raw = raw.get("badblocks", {}) or {}
    checkpoint_raw = raw.get("checkpoint", {}) or {}
    grammar_raw = raw.get("grammar", {}) or {}
    debug_raw = raw.get("debug", {}) or {}

    if not isinstance(grammar_raw, dict):
        raise ConfigError("grammar must be a mapping of pattern name to regex")
    try:
        grammar = OutputGrammar.from_mapping(grammar_raw)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc

    command = badblocks_raw.get("command", "/usr/sbin/badblocks")
    if not command or not isinstance(command, str):
        raise ConfigError("badblocks.command must be a non-empty string")

    logger.debug("Loaded config from %s", path)
    logger.debug("badblocks command=%s grammar overrides=%s", command, sorted(grammar_raw))

    return AppConfig(
        badblocks=BadblocksConfig(
            command=command,
            flags=_string_list(badblocks_raw.get("flags", ["-sv"]), "badblocks.flags"),
            extra_args=_string_list(badblocks_raw.get("extra_args", []), "badblocks.extra_args"),
        ),
        checkpoint=CheckpointConfig(
            path=str(checkpoint_raw.get("path", "checkdisk.json")),
        ),
        grammar=grammar,
        debug=DebugConfig(
            enabled=bool(debug_raw.get("enabled", False)),
            trace=bool(debug_raw.get("trace", False)),
            verbose=bool(debug_raw.get("verbose", False)),
        ),
    )
