"""Configuration management with fluent builder interface."""

from __future__ import annotations

import json
import signal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from tend.utils.fluent import FluentBuilder
from tend.utils.paths import expand_path, get_config_file

SignalLike = Union[str, int, signal.Signals]


class ConfigError(ValueError):
    """Invalid configuration value or file."""


def parse_signal(value: SignalLike) -> signal.Signals:
    """
    Resolve a signal given by name or number.

    Accepts ``signal.SIGHUP``, ``1``, ``"SIGHUP"``, ``"HUP"`` and ``"hup"``.

    Raises:
        ConfigError: If the value names no known signal.
    """
    if isinstance(value, signal.Signals):
        return value
    try:
        if isinstance(value, int):
            return signal.Signals(value)
        name = str(value).strip().upper()
        if not name.startswith("SIG"):
            name = f"SIG{name}"
        return signal.Signals[name]
    except (KeyError, ValueError):
        raise ConfigError(f"Unknown signal: {value!r}") from None


@dataclass(frozen=True)
class PrepConfig:
    """A command that must succeed before daemons (re)start."""

    command: str


@dataclass(frozen=True)
class DaemonConfig:
    """A long-running command, and the signal that asks it to restart."""

    command: str
    restart_signal: signal.Signals = signal.SIGHUP


@dataclass
class SettingsData:
    """Process supervision settings."""

    shell: str = "/bin/sh"
    min_restart: float = 1.0
    max_restarts: Optional[int] = None
    shutdown_signal: signal.Signals = signal.SIGTERM
    drain_timeout: float = 5.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    file: Optional[Path] = None
    level: str = "INFO"


@dataclass
class ConfigData:
    """Complete configuration data structure."""

    preps: list[PrepConfig] = field(default_factory=list)
    daemons: list[DaemonConfig] = field(default_factory=list)
    settings: SettingsData = field(default_factory=SettingsData)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _command_entry(entry: Any, kind: str) -> dict[str, Any]:
    if isinstance(entry, str):
        return {"command": entry}
    if isinstance(entry, dict) and isinstance(entry.get("command"), str):
        return entry
    raise ConfigError(f"Invalid {kind} entry: {entry!r}")


class Config(FluentBuilder["Config"]):
    """
    Fluent configuration builder for tend.

    Loads ``~/.tend/config.json`` (or the given path) when it exists, then
    lets callers add to it.

    Example:
        config = (
            Config()
            .prep("go generate ./...")
            .daemon("devd -m ./static", restart_signal="SIGHUP")
            .min_restart(seconds=1)
            .build()
        )
    """

    def __init__(self, config_path: Optional[Path] = None, load: bool = True) -> None:
        super().__init__()
        self._config_path = Path(config_path) if config_path else get_config_file()
        self._data = ConfigData()
        if load:
            self._load_existing()

    def _load_existing(self) -> None:
        """Load existing config if present."""
        if not self._config_path.exists():
            return
        try:
            with open(self._config_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {self._config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Expected an object in {self._config_path}")
        self._from_dict(data)

    def _from_dict(self, data: dict[str, Any]) -> None:
        """Populate config from dictionary (for loading from JSON)."""
        for entry in data.get("preps", []):
            self.prep(_command_entry(entry, "prep")["command"])

        for entry in data.get("daemons", []):
            entry = _command_entry(entry, "daemon")
            self.daemon(entry["command"], entry.get("restart_signal", "SIGHUP"))

        settings = data.get("settings", {})
        if "shell" in settings:
            self.shell(settings["shell"])
        if "min_restart" in settings:
            self.min_restart(settings["min_restart"])
        if "max_restarts" in settings:
            self.max_restarts(settings["max_restarts"])
        if "shutdown_signal" in settings:
            self.shutdown_signal(settings["shutdown_signal"])
        if "drain_timeout" in settings:
            self._data.settings.drain_timeout = float(settings["drain_timeout"])

        log = data.get("logging", {})
        if log.get("file"):
            self.log_file(log["file"])
        if "level" in log:
            self.log_level(log["level"])

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for JSON serialization."""
        settings = self._data.settings
        return {
            "preps": [p.command for p in self._data.preps],
            "daemons": [
                {"command": d.command, "restart_signal": d.restart_signal.name}
                for d in self._data.daemons
            ],
            "settings": {
                "shell": settings.shell,
                "min_restart": settings.min_restart,
                "max_restarts": settings.max_restarts,
                "shutdown_signal": settings.shutdown_signal.name,
                "drain_timeout": settings.drain_timeout,
            },
            "logging": {
                "file": str(self._data.logging.file) if self._data.logging.file else None,
                "level": self._data.logging.level,
            },
        }

    # Fluent builder methods

    def prep(self, *commands: str) -> Config:
        """Append prep commands, run in the order given."""
        self._check_not_built()
        for command in commands:
            self._data.preps.append(PrepConfig(command))
        return self

    def daemon(self, command: str, restart_signal: SignalLike = signal.SIGHUP) -> Config:
        """Append a daemon command."""
        self._check_not_built()
        self._data.daemons.append(DaemonConfig(command, parse_signal(restart_signal)))
        return self

    def shell(self, path: str) -> Config:
        """Set the interpreter commands are passed to with ``-c``."""
        self._check_not_built()
        self._data.settings.shell = path
        return self

    def min_restart(self, seconds: float) -> Config:
        """Set the minimum interval between launches of the same daemon."""
        self._check_not_built()
        if seconds < 0:
            raise ConfigError(f"min_restart must not be negative: {seconds}")
        self._data.settings.min_restart = float(seconds)
        return self

    def max_restarts(self, count: Optional[int]) -> Config:
        """Cap restarts after the first launch. None restarts forever."""
        self._check_not_built()
        if count is not None and count < 0:
            raise ConfigError(f"max_restarts must not be negative: {count}")
        self._data.settings.max_restarts = count
        return self

    def shutdown_signal(self, sig: SignalLike) -> Config:
        """Set the signal daemons receive on shutdown."""
        self._check_not_built()
        self._data.settings.shutdown_signal = parse_signal(sig)
        return self

    def log_file(self, path: str) -> Config:
        """Set the log file path."""
        self._check_not_built()
        self._data.logging.file = expand_path(path)
        return self

    def log_level(self, level: str) -> Config:
        """Set the log level."""
        self._check_not_built()
        self._data.logging.level = level.upper()
        return self

    def save(self) -> Config:
        """Save configuration to file."""
        self._config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self._config_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return self

    def build(self) -> ConfigData:
        """Build and return the configuration data."""
        self._mark_built()
        return self._data

    @property
    def data(self) -> ConfigData:
        """Get the configuration data without marking as built."""
        return self._data

    @property
    def path(self) -> Path:
        return self._config_path

    def __repr__(self) -> str:
        return (
            f"Config(path={self._config_path}, preps={len(self._data.preps)}, "
            f"daemons={len(self._data.daemons)})"
        )


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file."""
    return Config(config_path)
