"""Configuration management module.

This module handles persistent configuration storage using TOML format.
Stores the document groups to refresh, the process-wide ignore list, the
log directory and the PowerShell executable to use.

Security:
- Config file permissions: 0600 (owner read/write only)
- Atomic writes (temp file + rename)
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomli
import tomlkit

from docrefresh.models import DocumentGroup, string_tuple

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration operations fail."""

    pass


@dataclass
class DocRefreshConfig:
    """docrefresh configuration data."""

    log_dir: str = "~/.docrefresh/logs"
    powershell_executable: str = "pwsh"
    tool_timeout: int = 0  # seconds, 0 disables the timeout
    ignore_files: list[str] = field(default_factory=list)
    docs: list[DocumentGroup] = field(default_factory=list)

    @property
    def log_path(self) -> Path:
        """Log directory as an absolute path."""
        return Path(self.log_dir).expanduser().resolve()

    @property
    def timeout(self) -> int | None:
        """Refresh tool timeout, or None when disabled."""
        return self.tool_timeout if self.tool_timeout > 0 else None

    def get_doc_group(self, name: str) -> DocumentGroup:
        """Look up a configured document group by name.

        Raises:
            ConfigError: If no group has that name
        """
        for doc in self.docs:
            if doc.name == name:
                return doc
        known = ", ".join(d.name for d in self.docs) or "none"
        raise ConfigError(f"Unknown document group: '{name}' (configured: {known})")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary suitable for TOML."""
        return {
            "log_dir": self.log_dir,
            "powershell_executable": self.powershell_executable,
            "tool_timeout": self.tool_timeout,
            "ignore_files": list(self.ignore_files),
            "docs": [doc.to_dict() for doc in self.docs],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocRefreshConfig":
        """Create from dictionary.

        Raises:
            ConfigError: If a setting has the wrong type or a document group is malformed
        """
        entries = data.get("docs", [])
        if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
            raise ConfigError("'docs' must be an array of tables ([[docs]])")

        try:
            docs = [DocumentGroup.from_dict(entry) for entry in entries]
            ignore_files = list(string_tuple(data.get("ignore_files"), "ignore_files"))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        names = [doc.name for doc in docs]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigError(f"Duplicate document group names: {', '.join(duplicates)}")

        tool_timeout = data.get("tool_timeout", 0)
        if isinstance(tool_timeout, bool) or not isinstance(tool_timeout, int) or tool_timeout < 0:
            raise ConfigError(
                f"'tool_timeout' must be a non-negative integer, got {tool_timeout!r}"
            )

        for key in ("log_dir", "powershell_executable"):
            if key in data and not isinstance(data[key], str):
                raise ConfigError(f"'{key}' must be a string, got {data[key]!r}")

        return cls(
            log_dir=data.get("log_dir", "~/.docrefresh/logs"),
            powershell_executable=data.get("powershell_executable", "pwsh"),
            tool_timeout=tool_timeout,
            ignore_files=ignore_files,
            docs=docs,
        )


class ConfigManager:
    """Manage the docrefresh configuration file.

    Configuration is stored at ~/.docrefresh/config.toml with secure permissions.
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".docrefresh"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

    @classmethod
    def get_config_path(cls, custom_path: str | None = None) -> Path:
        """Get configuration file path.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            Path to config file

        Raises:
            ConfigError: If a custom path is given but does not exist
        """
        if custom_path:
            path = Path(custom_path).expanduser().resolve()
            if not path.exists():
                raise ConfigError(f"Config file not found: {path}")
            return path

        return cls.DEFAULT_CONFIG_FILE

    @classmethod
    def load_config(cls, custom_path: str | None = None) -> DocRefreshConfig:
        """Load configuration from file.

        Args:
            custom_path: Custom config file path (optional)

        Returns:
            DocRefreshConfig object (defaults if no file exists)

        Raises:
            ConfigError: If loading fails
        """
        config_path = cls.get_config_path(custom_path)

        if not config_path.exists():
            logger.debug("Config file not found, using defaults")
            return DocRefreshConfig()

        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to load config: {e}") from e

        logger.debug(f"Loaded config from: {config_path}")
        return DocRefreshConfig.from_dict(data)

    @classmethod
    def save_config(cls, config: DocRefreshConfig, custom_path: str | None = None) -> Path:
        """Save configuration to file.

        Existing comments and formatting are preserved through tomlkit.

        Args:
            config: Configuration to save
            custom_path: Custom config file path (optional)

        Returns:
            Path the config was written to

        Raises:
            ConfigError: If saving fails
        """
        temp_path: Path | None = None
        try:
            if custom_path:
                config_path = Path(custom_path).expanduser().resolve()
            else:
                config_path = cls.DEFAULT_CONFIG_FILE
            config_path.parent.mkdir(parents=True, exist_ok=True)

            temp_path = config_path.with_suffix(".tmp")

            if config_path.exists():
                with open(config_path) as f:
                    doc = tomlkit.load(f)
            else:
                doc = tomlkit.document()

            for key, value in config.to_dict().items():
                if key == "docs":
                    tables = tomlkit.aot()
                    for entry in value:
                        table = tomlkit.table()
                        table.update(entry)
                        tables.append(table)
                    doc[key] = tables
                else:
                    doc[key] = value

            with open(temp_path, "w") as f:
                tomlkit.dump(doc, f)

            os.chmod(temp_path, 0o600)
            temp_path.replace(config_path)

            logger.debug(f"Saved config to: {config_path}")
            return config_path

        except Exception as e:
            if temp_path and temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to save config: {e}") from e
