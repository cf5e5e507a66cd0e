"""Log store for refresh runs.

Keeps, per document group:
- temp workspace assignments (group name -> [path, ...])
- success logs captured from Update-MarkdownHelp, in completion order
- errors raised by the refresh tool

and flushes them to <log_dir>/<group>.json at the end of a run. A group's
file is overwritten on every run that touches the group, so the directory
always holds the latest result per group.
"""

import hashlib
import json
import logging
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class LogStoreError(Exception):
    """Raised when the log store cannot be persisted."""

    pass


def log_file_name(name: str) -> str:
    """File name used to persist a group's logs.

    Names that need sanitizing get a short digest of the raw name, so two
    groups never share a file.
    """
    safe = _UNSAFE_FILENAME_CHARS.sub("_", name)
    if safe != name:
        digest = hashlib.sha256(name.encode("utf-8")).hexdigest()[:8]
        safe = f"{safe}-{digest}"
    return f"{safe}.json"


class LogStore:
    """In-memory store of per-group workspaces, logs and errors."""

    def __init__(self, log_dir: str | Path):
        """Initialize log store.

        Args:
            log_dir: Directory save_in_fs() writes to
        """
        self.log_dir = Path(log_dir).expanduser()
        self._temp_folders: dict[str, list[str]] = {}
        self._logs: dict[str, list[str]] = {}
        self._errors: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def get_all_temp_folders(self) -> dict[str, list[str]]:
        """Snapshot of group name -> registered workspace paths."""
        with self._lock:
            return {name: list(paths) for name, paths in self._temp_folders.items()}

    def add_temp_folder(self, path: str | Path, name: str) -> None:
        with self._lock:
            self._temp_folders.setdefault(name, []).append(str(path))
        logger.debug(f"Registered workspace {path} for {name}")

    def add_error(self, err: Exception | str, name: str) -> None:
        with self._lock:
            self._errors.setdefault(name, []).append(str(err))

    def add_log(self, content: str, name: str) -> None:
        with self._lock:
            self._logs.setdefault(name, []).append(content)

    def get_logs(self, name: str) -> list[str]:
        with self._lock:
            return list(self._logs.get(name, []))

    def get_errors(self, name: str) -> list[str]:
        with self._lock:
            return list(self._errors.get(name, []))

    def group_names(self) -> list[str]:
        """Every group with a workspace, a log or an error, in first-seen order."""
        with self._lock:
            names = list(self._temp_folders)
            for name in [*self._logs, *self._errors]:
                if name not in names:
                    names.append(name)
            return names

    def to_dict(self, name: str) -> dict[str, Any]:
        return {
            "name": name,
            "saved_at": datetime.now(UTC).isoformat(),
            "logs": self.get_logs(name),
            "errors": self.get_errors(name),
        }

    def save_in_fs(self) -> list[Path]:
        """Persist every group's logs and errors atomically.

        Returns:
            Paths written

        Raises:
            LogStoreError: If the log directory or a log file cannot be written
        """
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LogStoreError(f"Failed to create log directory {self.log_dir}: {e}") from e

        written: list[Path] = []
        for name in self.group_names():
            target = self.log_dir / log_file_name(name)
            temp_path = target.with_suffix(".tmp")
            try:
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(self.to_dict(name), f, indent=2)
                temp_path.replace(target)
            except OSError as e:
                if temp_path.exists():
                    temp_path.unlink()
                raise LogStoreError(f"Failed to save logs for {name}: {e}") from e
            written.append(target)

        logger.info(f"Saved logs for {len(written)} document group(s) to {self.log_dir}")
        return written
