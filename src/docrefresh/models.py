"""Data models shared across the refresh pipeline.

- DocumentGroup: a named set of reference pages sharing a root and tag filter
- QueueTask: one (file, group) unit of work
- TaskOutcome: typed result a processor hands back to the queue driver
- RunContext: run-scoped state (groups whose dependencies are installed)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


def string_tuple(value: Any, key: str) -> tuple[str, ...]:
    """Validate a list-of-strings setting.

    Raises:
        ValueError: If value is not a list of strings
    """
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{key}' must be a list of strings, got {value!r}")
    return tuple(value)


@dataclass(frozen=True)
class DocumentGroup:
    """A logical set of Markdown files sharing a root and applicability tags."""

    name: str
    path: str
    meta_tags: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()

    @property
    def root(self) -> Path:
        """Root directory as an absolute path."""
        return Path(self.path).expanduser().resolve()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentGroup":
        """Create from a config table.

        Raises:
            ValueError: If name or path is missing, or a list field is malformed
        """
        name = data.get("name")
        path = data.get("path")
        if not name or not path:
            raise ValueError(f"Document group requires 'name' and 'path': {data!r}")

        return cls(
            name=str(name),
            path=str(path),
            meta_tags=string_tuple(data.get("meta_tags"), "meta_tags"),
            dependencies=string_tuple(data.get("dependencies"), "dependencies"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a config table."""
        return {
            "name": self.name,
            "path": self.path,
            "meta_tags": list(self.meta_tags),
            "dependencies": list(self.dependencies),
        }


@dataclass(frozen=True)
class QueueTask:
    """Unit of work: one candidate file paired with its group."""

    file: Path
    doc: DocumentGroup


class TaskStatus(Enum):
    """Terminal state of a queue task."""

    SUCCESS = "success"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass
class TaskOutcome:
    """Result of processing a single queue task."""

    task: QueueTask
    status: TaskStatus
    result: str = ""
    error: Exception | None = None

    @property
    def doc(self) -> DocumentGroup:
        return self.task.doc

    @classmethod
    def success(cls, task: QueueTask, result: str) -> "TaskOutcome":
        return cls(task=task, status=TaskStatus.SUCCESS, result=result)

    @classmethod
    def empty(cls, task: QueueTask) -> "TaskOutcome":
        return cls(task=task, status=TaskStatus.EMPTY)

    @classmethod
    def failed(cls, task: QueueTask, error: Exception) -> "TaskOutcome":
        return cls(task=task, status=TaskStatus.FAILED, error=error)


@dataclass
class RunContext:
    """State scoped to a single refresh run.

    Only the queue worker mutates it, one task at a time.
    """

    installed_dependencies: set[str] = field(default_factory=set)

    def needs_install(self, name: str) -> bool:
        return name not in self.installed_dependencies

    def mark_installed(self, name: str) -> None:
        self.installed_dependencies.add(name)
