"""Combined report built from persisted refresh logs.

Reads every <group>.json written by LogStore.save_in_fs() and produces
<log_dir>/report.md plus a summary table on the console.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.table import Table

logger = logging.getLogger(__name__)

REPORT_FILE_NAME = "report.md"


class LogParseError(Exception):
    """Raised when persisted logs cannot be read or the report cannot be written."""

    pass


@dataclass
class GroupReport:
    """Refresh results of one document group."""

    name: str
    logs: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    saved_at: str | None = None

    @property
    def log_count(self) -> int:
        return len(self.logs)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass
class ReportSummary:
    """Aggregated report over every persisted group."""

    groups: list[GroupReport] = field(default_factory=list)
    report_path: Path | None = None

    @property
    def total_logs(self) -> int:
        return sum(g.log_count for g in self.groups)

    @property
    def total_errors(self) -> int:
        return sum(g.error_count for g in self.groups)

    def format_summary(self) -> str:
        return (
            f"Groups: {len(self.groups)}, Logs: {self.total_logs}, Errors: {self.total_errors}"
        )


class LogParseService:
    """Build the combined report from a log directory."""

    def __init__(self, log_dir: str | Path, console: Console | None = None):
        self.log_dir = Path(log_dir).expanduser()
        self.console = console or Console()

    def load_group(self, path: Path) -> GroupReport:
        """Load one persisted group file.

        Raises:
            LogParseError: If the file is unreadable or not a group log
        """
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise LogParseError(f"Failed to read {path}: {e}") from e

        if not isinstance(data, dict) or "name" not in data:
            raise LogParseError(f"Not a group log file: {path}")

        return GroupReport(
            name=data["name"],
            logs=list(data.get("logs", [])),
            errors=list(data.get("errors", [])),
            saved_at=data.get("saved_at"),
        )

    def load_all(self) -> list[GroupReport]:
        if not self.log_dir.is_dir():
            logger.debug(f"No log directory at {self.log_dir}")
            return []
        return [self.load_group(path) for path in sorted(self.log_dir.glob("*.json"))]

    @staticmethod
    def render_markdown(groups: list[GroupReport]) -> str:
        lines = ["# Documentation refresh report", ""]

        if not groups:
            lines.extend(["No refresh logs found.", ""])

        for group in groups:
            lines.append(f"## {group.name}")
            lines.append("")
            if group.saved_at:
                lines.append(f"- Saved: {group.saved_at}")
            lines.append(f"- Refreshed files with logs: {group.log_count}")
            lines.append(f"- Errors: {group.error_count}")
            lines.append("")

            if group.errors:
                lines.extend(["### Errors", ""])
                lines.extend(f"- {error.strip()}" for error in group.errors)
                lines.append("")

            if group.logs:
                lines.extend(["### Logs", ""])
                for log in group.logs:
                    lines.extend(["```", log.strip(), "```", ""])

        return "\n".join(lines)

    def print_summary(self, summary: ReportSummary) -> None:
        table = Table(title="Documentation Refresh")
        table.add_column("Group", style="cyan")
        table.add_column("Logs", style="green", justify="right")
        table.add_column("Errors", style="red", justify="right")

        for group in summary.groups:
            table.add_row(group.name, str(group.log_count), str(group.error_count))

        self.console.print(table)
        if summary.report_path:
            self.console.print(f"[dim]Report written to {summary.report_path}[/dim]")

    def parse_all(self) -> ReportSummary:
        """Combine every persisted group log into report.md.

        Raises:
            LogParseError: If a log file is invalid or the report cannot be written
        """
        groups = self.load_all()
        report_path = self.log_dir / REPORT_FILE_NAME

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            report_path.write_text(self.render_markdown(groups), encoding="utf-8")
        except OSError as e:
            raise LogParseError(f"Failed to write report {report_path}: {e}") from e

        summary = ReportSummary(groups=groups, report_path=report_path)
        self.print_summary(summary)
        logger.info(summary.format_summary())
        return summary
