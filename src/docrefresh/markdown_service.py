"""Markdown refresh service.

Feeds cmdlet reference pages through Update-MarkdownHelp one at a time:

1. Discover and filter the files of a document group
2. Queue each file; the queue runs them strictly in order
3. Per file: install group dependencies once, copy the file into the
   group's temp workspace, refresh the copy, capture the tool's log
4. When the caller closes the run and the queue drains: dispose the
   PowerShell session, persist logs, delete workspaces, build the report

Error policy:
- A refresh tool failure is expected: it is recorded under the group's
  errors and the task completes with an empty result
- Workspace, copy and log-read failures fail the task; the run reports
  them as fatal once the queue has drained
- Workspace cleanup failures are fatal
"""

import logging
import shutil
import uuid
from collections.abc import Iterable
from pathlib import Path

import click

from docrefresh.file_discovery import MarkdownFilter, discover_files
from docrefresh.log_parser import LogParseService
from docrefresh.log_store import LogStore
from docrefresh.models import DocumentGroup, QueueTask, RunContext, TaskOutcome
from docrefresh.modules.dependency_installer import CmdletDependenciesService
from docrefresh.powershell_service import PowerShellError, PowerShellService
from docrefresh.task_queue import TaskQueue

logger = logging.getLogger(__name__)

CANT_CREATE_TEMP_FOLDER = "Can't create temp folder"
CANT_COPY_MD_FILE = "Can't copy markdown file into temp folder"
CANT_OPEN_LOG_FILE = "Can't open log file"


class MarkdownServiceError(Exception):
    """Raised when a file cannot be staged or its log cannot be read."""

    pass


class WorkspaceCleanupError(Exception):
    """Raised when a temp workspace cannot be removed at the end of a run."""

    pass


def short_id() -> str:
    """Random identifier for workspace and log file names."""
    return uuid.uuid4().hex[:10]


class MarkdownService:
    """Queue-driven refresh of Markdown help files."""

    def __init__(
        self,
        powershell: PowerShellService,
        log_store: LogStore,
        log_parser: LogParseService,
        dependencies: CmdletDependenciesService,
        ignore_files: Iterable[str | Path] = (),
        context: RunContext | None = None,
    ):
        """Initialize service.

        Args:
            powershell: Runs Update-MarkdownHelp
            log_store: Keeps workspaces, logs and errors per group
            log_parser: Builds the combined report after the run
            dependencies: Installs the modules a group needs
            ignore_files: Paths never to refresh
            context: Run-scoped state (a fresh one by default)
        """
        self.powershell = powershell
        self.log_store = log_store
        self.log_parser = log_parser
        self.dependencies = dependencies
        self.md_filter = MarkdownFilter(ignore_files)
        self.context = context or RunContext()

        self.queue = TaskQueue(self.process_task, on_drained=self.queue_empty_handler)

    def update_md(self, doc: DocumentGroup) -> int:
        """Queue every eligible file of a document group.

        Returns:
            Number of files queued
        """
        return self.add_md_files_in_queue(doc)

    def add_md_files_in_queue(self, doc: DocumentGroup) -> int:
        """Discover, filter and enqueue a group's files.

        Raises:
            FileDiscoveryError: If the root or a candidate file is unreadable
            TaskQueueError: If the run has already been finished
        """
        self.dependencies.register(doc)

        discovered = discover_files(doc.path)

        # Workspaces are registered before they are created, so a snapshot taken
        # after the walk covers every workspace the walk could have entered.
        workspaces = [
            Path(path)
            for paths in self.log_store.get_all_temp_folders().values()
            for path in paths
        ]
        md_files = self.md_filter.filter(discovered, doc, exclude_dirs=workspaces)

        for file_path in md_files:
            self.queue.push(
                QueueTask(file=file_path, doc=doc),
                on_finish=self.queue_finish_handler,
                on_failed=self.queue_failed_handler,
            )

        logger.info(f"Queued {len(md_files)} file(s) for {doc.name}")
        return len(md_files)

    def finish(self) -> list[TaskOutcome]:
        """Declare that no more groups will be submitted and wait for the run.

        Returns:
            Every task outcome in completion order

        Raises:
            TaskQueueError: If any task failed (after cleanup has run)
            WorkspaceCleanupError: If a workspace cannot be removed
        """
        self.queue.close()
        return self.queue.join()

    def get_temp_folder(self, doc: DocumentGroup) -> Path:
        """Return the group's workspace, registering a new one on first use."""
        temp_folders = self.log_store.get_all_temp_folders()

        if doc.name not in temp_folders:
            self.log_store.add_temp_folder(doc.root / short_id(), doc.name)
            temp_folders = self.log_store.get_all_temp_folders()

        return Path(temp_folders[doc.name][0])

    def process_task(self, task: QueueTask) -> TaskOutcome:
        """Refresh a single file."""
        doc = task.doc

        if self.context.needs_install(doc.name):
            self.context.mark_installed(doc.name)
            self.dependencies.install_dependencies(cmdlet_name=doc.name)

        temp_folder = self.get_temp_folder(doc)
        log_file_path = temp_folder / f"{short_id()}.log"

        try:
            md_copy = self.copy_md_in_temp_folder(task.file, temp_folder)
        except MarkdownServiceError as e:
            return TaskOutcome.failed(task, e)

        try:
            output = self.powershell.update_markdown(md_copy, log_file_path)
        except PowerShellError as e:
            click.echo(f"{task.file}: {e}", err=True)
            if e.output:
                click.echo(e.output, err=True)
            self.log_store.add_error(e, doc.name)
            return TaskOutcome.empty(task)

        click.echo(output)

        try:
            result = self.get_log_file_content(log_file_path)
        except MarkdownServiceError as e:
            return TaskOutcome.failed(task, e)

        click.echo(result)
        return TaskOutcome.success(task, result)

    def queue_finish_handler(self, outcome: TaskOutcome) -> None:
        if not outcome.result:
            return
        self.log_store.add_log(outcome.result, outcome.doc.name)

    def queue_failed_handler(self, outcome: TaskOutcome) -> None:
        logger.error(f"Failed to refresh {outcome.task.file}: {outcome.error}")

    def queue_empty_handler(self) -> None:
        """Run completion: dispose, persist, clean up, report."""
        self.powershell.dispose()
        self.log_store.save_in_fs()
        self.remove_temp_folders()
        self.log_parser.parse_all()

    def remove_temp_folders(self) -> list[Path]:
        """Delete every registered workspace that still exists.

        Raises:
            WorkspaceCleanupError: If a workspace cannot be removed
        """
        removed: list[Path] = []

        for paths in self.log_store.get_all_temp_folders().values():
            for path in map(Path, paths):
                if not path.exists():
                    continue
                try:
                    shutil.rmtree(path)
                except OSError as e:
                    raise WorkspaceCleanupError(f"Failed to remove temp folder {path}: {e}") from e
                logger.debug(f"Removed temp folder {path}")
                removed.append(path)

        return removed

    def copy_md_in_temp_folder(self, src_file_path: Path, temp_folder_path: Path) -> Path:
        """Copy a file into the workspace, keeping its base name.

        Raises:
            MarkdownServiceError: If the workspace or the copy cannot be created
        """
        if not temp_folder_path.is_dir():
            try:
                temp_folder_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise MarkdownServiceError(CANT_CREATE_TEMP_FOLDER) from e

        dist_file_path = temp_folder_path / src_file_path.name
        try:
            shutil.copy2(src_file_path, dist_file_path)
        except OSError as e:
            raise MarkdownServiceError(CANT_COPY_MD_FILE) from e

        return dist_file_path

    def get_log_file_content(self, log_file_path: Path) -> str:
        """Read the tool's log, creating an empty one if the tool wrote none.

        Raises:
            MarkdownServiceError: If the log cannot be created or read
        """
        try:
            log_file_path.touch(exist_ok=True)
            return log_file_path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as e:
            raise MarkdownServiceError(CANT_OPEN_LOG_FILE) from e
