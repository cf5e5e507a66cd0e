"""Discovery and filtering of cmdlet reference Markdown files.

This module provides:
- Recursive file listing under a document group root
- Exclusion by the process-wide ignore list
- Selection by the applicability tag declared inside each file
"""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from docrefresh.models import DocumentGroup

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSION = ".md"

# Single-line applicability declaration, e.g. "applicable: Exchange Online, Exchange Server 2019"
APPLICABLE_MARKER = re.compile(r"(?<=applicable: ).+")


class FileDiscoveryError(Exception):
    """Raised when a root, directory or candidate file cannot be read."""

    pass


def discover_files(root: str | Path) -> list[Path]:
    """Recursively list all files under root.

    Directories are traversed but never returned.

    Args:
        root: Directory to walk

    Returns:
        Sorted list of absolute file paths

    Raises:
        FileDiscoveryError: If root or any subdirectory is unreadable
    """
    root_path = Path(root).expanduser().resolve()
    files: list[Path] = []

    def _walk(directory: Path) -> None:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise FileDiscoveryError(f"Cannot read directory {directory}: {e}") from e

        for entry in entries:
            if entry.is_dir():
                _walk(entry)
            else:
                files.append(entry.absolute())

    _walk(root_path)
    logger.debug(f"Discovered {len(files)} files under {root_path}")
    return files


def read_applicability(file_path: Path) -> str | None:
    """Return the text following the applicability marker, or None if absent.

    Undecodable bytes are replaced, so only an OS-level read failure raises.

    Raises:
        FileDiscoveryError: If the file cannot be read
    """
    try:
        content = file_path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise FileDiscoveryError(f"Cannot read {file_path}: {e}") from e

    match = APPLICABLE_MARKER.search(content)
    if not match:
        return None
    return match.group(0).rstrip("\r")


class MarkdownFilter:
    """Selects which discovered files are queued for a document group."""

    def __init__(self, ignore_files: Iterable[str | Path] = ()):
        """Initialize filter.

        Args:
            ignore_files: Paths never to refresh (resolved to absolute form)
        """
        self.ignore_paths = {Path(f).expanduser().resolve() for f in ignore_files}

    def is_markdown(self, file_path: Path) -> bool:
        return file_path.name.endswith(MARKDOWN_EXTENSION)

    def is_ignored(self, file_path: Path) -> bool:
        return Path(file_path).resolve() in self.ignore_paths

    @staticmethod
    def is_in_excluded_dir(file_path: Path, exclude_dirs: Iterable[Path]) -> bool:
        resolved = file_path.resolve()
        for directory in exclude_dirs:
            if resolved.is_relative_to(Path(directory).resolve()):
                return True
        return False

    @staticmethod
    def contains_tag(file_path: Path, doc: DocumentGroup) -> bool:
        """Check whether any of the group's tags appears in the file's marker line.

        Groups without tags accept every file without reading it.
        """
        if not doc.meta_tags:
            return True

        applicable = read_applicability(file_path)
        if applicable is None:
            return False

        return any(tag in applicable for tag in doc.meta_tags)

    def filter(
        self,
        files: Iterable[Path],
        doc: DocumentGroup,
        exclude_dirs: Iterable[Path] = (),
    ) -> list[Path]:
        """Apply extension, ignore-list, workspace and tag filters in order.

        Args:
            files: Discovered file paths
            doc: Group whose tags are required
            exclude_dirs: Directories whose contents are skipped (temp workspaces)

        Returns:
            Files to queue, in input order

        Raises:
            FileDiscoveryError: If a tagged candidate cannot be read
        """
        exclude = list(exclude_dirs)
        selected: list[Path] = []

        for file_path in files:
            if not self.is_markdown(file_path):
                continue
            if self.is_ignored(file_path):
                logger.debug(f"Ignoring {file_path} (ignore list)")
                continue
            if exclude and self.is_in_excluded_dir(file_path, exclude):
                continue
            if not self.contains_tag(file_path, doc):
                logger.debug(f"Skipping {file_path} (no matching applicability tag)")
                continue
            selected.append(file_path)

        return selected


def find_markdown_files(
    doc: DocumentGroup,
    ignore_files: Iterable[str | Path] = (),
    exclude_dirs: Iterable[Path] = (),
) -> list[Path]:
    """Discover and filter the files to refresh for a document group."""
    return MarkdownFilter(ignore_files).filter(discover_files(doc.path), doc, exclude_dirs)
