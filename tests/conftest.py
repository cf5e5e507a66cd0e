"""
Shared test fixtures for docrefresh tests.

This module provides common fixtures used across the unit tests:
- A temporary documentation tree with Markdown reference pages
- A fake PowerShell service that writes platyPS-style logs
- A MarkdownService wired to a real LogStore and mocked collaborators
"""

from pathlib import Path
from unittest.mock import Mock

import pytest

from docrefresh.log_parser import LogParseService
from docrefresh.log_store import LogStore
from docrefresh.markdown_service import MarkdownService
from docrefresh.models import DocumentGroup
from docrefresh.modules.dependency_installer import CmdletDependenciesService
from docrefresh.powershell_service import PowerShellError, PowerShellService

# ============================================================================
# DOCUMENT TREE FIXTURES
# ============================================================================


@pytest.fixture
def docs_root(tmp_path):
    """Empty documentation root directory."""
    root = tmp_path / "docs"
    root.mkdir()
    return root


@pytest.fixture
def write_md(docs_root):
    """Factory writing a Markdown reference page under docs_root.

    Example:
        path = write_md("exchange/Get-Foo.md", applicable="Exchange Online")
    """

    def _write(relative: str, applicable: str | None = None, body: str = "") -> Path:
        path = docs_root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        lines = ["---", "external help file: Foo-help.xml"]
        if applicable is not None:
            lines.append(f"applicable: {applicable}")
        lines.extend(["schema: 2.0.0", "---", "", f"# {path.stem}", body])
        path.write_text("\n".join(lines), encoding="utf-8")
        return path.resolve()

    return _write


@pytest.fixture
def exchange_doc(docs_root):
    """Document group filtered on the Exchange Online tag."""
    return DocumentGroup(name="Get-Foo", path=str(docs_root), meta_tags=("Exchange Online",))


# ============================================================================
# COLLABORATOR FIXTURES
# ============================================================================


@pytest.fixture
def fake_powershell():
    """PowerShellService double whose refresh writes a log next to the copy.

    Set `fake_powershell.failing` to a set of file names whose refresh
    should raise PowerShellError.
    """
    service = Mock(spec=PowerShellService)
    service.failing = set()

    def _update(md_path, log_path):
        name = Path(md_path).name
        if name in service.failing:
            raise PowerShellError(f"Update-MarkdownHelp failed for {name}", output="boom")
        Path(log_path).write_text(f"Updated {name}\n", encoding="utf-8")
        return f"refreshed {name}"

    service.update_markdown.side_effect = _update
    return service


@pytest.fixture
def log_store(tmp_path):
    """Real LogStore persisting under tmp_path/logs."""
    return LogStore(tmp_path / "logs")


@pytest.fixture
def make_service(fake_powershell, log_store):
    """Factory building a MarkdownService with mocked installer and parser."""

    def _make(ignore_files=(), powershell=None) -> MarkdownService:
        return MarkdownService(
            powershell=powershell or fake_powershell,
            log_store=log_store,
            log_parser=Mock(spec=LogParseService),
            dependencies=Mock(spec=CmdletDependenciesService),
            ignore_files=ignore_files,
        )

    return _make
