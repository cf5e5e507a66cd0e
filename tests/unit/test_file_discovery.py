"""Unit tests for file_discovery module.

Tests discovery and filtering of reference pages:
- Recursive listing
- Extension and ignore-list filtering
- Applicability tag matching
- Error handling for unreadable roots
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from docrefresh.file_discovery import (
    FileDiscoveryError,
    MarkdownFilter,
    discover_files,
    find_markdown_files,
    read_applicability,
)
from docrefresh.models import DocumentGroup


class TestDiscoverFiles:
    """Test recursive file listing."""

    def test_lists_nested_files_as_absolute_paths(self, docs_root, write_md):
        """Files in subdirectories are found, directories are not yielded."""
        write_md("Get-A.md")
        write_md("sub/deeper/Get-B.md")
        (docs_root / "sub" / "notes.txt").write_text("x")

        files = discover_files(docs_root)

        assert all(f.is_absolute() for f in files)
        assert {f.name for f in files} == {"Get-A.md", "Get-B.md", "notes.txt"}
        assert not any(f.is_dir() for f in files)

    def test_empty_root_returns_empty_list(self, docs_root):
        assert discover_files(docs_root) == []

    def test_symlinked_page_keeps_link_name(self, docs_root, tmp_path):
        target = tmp_path / "shared" / "Get-Shared.md"
        target.parent.mkdir()
        target.write_text("# Get-Shared")
        (docs_root / "Get-Link.md").symlink_to(target)

        files = discover_files(docs_root)

        assert [f.name for f in files] == ["Get-Link.md"]
        assert files[0].parent == docs_root.resolve()

    def test_missing_root_raises(self, tmp_path):
        """Unreadable root fails the whole discovery."""
        with pytest.raises(FileDiscoveryError):
            discover_files(tmp_path / "does-not-exist")


class TestReadApplicability:
    """Test marker line extraction."""

    def test_returns_text_after_marker(self, write_md):
        path = write_md("Get-A.md", applicable="Exchange Online, Exchange Server 2019")
        assert read_applicability(path) == "Exchange Online, Exchange Server 2019"

    def test_returns_none_without_marker(self, write_md):
        path = write_md("Get-A.md")
        assert read_applicability(path) is None

    def test_only_first_marker_line_is_used(self, docs_root):
        path = docs_root / "Get-A.md"
        path.write_text("applicable: SharePoint\nbody\napplicable: Exchange Online\n")
        assert read_applicability(path) == "SharePoint"

    def test_strips_carriage_return(self, docs_root):
        path = docs_root / "Get-A.md"
        path.write_bytes(b"applicable: Exchange Online\r\nbody\r\n")
        assert read_applicability(path) == "Exchange Online"


class TestMarkdownFilter:
    """Test filtering rules."""

    def test_keeps_only_markdown_files(self, docs_root, write_md):
        md = write_md("Get-A.md")
        txt = docs_root / "readme.txt"
        txt.write_text("x")
        doc = DocumentGroup(name="g", path=str(docs_root))

        assert MarkdownFilter().filter([md, txt.resolve()], doc) == [md]

    def test_drops_ignored_files_compared_as_absolute(self, docs_root, write_md, monkeypatch):
        """Relative ignore entries are resolved before comparison."""
        keep = write_md("Get-A.md")
        ignored = write_md("Get-B.md")
        monkeypatch.chdir(docs_root)
        doc = DocumentGroup(name="g", path=str(docs_root))

        result = MarkdownFilter(ignore_files=["Get-B.md"]).filter([keep, ignored], doc)

        assert result == [keep]

    def test_empty_tag_list_keeps_every_file(self, docs_root, write_md):
        """Without tags no file content is inspected."""
        files = [
            write_md("Get-A.md", applicable="Exchange Online"),
            write_md("Get-B.md"),
            write_md("Get-C.md", applicable="SharePoint"),
        ]
        doc = DocumentGroup(name="g", path=str(docs_root))

        assert MarkdownFilter().filter(files, doc) == files

    def test_file_without_marker_is_excluded_when_tags_requested(self, docs_root, write_md):
        no_marker = write_md("Get-A.md")
        doc = DocumentGroup(name="g", path=str(docs_root), meta_tags=("Exchange Online",))

        assert MarkdownFilter().filter([no_marker], doc) == []

    def test_any_tag_substring_matches(self, docs_root, write_md):
        match = write_md("Get-A.md", applicable="Exchange Server 2016, Exchange Online")
        other = write_md("Get-B.md", applicable="Skype for Business")
        doc = DocumentGroup(
            name="g", path=str(docs_root), meta_tags=("SharePoint", "Exchange Online")
        )

        assert MarkdownFilter().filter([match, other], doc) == [match]

    def test_skips_files_inside_excluded_dirs(self, docs_root, write_md):
        keep = write_md("Get-A.md")
        staged = write_md("abc123/Get-A.md")
        doc = DocumentGroup(name="g", path=str(docs_root))

        result = MarkdownFilter().filter([keep, staged], doc, exclude_dirs=[docs_root / "abc123"])

        assert result == [keep]


class TestFindMarkdownFiles:
    """Test discovery and filtering together."""

    def test_only_tagged_file_is_selected(self, docs_root, write_md, exchange_doc):
        """Scenario: one Exchange Online page, one On-Premises page."""
        file1 = write_md("file1.md", applicable="Exchange Online")
        write_md("file2.md", applicable="On-Premises")

        assert find_markdown_files(exchange_doc) == [file1]

    def test_ignore_list_applies(self, docs_root, write_md):
        write_md("Get-A.md")
        ignored = write_md("Get-B.md")
        doc = DocumentGroup(name="g", path=str(docs_root))

        result = find_markdown_files(doc, ignore_files=[str(ignored)])

        assert [p.name for p in result] == ["Get-A.md"]

    def test_undecodable_bytes_do_not_abort_group(self, docs_root, write_md, exchange_doc):
        """A page saved in a legacy encoding is still matched on its marker line."""
        good = write_md("Get-Good.md", applicable="Exchange Online")
        (docs_root / "Get-Legacy.md").write_bytes(
            b"applicable: Exchange Online\n# caf\xe9 \xff\xfe\n"
        )
        (docs_root / "Get-Other.md").write_bytes(b"applicable: SharePoint\ncaf\xe9\n")

        result = find_markdown_files(exchange_doc)

        assert [p.name for p in result] == ["Get-Good.md", "Get-Legacy.md"]
        assert good in result

    def test_unreadable_tagged_file_raises(self, docs_root, write_md, exchange_doc):
        write_md("Get-A.md", applicable="Exchange Online")

        with patch.object(Path, "read_text", side_effect=PermissionError("denied")):
            with pytest.raises(FileDiscoveryError, match="denied"):
                find_markdown_files(exchange_doc)

    def test_results_are_sorted(self, docs_root, write_md):
        write_md("b/Get-B.md")
        write_md("a/Get-A.md")
        doc = DocumentGroup(name="g", path=str(docs_root))

        result = find_markdown_files(doc)

        assert result == sorted(result)
        assert [Path(p).name for p in result] == ["Get-A.md", "Get-B.md"]
