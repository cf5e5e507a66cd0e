"""docrefresh - PowerShell cmdlet reference refresh pipeline

Philosophy:
- Ruthless simplicity
- Brick architecture (self-contained modules)
- One file at a time through platyPS, failures isolated per file
- Fail loudly on infrastructure problems

The docrefresh CLI finds cmdlet reference Markdown files, filters them by
ignore list and applicability tag, and refreshes each one with
Update-MarkdownHelp, keeping the tool's logs for later auditing.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
