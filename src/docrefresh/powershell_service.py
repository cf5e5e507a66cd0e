"""PowerShell subprocess execution for platyPS refreshes.

Provides PowerShellService, a thin wrapper around subprocess.run that runs
PowerShell scripts non-interactively and exposes the one operation the
pipeline needs: Update-MarkdownHelp against a single Markdown file.

Each refresh is attempted exactly once. There is no retry.

Usage:
    from docrefresh.powershell_service import PowerShellService

    service = PowerShellService(executable="pwsh")
    output = service.update_markdown(Path("Get-Foo.md"), Path("run.log"))
    service.dispose()

Security:
- No shell=True; the script is passed as a single -Command argument
- Paths are embedded as single-quoted PowerShell literals
"""

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)

UPDATE_MARKDOWN_FLAGS = ["-AlphabeticParamsOrder", "-UpdateInputOutput", "-ExcludeDontShow"]


class PowerShellError(Exception):
    """Raised when a PowerShell invocation fails."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        super().__init__(message)


def quote_ps(value: str | Path) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + str(value).replace("'", "''") + "'"


class PowerShellService:
    """Runs PowerShell scripts through a pwsh executable."""

    def __init__(self, executable: str = "pwsh", timeout: int | None = None):
        """Initialize service.

        Args:
            executable: PowerShell executable (pwsh or powershell)
            timeout: Per-invocation timeout in seconds, None for no limit
        """
        self.executable = executable
        self.timeout = timeout
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def build_command(self, script: str) -> list[str]:
        return [
            self.executable,
            "-NoLogo",
            "-NoProfile",
            "-NonInteractive",
            "-Command",
            f"$ErrorActionPreference = 'Stop'; {script}",
        ]

    def run_script(self, script: str) -> str:
        """Run a PowerShell script and return its stdout.

        Raises:
            PowerShellError: If the session is disposed, the executable cannot
                be started, the script times out, or it exits non-zero
        """
        if self._disposed:
            raise PowerShellError("PowerShell session has been disposed")

        cmd = self.build_command(script)
        logger.debug(f"Running PowerShell: {script}")

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=False, timeout=self.timeout
            )
        except FileNotFoundError as e:
            raise PowerShellError(f"PowerShell executable not found: {self.executable}") from e
        except subprocess.TimeoutExpired as e:
            raise PowerShellError(f"PowerShell timed out after {self.timeout}s") from e

        if result.returncode != 0:
            output = (result.stdout or "") + (result.stderr or "")
            raise PowerShellError(
                f"PowerShell exited with code {result.returncode}: "
                f"{(result.stderr or result.stdout or '').strip()}",
                output=output,
            )

        return result.stdout or ""

    def update_markdown(self, md_path: str | Path, log_path: str | Path) -> str:
        """Refresh a Markdown help file in place with Update-MarkdownHelp.

        The tool writes its log to log_path as a side effect.

        Args:
            md_path: Markdown file to refresh
            log_path: File Update-MarkdownHelp logs to

        Returns:
            Console output of the command

        Raises:
            PowerShellError: If the refresh fails
        """
        script = " ".join(
            [
                "Import-Module platyPS;",
                "Update-MarkdownHelp",
                "-Path",
                quote_ps(md_path),
                "-LogPath",
                quote_ps(log_path),
                *UPDATE_MARKDOWN_FLAGS,
                "| Out-String",
            ]
        )
        return self.run_script(script)

    def dispose(self) -> None:
        """Close the session; later invocations raise PowerShellError."""
        if not self._disposed:
            logger.debug("Disposing PowerShell session")
        self._disposed = True


__all__ = ["PowerShellError", "PowerShellService", "quote_ps"]
