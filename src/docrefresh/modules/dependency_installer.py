"""
Dependency Installer Module

Ensures the PowerShell modules a document group needs are installed before
its first file is refreshed.

Public API (the "studs"):
    InstallStatus: Per-module installation status enum
    InstallResult: Per-module installation result dataclass
    DependencyInstallError: Raised when a module cannot be installed
    CmdletDependenciesService: Main installer class
    check_powershell: Verify the PowerShell executable is on PATH

Security Requirements:
- No shell=True in subprocess calls (delegated to PowerShellService)
- Modules installed for the current user only
"""

import logging
import shutil
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from docrefresh.models import DocumentGroup
from docrefresh.powershell_service import PowerShellError, PowerShellService, quote_ps

logger = logging.getLogger(__name__)


class InstallStatus(Enum):
    """Installation status."""

    SUCCESS = "success"
    ALREADY_INSTALLED = "already_installed"


@dataclass
class InstallResult:
    """Result of ensuring a single module."""

    module: str
    status: InstallStatus


class DependencyInstallError(Exception):
    """Raised when a dependency cannot be checked or installed."""

    pass


def check_powershell(executable: str = "pwsh") -> bool:
    """
    Check that the PowerShell executable is available in PATH.

    Security: Uses shutil.which (safe, no subprocess)
    """
    found = shutil.which(executable)
    if found:
        logger.debug(f"Found {executable} at {found}")
        return True
    logger.debug(f"Tool not found: {executable}")
    return False


class CmdletDependenciesService:
    """
    Install the PowerShell modules required to refresh a document group.

    Every group needs platyPS; groups may list extra modules (the module
    that ships their cmdlets) under `dependencies` in the config.
    """

    REQUIRED_MODULES: ClassVar[list[str]] = ["platyPS"]

    def __init__(self, powershell: PowerShellService, docs: Iterable[DocumentGroup] = ()):
        """
        Initialize installer.

        Args:
            powershell: Service used to query and install modules
            docs: Known document groups, looked up by cmdlet name
        """
        self.powershell = powershell
        self.docs = {doc.name: doc for doc in docs}

    def register(self, doc: DocumentGroup) -> None:
        """Make an ad-hoc document group known to the installer."""
        self.docs[doc.name] = doc

    def modules_for(self, cmdlet_name: str) -> list[str]:
        """Required modules plus the group's own dependencies, without duplicates."""
        modules = list(self.REQUIRED_MODULES)
        doc = self.docs.get(cmdlet_name)
        if doc:
            modules.extend(m for m in doc.dependencies if m not in modules)
        return modules

    def is_module_available(self, module: str) -> bool:
        script = f"if (Get-Module -ListAvailable -Name {quote_ps(module)}) {{ 'yes' }} else {{ 'no' }}"
        try:
            output = self.powershell.run_script(script)
        except PowerShellError as e:
            raise DependencyInstallError(f"Failed to check module {module}: {e}") from e
        return output.strip().lower() == "yes"

    def install_module(self, module: str) -> None:
        script = (
            f"Install-Module -Name {quote_ps(module)} "
            "-Scope CurrentUser -Force -AllowClobber"
        )
        try:
            self.powershell.run_script(script)
        except PowerShellError as e:
            raise DependencyInstallError(f"Failed to install module {module}: {e}") from e

    def install_dependencies(self, *, cmdlet_name: str) -> list[InstallResult]:
        """
        Ensure every module needed by a document group is installed.

        Idempotent: modules already present are left untouched.

        Args:
            cmdlet_name: Document group name

        Returns:
            One InstallResult per module

        Raises:
            DependencyInstallError: If a module cannot be checked or installed
        """
        results: list[InstallResult] = []

        for module in self.modules_for(cmdlet_name):
            if self.is_module_available(module):
                logger.debug(f"Module already installed: {module}")
                results.append(InstallResult(module, InstallStatus.ALREADY_INSTALLED))
                continue

            logger.info(f"Installing PowerShell module {module} for {cmdlet_name}...")
            self.install_module(module)
            results.append(InstallResult(module, InstallStatus.SUCCESS))

        return results
