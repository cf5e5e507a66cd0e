"""docrefresh modules - Self-contained bricks following the brick philosophy

- Dependency Installer: Ensure PowerShell modules a document group needs
"""

from . import dependency_installer

__all__ = ["dependency_installer"]
