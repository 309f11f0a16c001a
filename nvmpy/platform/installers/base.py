#!/usr/bin/env python3
"""
nvmpy Base Installer Class
Base class for runtime installers
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
import subprocess


class BaseInstaller(ABC):
    """
    Abstract base class for installers that manage runtimes under one root
    """

    def __init__(self, install_root: Path):
        self.install_root = Path(install_root)

    @abstractmethod
    def install(self, version: str):
        """
        Install a version

        Args:
            version: Version to install (e.g., 'v20.14.0')

        Returns:
            The resulting installation
        """
        pass

    @abstractmethod
    def is_installed(self, version: str) -> bool:
        """
        Check if a version is already installed

        Args:
            version: Version to check

        Returns:
            True if a matching installation exists
        """
        pass

    @abstractmethod
    def uninstall(self, version: str, assume_yes: bool = False):
        """
        Uninstall a version

        Args:
            version: Version to remove
            assume_yes: Skip the confirmation prompt
        """
        pass

    def run_command(self, cmd: List[str], check: bool = False,
                    timeout: Optional[float] = None) -> subprocess.CompletedProcess:
        """
        Run a command and return result

        Args:
            cmd: Command and arguments
            check: Whether to raise on error
            timeout: Seconds before the child is killed

        Returns:
            CompletedProcess result with text stdout/stderr
        """
        # Argument lists only: paths under the install root may contain spaces
        return subprocess.run(cmd, capture_output=True, text=True, check=check,
                              shell=False, timeout=timeout)
