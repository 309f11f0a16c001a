#!/usr/bin/env python3
"""
nvmpy Version Manager

Validates Node.js version strings and manages the project's pinned
version in node-version.lock.
"""

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, NamedTuple, Optional

import toml
from rich.console import Console

from nvmpy.errors import InvalidVersionFormatError

console = Console()

VERSION_PATTERN = re.compile(r'^v(\d+)\.(\d+)\.(\d+)$')

LOCK_FILE_NAME = "node-version.lock"


class NodeVersion(NamedTuple):
    """Parsed vMAJOR.MINOR.PATCH, ordered numerically"""
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, version: str) -> 'NodeVersion':
        match = VERSION_PATTERN.match(version or '')
        if not match:
            raise InvalidVersionFormatError(version)
        return cls(*(int(part) for part in match.groups()))

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"


def validate_version(version: str) -> str:
    """
    Check a version string before any filesystem or network work.

    Args:
        version: Candidate version (e.g., 'v20.14.0')

    Returns:
        The version, unchanged

    Raises:
        InvalidVersionFormatError: version is not vMAJOR.MINOR.PATCH
    """
    if not isinstance(version, str) or not VERSION_PATTERN.match(version):
        raise InvalidVersionFormatError(str(version))
    return version


def find_lock_file(start_path: Optional[Path] = None) -> Optional[Path]:
    """Walk up from start_path looking for node-version.lock"""
    current = (start_path or Path.cwd()).resolve()

    while True:
        lock_file = current / LOCK_FILE_NAME
        if lock_file.exists():
            return lock_file
        if current == current.parent:
            return None
        current = current.parent


class VersionManager:
    """Manages the pinned Node.js version of a project"""

    def __init__(self, lock_file: Optional[Path] = None):
        """
        Initialize version manager.

        Args:
            lock_file: Path to node-version.lock (default: nearest one above
                the current directory, or ./node-version.lock)
        """
        if lock_file is None:
            lock_file = find_lock_file() or Path.cwd() / LOCK_FILE_NAME

        self.lock_file = lock_file
        self.data = self._load()

    def _load(self) -> Dict:
        """Load lock file contents"""
        if not self.lock_file.exists():
            return {}

        try:
            with open(self.lock_file) as f:
                return toml.load(f)
        except (toml.TomlDecodeError, OSError) as e:
            console.print(f"[yellow]Warning: ignoring unreadable {self.lock_file.name}: {e}[/yellow]")
            return {}

    def get_version(self) -> Optional[str]:
        """
        Get the pinned version.

        Returns:
            Version string or None if nothing valid is pinned
        """
        version = self.data.get('node', {}).get('version')
        if not version:
            return None

        try:
            return validate_version(version)
        except InvalidVersionFormatError:
            console.print(
                f"[yellow]Warning: pinned version '{version}' in {self.lock_file.name} is not vXX.XX.XX[/yellow]"
            )
            return None

    def get_metadata(self) -> Dict:
        """
        Get metadata from lock file.

        Returns:
            Dictionary with generated_at and nvmpy_version
        """
        return self.data.get('metadata', {})

    def is_locked(self) -> bool:
        """Check if a valid version is pinned"""
        return self.get_version() is not None

    def pin(self, version: str) -> Path:
        """
        Pin a version, creating or rewriting the lock file.

        Args:
            version: Version to pin (e.g., 'v20.14.0')

        Returns:
            Path of the written lock file
        """
        from nvmpy import __version__

        validate_version(version)
        self.data = {
            'node': {'version': version},
            'metadata': {
                'generated_at': datetime.now(timezone.utc).isoformat(timespec='seconds'),
                'nvmpy_version': __version__,
            },
        }

        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_file, 'w') as f:
            toml.dump(self.data, f)

        return self.lock_file
