#!/usr/bin/env python3
"""
nvmpy Install Registry
Derives the installed Node.js runtimes from the install root on every call.
There is no manifest: the directory listing is the source of truth.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from nvmpy.platform.archive import archive_kind_for
from nvmpy.platform.detector import PlatformInfo
from nvmpy.platform.version_manager import NodeVersion

INSTALL_DIR_PATTERN = re.compile(r'^node-(v\d+\.\d+\.\d+)(.*)$')


@dataclass(frozen=True)
class Installation:
    """A Node.js runtime found under the install root"""
    version: str      # 'v20.14.0'
    name: str         # 'node-v20.14.0-linux-x64'
    path: Path
    node_binary: Path
    bin_dir: Path

    @property
    def label(self) -> str:
        """Recorded version string: the directory name without 'node-'"""
        return self.name[len('node-'):]

    @property
    def sort_key(self) -> NodeVersion:
        return NodeVersion.parse(self.version)

    def to_dict(self) -> dict:
        return {
            'version': self.version,
            'name': self.name,
            'path': str(self.path),
            'node_binary': str(self.node_binary),
        }


def build_installation(directory: Path, platform_info: PlatformInfo) -> Optional[Installation]:
    """Installation for a directory, or None if it is not a usable runtime"""
    match = INSTALL_DIR_PATTERN.match(directory.name)
    if not match or not directory.is_dir():
        return None

    node_binary = directory / platform_info.node_binary
    if not node_binary.exists():
        return None

    return Installation(
        version=match.group(1),
        name=directory.name,
        path=directory,
        node_binary=node_binary,
        bin_dir=directory / platform_info.bin_dir,
    )


def scan_installations(install_root: Path, platform_info: PlatformInfo) -> List[Installation]:
    """
    List runtimes under install_root, sorted by directory name

    A missing root simply means nothing is installed.
    """
    if not install_root.is_dir():
        return []

    installations = []
    for child in sorted(install_root.iterdir(), key=lambda p: p.name):
        installation = build_installation(child, platform_info)
        if installation is not None:
            installations.append(installation)

    return installations


def find_archives(install_root: Path) -> List[Path]:
    """Archive files (.zip, .tar.gz, .tar.xz) left in the install root"""
    if not install_root.is_dir():
        return []
    return sorted(
        child for child in install_root.iterdir()
        if child.is_file() and archive_kind_for(child) is not None
    )


def is_exact_match(installation: Installation, query: str, platform_info: PlatformInfo) -> bool:
    return installation.label in (query, f"{query}-{platform_info.tag}")


def matches_query(installation: Installation, query: str, platform_info: PlatformInfo) -> bool:
    """
    Permissive match used by is_installed and uninstall.

    True when the recorded version equals the query, equals the query plus
    the platform suffix, or starts with the query (so 'v20' matches
    'v20.14.0-linux-x64').
    """
    if not query:
        return False
    return is_exact_match(installation, query, platform_info) or installation.label.startswith(query)


def match_installations(installations: Iterable[Installation], query: str,
                        platform_info: PlatformInfo) -> List[Installation]:
    """All matches for query, exact matches first, then in scan order"""
    matched = [inst for inst in installations if matches_query(inst, query, platform_info)]
    return sorted(matched, key=lambda inst: not is_exact_match(inst, query, platform_info))
