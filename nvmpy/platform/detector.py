#!/usr/bin/env python3
"""
nvmpy Platform Detection
Detects operating system family, CPU architecture and the matching
Node.js distribution layout
"""

import os
import platform
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Dict, Mapping, Optional

from nvmpy.errors import UnsupportedPlatformError


class OSType(Enum):
    """Operating system families with official Node.js builds"""
    WINDOWS = "windows"
    DARWIN = "darwin"
    LINUX = "linux"


class Architecture(Enum):
    """CPU architectures nvmpy installs for"""
    X64 = "x64"
    X86 = "x86"


# Name used inside distribution file names (node-v20.14.0-win-x64.zip)
DIST_OS_NAMES = {
    OSType.WINDOWS: "win",
    OSType.DARWIN: "darwin",
    OSType.LINUX: "linux",
}

ARCHIVE_EXTENSIONS = {
    OSType.WINDOWS: ".zip",
    OSType.DARWIN: ".tar.gz",
    OSType.LINUX: ".tar.xz",
}


@dataclass(frozen=True)
class PlatformInfo:
    """Resolved platform plus the distribution constants derived from it"""
    os_type: OSType
    architecture: Architecture
    machine: str = ""

    @property
    def dist_os(self) -> str:
        return DIST_OS_NAMES[self.os_type]

    @property
    def tag(self) -> str:
        """Platform suffix used in archive and directory names, e.g. 'linux-x64'"""
        return f"{self.dist_os}-{self.architecture.value}"

    @property
    def catalog_tag(self) -> str:
        """
        Entry looked up in a release's ``files`` list.

        The index publishes Windows builds per package format and macOS
        builds under the legacy ``osx`` name, so only Linux uses the bare tag.
        """
        arch = self.architecture.value
        if self.os_type == OSType.WINDOWS:
            return f"win-{arch}-zip"
        if self.os_type == OSType.DARWIN:
            return f"osx-{arch}-tar"
        return self.tag

    @property
    def archive_extension(self) -> str:
        return ARCHIVE_EXTENSIONS[self.os_type]

    @property
    def node_binary(self) -> PurePosixPath:
        """Node executable relative to an installation root"""
        if self.os_type == OSType.WINDOWS:
            return PurePosixPath("node.exe")
        return PurePosixPath("bin", "node")

    @property
    def bin_dir(self) -> PurePosixPath:
        """Directory to prepend to PATH, relative to an installation root"""
        return self.node_binary.parent

    @property
    def npm_package_dir(self) -> PurePosixPath:
        # Windows zips ship node_modules at the top level
        if self.os_type == OSType.WINDOWS:
            return PurePosixPath("node_modules", "npm")
        return PurePosixPath("lib", "node_modules", "npm")

    @property
    def npm_cli(self) -> PurePosixPath:
        return self.npm_package_dir / "bin" / "npm-cli.js"

    @property
    def npx_cli(self) -> PurePosixPath:
        return self.npm_package_dir / "bin" / "npx-cli.js"

    def to_dict(self) -> Dict:
        """Convert to dictionary for display"""
        return {
            'os_type': self.os_type.value,
            'architecture': self.architecture.value,
            'machine': self.machine,
            'tag': self.tag,
            'catalog_tag': self.catalog_tag,
            'archive_extension': self.archive_extension,
            'node_binary': str(self.node_binary),
        }


class PlatformDetector:
    """
    Detect OS family and architecture.

    Every probe is injectable so tests do not depend on the host machine.
    """

    def __init__(self, system: Optional[str] = None, machine: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 pointer_size: Optional[int] = None):
        self.system = system if system is not None else platform.system()
        self.machine = machine if machine is not None else platform.machine()
        self.environ = environ if environ is not None else os.environ
        self.pointer_size = pointer_size if pointer_size is not None else struct.calcsize("P")
        self.info: Optional[PlatformInfo] = None

    def detect(self) -> PlatformInfo:
        """
        Resolve the current platform

        Returns:
            PlatformInfo for this machine

        Raises:
            UnsupportedPlatformError: OS family is not Windows, Darwin or Linux
        """
        os_type = self._detect_os()
        architecture = Architecture.X64 if self._is_64bit(os_type) else Architecture.X86

        self.info = PlatformInfo(
            os_type=os_type,
            architecture=architecture,
            machine=self.machine,
        )
        return self.info

    def _detect_os(self) -> OSType:
        """Map platform.system() onto a supported OS family"""
        system = (self.system or '').lower()

        if system == 'linux':
            return OSType.LINUX
        elif system == 'darwin':
            return OSType.DARWIN
        elif system == 'windows':
            return OSType.WINDOWS

        raise UnsupportedPlatformError(f"Unsupported operating system: {self.system or 'unknown'}")

    def _is_64bit(self, os_type: OSType) -> bool:
        """
        Best-effort 64-bit check.

        A 64-bit interpreter settles it. Otherwise Windows reports the real
        CPU through PROCESSOR_ARCHITECTURE / PROCESSOR_ARCHITEW6432 (the
        latter is set for 32-bit processes on 64-bit Windows), and other
        systems are judged by the machine string.
        """
        if self.pointer_size == 8:
            return True

        machine = (self.machine or '').lower()

        if os_type == OSType.WINDOWS:
            return (
                '64' in machine
                or self.environ.get('PROCESSOR_ARCHITECTURE', '').upper() == 'AMD64'
                or self.environ.get('PROCESSOR_ARCHITEW6432', '').upper() == 'AMD64'
            )

        return machine in ('x86_64', 'amd64')


# Global detector instance
_detector: Optional[PlatformDetector] = None


def get_platform_info() -> PlatformInfo:
    """Get cached platform information"""
    global _detector
    if _detector is None or _detector.info is None:
        _detector = PlatformDetector()
        _detector.detect()
    return _detector.info


def detect_platform() -> PlatformInfo:
    """Force fresh platform detection"""
    global _detector
    _detector = PlatformDetector()
    return _detector.detect()
