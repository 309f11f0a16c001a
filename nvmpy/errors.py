#!/usr/bin/env python3
"""
nvmpy Errors
Exception hierarchy shared by the installer, catalog client and CLI
"""

from pathlib import Path
from typing import List, Optional


class NvmpyError(Exception):
    """Base class for every error raised by nvmpy"""


class InvalidVersionFormatError(NvmpyError):
    """Version string does not look like vMAJOR.MINOR.PATCH"""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Invalid version format: '{version}'. Expected format: vXX.XX.XX")


class UnsupportedPlatformError(NvmpyError):
    """Operating system family is not Windows, macOS or Linux"""


class CatalogFetchError(NvmpyError):
    """Release index could not be downloaded or parsed"""


class NoCompatibleReleaseError(NvmpyError):
    """Release index has no entry for the current platform"""


class VersionNotFoundError(NvmpyError):
    """Requested version is not published for the current platform"""


class DownloadError(NvmpyError):
    """Archive download failed"""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class ExtractionError(NvmpyError):
    """Archive could not be extracted"""

    def __init__(self, message: str, archive: Optional[Path] = None):
        self.archive = archive
        super().__init__(message)


class BinaryNotFoundError(NvmpyError):
    """Expected runtime file is missing after extraction"""

    def __init__(self, path: Path, what: str = "Node binary"):
        self.path = path
        super().__init__(f"{what} not found at {path}")


class VerificationError(NvmpyError):
    """Installed runtime failed its version check"""

    def __init__(self, tool: str, output: str, returncode: Optional[int] = None):
        self.tool = tool
        self.output = output
        self.returncode = returncode
        message = f"Failed to execute {tool}. Please check the installation."
        if output:
            message += f"\n{output.strip()}"
        super().__init__(message)


class NotInstalledError(NvmpyError):
    """No installation matches the requested version"""


class AmbiguousVersionError(NotInstalledError):
    """Version query matches more than one installation"""

    def __init__(self, query: str, candidates: List[str]):
        self.query = query
        self.candidates = candidates
        super().__init__(
            f"'{query}' matches several installations: {', '.join(candidates)}. "
            "Use a more specific version."
        )


class DirectoryRemovalError(NvmpyError):
    """A single filesystem entry resisted removal (reported, never raised by uninstall)"""

    def __init__(self, path: Path, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"Could not remove {path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class TerminalNotFoundError(NvmpyError):
    """No supported terminal emulator is available"""
