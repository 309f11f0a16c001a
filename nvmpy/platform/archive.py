#!/usr/bin/env python3
"""
nvmpy Archive Extraction
Unpacks Node.js distribution archives with their top-level directory stripped
"""

import tarfile
import zipfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

from nvmpy.errors import ExtractionError


class ArchiveKind(Enum):
    """Compression formats used by the Node.js distribution"""
    ZIP = ".zip"
    TAR_GZ = ".tar.gz"
    TAR_XZ = ".tar.xz"

    @property
    def tar_mode(self) -> Optional[str]:
        return {ArchiveKind.TAR_GZ: "r:gz", ArchiveKind.TAR_XZ: "r:xz"}.get(self)


ARCHIVE_EXTENSIONS = tuple(kind.value for kind in ArchiveKind)


def archive_kind_for(path: Path) -> Optional[ArchiveKind]:
    """Infer the archive kind from a file name, None if unrecognised"""
    name = path.name.lower()
    for kind in ArchiveKind:
        if name.endswith(kind.value):
            return kind
    return None


def _strip_first_component(name: str) -> Optional[str]:
    """'node-v20/bin/node' -> 'bin/node'; the top-level entry itself -> None"""
    parts = PurePosixPath(name.replace('\\', '/')).parts
    if len(parts) <= 1:
        return None
    return str(PurePosixPath(*parts[1:]))


@dataclass(frozen=True)
class ArchiveFile:
    """A downloaded distribution archive"""
    path: Path
    kind: ArchiveKind

    @classmethod
    def from_path(cls, path: Path) -> 'ArchiveFile':
        kind = archive_kind_for(path)
        if kind is None:
            raise ExtractionError(f"Unsupported file type: {path}", archive=path)
        return cls(path=path, kind=kind)

    def extract(self, destination: Path) -> None:
        """
        Extract into destination, dropping the archive's top-level directory

        Raises:
            ExtractionError: archive is missing, corrupt or unreadable
        """
        if not self.path.exists():
            raise ExtractionError(f"Archive not found: {self.path}", archive=self.path)

        destination.mkdir(parents=True, exist_ok=True)

        if self.kind == ArchiveKind.ZIP:
            self._extract_zip(destination)
        else:
            self._extract_tar(destination)

    def _extract_zip(self, destination: Path) -> None:
        try:
            with zipfile.ZipFile(self.path) as archive:
                members = archive.infolist()
                strip = _single_root(info.filename for info in members)
                for info in members:
                    if strip:
                        stripped = _strip_first_component(info.filename)
                        if stripped is None:
                            continue
                        # ZipInfo.filename drives the output path
                        info.filename = stripped + ('/' if info.is_dir() else '')
                    archive.extract(info, destination)
        except (zipfile.BadZipFile, OSError, RuntimeError) as e:
            raise ExtractionError(f"Failed to unzip {self.path}: {e}", archive=self.path) from e

    def _extract_tar(self, destination: Path) -> None:
        # Extraction filters exist on 3.12+ and recent security releases
        extract_kwargs = {'filter': 'data'} if hasattr(tarfile, 'data_filter') else {}

        try:
            with tarfile.open(self.path, self.kind.tar_mode) as archive:
                members = list(_stripped_tar_members(archive))
                archive.extractall(destination, members=members, **extract_kwargs)
        except (tarfile.TarError, OSError, EOFError) as e:
            raise ExtractionError(f"Failed to extract {self.path}: {e}", archive=self.path) from e



def _single_root(names: Iterator[str]) -> bool:
    """True when every member lives under one shared top-level directory"""
    roots = set()
    for name in names:
        parts = PurePosixPath(name.replace('\\', '/')).parts
        if not parts:
            continue
        if len(parts) == 1 and not name.endswith('/'):
            # a file at the top level
            return False
        roots.add(parts[0])
    return len(roots) == 1


def _stripped_tar_members(archive: tarfile.TarFile) -> Iterator[tarfile.TarInfo]:
    """Equivalent of tar --strip-components=1"""
    for member in archive.getmembers():
        stripped = _strip_first_component(member.name)
        if stripped is None:
            continue
        member.name = stripped
        if member.islnk():
            # hard links point at archive paths, which moved too
            member.linkname = _strip_first_component(member.linkname) or member.linkname
        yield member
