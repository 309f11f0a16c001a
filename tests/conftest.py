"""
Shared fixtures for nvmpy tests

Network access is replaced by an in-memory session, and the platform is
pinned to linux-x64 so results do not depend on the host machine.
"""
import io
import tarfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest
import requests
from rich.console import Console

from nvmpy.platform.detector import Architecture, OSType, PlatformInfo

INDEX_URL = "https://nodejs.org/dist/index.json"

RELEASE_INDEX = [
    {
        "version": "v21.0.0",
        "date": "2023-10-17",
        "files": ["linux-x64", "osx-arm64-tar"],
        "npm": "10.2.0",
        "lts": False,
    },
    {
        "version": "v20.14.0",
        "date": "2024-05-28",
        "files": ["linux-x64", "osx-x64-tar", "win-x64-zip", "win-x86-zip"],
        "npm": "10.7.0",
        "lts": "Iron",
    },
    {
        "version": "v18.17.0",
        "date": "2023-07-18",
        "files": ["linux-x64", "win-x64-zip"],
        "npm": "9.6.7",
        "lts": "Hydrogen",
    },
    {
        "version": "v0.1.14",
        "date": "2011-08-26",
        "files": ["src"],
        "npm": None,
        "lts": False,
    },
]


class FakeResponse:
    """Just enough of requests.Response for the catalog and downloader"""

    def __init__(self, status_code: int = 200, payload=None, body: bytes = b""):
        self.status_code = status_code
        self.payload = payload
        self.body = body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Client Error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload

    def iter_content(self, chunk_size: int = 1):
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]


class FakeSession:
    """Serves canned responses by URL and records every request"""

    def __init__(self, routes: Optional[Dict[str, object]] = None):
        self.routes = dict(routes or {})
        self.requests: List[str] = []

    def get(self, url, **kwargs):
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return FakeResponse(status_code=404)
        if isinstance(route, Exception):
            raise route
        return route


def build_tarball(path: Path, root: str, files: Dict[str, bytes], mode: str = "w:xz") -> Path:
    """Write a tar archive with every file nested under one top-level directory"""
    with tarfile.open(path, mode) as archive:
        top = tarfile.TarInfo(root)
        top.type = tarfile.DIRTYPE
        top.mode = 0o755
        archive.addfile(top)
        for name, data in files.items():
            info = tarfile.TarInfo(f"{root}/{name}")
            info.size = len(data)
            info.mode = 0o644
            archive.addfile(info, io.BytesIO(data))
    return path


def node_dist_files(extra: Iterable[str] = ()) -> Dict[str, bytes]:
    """Minimal linux Node.js distribution layout"""
    files = {
        "bin/node": b"#!/bin/sh\necho v20.14.0\n",
        "lib/node_modules/npm/bin/npm-cli.js": b"console.log('10.7.0')\n",
        "lib/node_modules/npm/bin/npx-cli.js": b"console.log('10.7.0')\n",
    }
    for name in extra:
        files[name] = b""
    return files


def make_installation(root: Path, name: str, binary: str = "bin/node") -> Path:
    """Create an installation directory containing just the node binary"""
    directory = root / name
    node = directory / binary
    node.parent.mkdir(parents=True, exist_ok=True)
    node.write_text("node")
    return directory


@pytest.fixture
def linux_x64():
    return PlatformInfo(os_type=OSType.LINUX, architecture=Architecture.X64, machine="x86_64")


@pytest.fixture
def quiet_console():
    return Console(quiet=True)


@pytest.fixture
def index_session():
    """Session that only knows the release index"""
    return FakeSession({INDEX_URL: FakeResponse(payload=RELEASE_INDEX)})
