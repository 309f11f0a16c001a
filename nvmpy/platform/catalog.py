#!/usr/bin/env python3
"""
nvmpy Release Catalog
Fetches the Node.js release index and filters it for the current platform
"""

from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional

import requests

from nvmpy.errors import CatalogFetchError, NoCompatibleReleaseError, VersionNotFoundError
from nvmpy.platform.detector import PlatformInfo

DEFAULT_DIST_HOST = "nodejs.org"


@dataclass(frozen=True)
class ReleaseDescriptor:
    """One entry of dist/index.json"""
    version: str
    files: FrozenSet[str] = field(default_factory=frozenset)
    date: Optional[str] = None
    lts: Optional[str] = None  # LTS codename, None for current releases
    npm: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'ReleaseDescriptor':
        lts = data.get('lts')
        return cls(
            version=str(data['version']),
            files=frozenset(data.get('files') or ()),
            date=data.get('date'),
            lts=lts if isinstance(lts, str) else None,
            npm=data.get('npm'),
        )

    def supports(self, platform_info: PlatformInfo) -> bool:
        return platform_info.catalog_tag in self.files

    @property
    def is_lts(self) -> bool:
        return self.lts is not None


class ReleaseCatalog:
    """Client for https://{dist_host}/dist"""

    def __init__(self, dist_host: str = DEFAULT_DIST_HOST, timeout: float = 30,
                 session: Optional[requests.Session] = None):
        self.dist_host = dist_host
        self.timeout = timeout
        self.session = session or requests.Session()
        self._releases: Optional[List[ReleaseDescriptor]] = None

    @property
    def base_url(self) -> str:
        return f"https://{self.dist_host}/dist"

    @property
    def index_url(self) -> str:
        return f"{self.base_url}/index.json"

    def fetch(self) -> List[ReleaseDescriptor]:
        """
        Download and parse the release index (once per catalog instance)

        Raises:
            CatalogFetchError: network failure, bad status or malformed JSON
        """
        if self._releases is not None:
            return self._releases

        try:
            response = self.session.get(self.index_url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            raise CatalogFetchError(f"Failed to fetch Node.js versions from {self.index_url}: {e}") from e
        except ValueError as e:
            raise CatalogFetchError(f"Release index at {self.index_url} is not valid JSON: {e}") from e

        if not isinstance(payload, list):
            raise CatalogFetchError(f"Release index at {self.index_url} is not a list")

        try:
            self._releases = [
                ReleaseDescriptor.from_dict(entry)
                for entry in payload
                if isinstance(entry, dict) and entry.get('version')
            ]
        except (KeyError, TypeError) as e:
            raise CatalogFetchError(f"Release index at {self.index_url} has malformed entries: {e}") from e

        return self._releases

    def list_compatible(self, platform_info: PlatformInfo) -> List[ReleaseDescriptor]:
        """
        Releases that publish a build for this platform, newest first

        Raises:
            NoCompatibleReleaseError: nothing in the index matches
        """
        compatible = [release for release in self.fetch() if release.supports(platform_info)]

        if not compatible:
            raise NoCompatibleReleaseError(
                f"No compatible Node.js versions found for {platform_info.os_type.value} "
                f"{platform_info.architecture.value}"
            )

        return compatible

    def find_release(self, version: str, platform_info: PlatformInfo) -> ReleaseDescriptor:
        """
        Look up one version among the compatible releases

        Raises:
            VersionNotFoundError: version is not published for this platform
        """
        for release in self.list_compatible(platform_info):
            if release.version == version:
                return release

        raise VersionNotFoundError(
            f"Node.js {version} is not available for {platform_info.tag}. "
            "Run 'nvmpy available' to see published versions."
        )

    def latest(self, platform_info: PlatformInfo, lts_only: bool = False) -> ReleaseDescriptor:
        """Newest compatible release, optionally restricted to LTS lines"""
        releases = self.list_compatible(platform_info)
        if lts_only:
            releases = [release for release in releases if release.is_lts]
            if not releases:
                raise NoCompatibleReleaseError(f"No LTS Node.js release found for {platform_info.tag}")
        return releases[0]

    def archive_name(self, version: str, platform_info: PlatformInfo) -> str:
        return f"node-{version}-{platform_info.tag}{platform_info.archive_extension}"

    def resolve_download_url(self, version: str, platform_info: PlatformInfo) -> str:
        """
        Build the archive URL for a version (no network access)

        Callers are expected to confirm the version with find_release() first.
        """
        return f"{self.base_url}/{version}/{self.archive_name(version, platform_info)}"
