#!/usr/bin/env python3
"""
nvmpy Node.js Installer
Downloads, extracts, fixes permissions on and verifies Node.js distributions
under a single install root
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests
from rich.console import Console

from nvmpy.errors import (
    BinaryNotFoundError,
    DownloadError,
    ExtractionError,
    VerificationError,
)
from nvmpy.platform.archive import ArchiveFile
from nvmpy.platform.catalog import DEFAULT_DIST_HOST, ReleaseCatalog
from nvmpy.platform.detector import PlatformInfo, get_platform_info
from nvmpy.platform.install_registry import (
    Installation,
    build_installation,
    match_installations,
    scan_installations,
)
from nvmpy.platform.installers.base import BaseInstaller
from nvmpy.platform.version_manager import validate_version

CHUNK_SIZE = 8192
EXECUTABLE_MODE = 0o755
DEFAULT_DOWNLOAD_TIMEOUT = 300
VERIFY_TIMEOUT = 60


class NodeInstaller(BaseInstaller):
    """Installs Node.js releases as self-contained directories"""

    def __init__(self, install_root: Path, platform_info: Optional[PlatformInfo] = None,
                 catalog: Optional[ReleaseCatalog] = None,
                 session: Optional[requests.Session] = None,
                 dist_host: str = DEFAULT_DIST_HOST,
                 download_timeout: float = DEFAULT_DOWNLOAD_TIMEOUT,
                 console: Optional[Console] = None):
        super().__init__(install_root)
        self._platform_info = platform_info
        if session is None:
            session = catalog.session if catalog is not None else requests.Session()
        self.session = session
        self.catalog = catalog or ReleaseCatalog(dist_host=dist_host, session=session)
        self.download_timeout = download_timeout
        self.console = console or Console()

    @property
    def platform_info(self) -> PlatformInfo:
        """Resolved lazily so version validation never touches the host"""
        if self._platform_info is None:
            self._platform_info = get_platform_info()
        return self._platform_info

    def paths_for(self, version: str) -> Tuple[Path, Path]:
        """
        Deterministic locations for a version

        Returns:
            (extract_dir, archive_file), e.g.
            bin/node-v20.14.0-linux-x64 and bin/node-v20.14.0-linux-x64.tar.xz
        """
        name = f"node-{version}-{self.platform_info.tag}"
        extract_dir = self.install_root / name
        archive_file = self.install_root / f"{name}{self.platform_info.archive_extension}"
        return extract_dir, archive_file

    def install(self, version: str) -> Installation:
        """
        Install a Node.js version (idempotent)

        Args:
            version: Version to install (e.g., 'v20.14.0')

        Returns:
            The verified installation
        """
        validate_version(version)
        extract_dir, archive_file = self.paths_for(version)

        self.install_root.mkdir(parents=True, exist_ok=True)

        if archive_file.exists():
            self.console.print(f"[dim]Archive {archive_file.name} already present, skipping download[/dim]")
        else:
            self.download(version, archive_file)

        self.extract(archive_file, extract_dir)
        self.check_and_set_permissions(extract_dir)
        self.verify(extract_dir)

        installation = build_installation(extract_dir, self.platform_info)
        if installation is None:
            raise BinaryNotFoundError(extract_dir / self.platform_info.node_binary)
        return installation

    def download(self, version: str, archive_file: Path) -> Path:
        """
        Stream the release archive to disk

        The body is written to '<archive>.part' and renamed once complete, so
        an interrupted download never looks like a finished archive.

        Raises:
            VersionNotFoundError: version is not in the catalog
            DownloadError: HTTP error status or transport failure
        """
        release = self.catalog.find_release(version, self.platform_info)
        url = self.catalog.resolve_download_url(release.version, self.platform_info)
        partial = archive_file.with_name(archive_file.name + '.part')

        self.console.print(f"[cyan]Downloading {url}[/cyan]")

        try:
            with self.session.get(url, stream=True, timeout=self.download_timeout) as response:
                response.raise_for_status()
                with open(partial, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            partial.replace(archive_file)
        except requests.exceptions.RequestException as e:
            self._discard(partial)
            raise DownloadError(f"Failed to download {url}: {e}", url=url) from e
        except OSError as e:
            self._discard(partial)
            raise DownloadError(f"Failed to save {url} to {archive_file}: {e}", url=url) from e

        return archive_file

    def extract(self, archive_file: Path, extract_dir: Path) -> bool:
        """
        Extract unless extract_dir already has content

        Returns:
            True if the archive was extracted, False if skipped
        """
        if extract_dir.is_dir() and any(extract_dir.iterdir()):
            self.console.print("[dim]Directory already exists and is not empty. Skipping extraction.[/dim]")
            return False

        archive = ArchiveFile.from_path(archive_file)
        self.console.print(f"[cyan]Extracting {archive_file.name}...[/cyan]")

        try:
            archive.extract(extract_dir)
        except ExtractionError:
            # a half-populated directory would pass the emptiness check next time
            if extract_dir.exists():
                from nvmpy.platform.uninstaller import remove_tree
                remove_tree(extract_dir, console=self.console)
            raise

        return True

    def required_files(self, extract_dir: Path) -> List[Tuple[str, Path]]:
        """(description, path) for node and the npm/npx entry points"""
        return [
            ("Node binary", extract_dir / self.platform_info.node_binary),
            ("npm-cli file", extract_dir / self.platform_info.npm_cli),
            ("npx-cli file", extract_dir / self.platform_info.npx_cli),
        ]

    def check_and_set_permissions(self, extract_dir: Path) -> None:
        """
        Make node, npm-cli.js and npx-cli.js executable (0755)

        Raises:
            BinaryNotFoundError: naming the first missing file
        """
        required = self.required_files(extract_dir)

        for description, path in required:
            if not path.exists():
                raise BinaryNotFoundError(path, what=description)

        for _, path in required:
            path.chmod(EXECUTABLE_MODE)

    def verify(self, extract_dir: Path) -> Dict[str, str]:
        """
        Run node -v, npm -v and npx -v through the installed binary

        Returns:
            {'Node.js': 'v20.14.0', 'NPM': '10.7.0', 'NPX': '10.7.0'}

        Raises:
            VerificationError: a check exited non-zero or could not start
        """
        node = str(extract_dir / self.platform_info.node_binary)
        checks = [
            ("Node.js", [node, '-v']),
            ("NPM", [node, str(extract_dir / self.platform_info.npm_cli), '-v']),
            ("NPX", [node, str(extract_dir / self.platform_info.npx_cli), '-v']),
        ]

        versions = {}
        for tool, cmd in checks:
            try:
                result = self.run_command(cmd, timeout=VERIFY_TIMEOUT)
            except (OSError, subprocess.SubprocessError) as e:
                raise VerificationError(tool, str(e)) from e

            if result.returncode != 0:
                output = "\n".join(part for part in (result.stdout, result.stderr) if part)
                raise VerificationError(tool, output, result.returncode)

            versions[tool] = (result.stdout or '').strip()
            self.console.print(f"[green]✓[/green] {tool} version: {versions[tool]}")

        return versions

    def list_installed(self) -> List[Installation]:
        """Installations currently under the install root"""
        return scan_installations(self.install_root, self.platform_info)

    def find_installations(self, version: str) -> List[Installation]:
        """Every installation matching a version query, exact matches first"""
        return match_installations(self.list_installed(), version, self.platform_info)

    def is_installed(self, version: str) -> bool:
        return bool(self.find_installations(version))

    def uninstall(self, version: str, assume_yes: bool = False) -> Optional[Installation]:
        """Remove one installation (see Uninstaller.uninstall)"""
        from nvmpy.platform.uninstaller import Uninstaller
        return Uninstaller(self, console=self.console).uninstall(version, assume_yes=assume_yes)

    def _discard(self, path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self.console.print(f"[yellow]Warning: could not remove partial download {path}: {e}[/yellow]")
