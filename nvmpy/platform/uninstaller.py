#!/usr/bin/env python3
"""
nvmpy Uninstaller
Removes installed Node.js runtimes and leftover archives from the install root
"""

import os
import shutil
import stat
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, TextIO

from rich.console import Console
from rich.prompt import Prompt

from nvmpy.errors import AmbiguousVersionError, DirectoryRemovalError, NotInstalledError
from nvmpy.platform.install_registry import Installation, find_archives, is_exact_match

CONFIRM_ANSWERS = ('y', 'yes')


def ask_confirmation(prompt: str, console: Optional[Console] = None,
                     stream: Optional[TextIO] = None) -> bool:
    """
    Ask a yes/no question. Only 'y' or 'yes' (any case) confirms; anything
    else, including end of input, cancels.

    Args:
        prompt: Question to show
        console: Rich console to prompt on
        stream: Read the answer from here instead of stdin
    """
    try:
        answer = Prompt.ask(f"{prompt} [y/N]", console=console, default="",
                            show_default=False, stream=stream)
    except EOFError:
        return False
    return (answer or '').strip().lower() in CONFIRM_ANSWERS


def relax_permissions(path: Path) -> None:
    """Give the owner full access to path and write access to its parent"""
    parent = path.parent
    try:
        parent.chmod(parent.stat().st_mode | stat.S_IRWXU)
    except OSError:
        pass
    mode = stat.S_IRWXU if path.is_dir() and not path.is_symlink() else stat.S_IRUSR | stat.S_IWUSR
    if not path.is_symlink():
        os.chmod(path, mode)


class _Remover:
    """Child-first removal that relaxes permissions and retries once per entry"""

    def __init__(self, console: Console):
        self.console = console
        self._failures: Dict[Path, DirectoryRemovalError] = {}

    @property
    def failures(self) -> List[DirectoryRemovalError]:
        """One failure per path that resisted removal"""
        return list(self._failures.values())

    def record(self, path: Path, reason: str) -> None:
        # a directory left behind only because a descendant failed is not reported again
        if any(path in failed.parents for failed in self._failures):
            return
        failure = DirectoryRemovalError(path, reason)
        if path not in self._failures:
            self.console.print(f"[yellow]Warning: {failure}[/yellow]")
        self._failures[path] = failure

    def remove_entry(self, path: Path, remove: Callable[[Path], None]) -> bool:
        try:
            remove(path)
            return True
        except FileNotFoundError:
            return True
        except OSError:
            pass

        try:
            relax_permissions(path)
            remove(path)
            return True
        except FileNotFoundError:
            return True
        except OSError as e:
            self.record(path, str(e))
            return False

    def remove_tree(self, root: Path) -> None:
        for current, dirnames, filenames in os.walk(root, topdown=False):
            current_path = Path(current)
            for name in filenames:
                self.remove_entry(current_path / name, _unlink)
            for name in dirnames:
                child = current_path / name
                # symlinked directories are listed but never descended into
                self.remove_entry(child, _unlink if child.is_symlink() else _rmdir)

        try:
            root.rmdir()
            return
        except FileNotFoundError:
            return
        except OSError:
            pass

        if sys.version_info >= (3, 12):
            shutil.rmtree(root, onexc=self._force_remove)
        else:
            shutil.rmtree(root, onerror=self._force_remove)
        if root.exists():
            self.record(root, "directory still present after forced removal")

    def _force_remove(self, func, path, exc_info) -> None:
        """shutil.rmtree onerror hook: relax permissions, retry, then report"""
        entry = Path(path)
        if func not in (os.unlink, os.remove, os.rmdir):
            # scandir/open/lstat failures have nothing to retry
            self.record(entry, str(exc_info[1] if isinstance(exc_info, tuple) else exc_info))
            return
        try:
            relax_permissions(entry)
            func(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self.record(entry, str(e))

def _unlink(path: Path) -> None:
    os.unlink(path)


def _rmdir(path: Path) -> None:
    os.rmdir(path)


def remove_tree(root: Path, console: Optional[Console] = None) -> List[DirectoryRemovalError]:
    """
    Recursively delete root, tolerating entries that resist removal

    Returns:
        Soft failures; empty when everything was removed
    """
    remover = _Remover(console or Console())
    if root.is_symlink() or root.is_file():
        remover.remove_entry(root, _unlink)
    elif root.exists():
        remover.remove_tree(root)
    return remover.failures


def remove_file(path: Path, console: Optional[Console] = None) -> List[DirectoryRemovalError]:
    """Delete one file with the same relax-and-retry policy"""
    remover = _Remover(console or Console())
    remover.remove_entry(path, _unlink)
    return remover.failures


@dataclass
class UninstallReport:
    """Outcome of uninstall_all"""
    removed: List[Installation] = field(default_factory=list)
    kept: List[Installation] = field(default_factory=list)
    archives_removed: List[Path] = field(default_factory=list)
    failures: List[DirectoryRemovalError] = field(default_factory=list)
    cancelled: bool = False


class Uninstaller:
    """Removes installations reported by a NodeInstaller"""

    def __init__(self, installer, confirm: Optional[Callable[[str], bool]] = None,
                 console: Optional[Console] = None):
        """
        Args:
            installer: NodeInstaller whose install root is managed
            confirm: Question -> bool callback (default: ask_confirmation)
            console: Rich console for progress and warnings
        """
        self.installer = installer
        self.console = console or Console()
        self.confirm = confirm or (lambda question: ask_confirmation(question, console=self.console))

    def resolve(self, version: str) -> Installation:
        """
        Pick the installation a version query refers to

        Raises:
            NotInstalledError: nothing matches
            AmbiguousVersionError: several prefix matches and no exact one
        """
        platform_info = self.installer.platform_info
        matches = self.installer.find_installations(version)

        if not matches:
            raise NotInstalledError(f"Node.js {version} is not installed")

        if is_exact_match(matches[0], version, platform_info) or len(matches) == 1:
            return matches[0]

        raise AmbiguousVersionError(version, [inst.version for inst in matches])

    def uninstall(self, version: str, assume_yes: bool = False) -> Optional[Installation]:
        """
        Remove one installation

        Returns:
            The removed installation, or None if the user cancelled. Entries
            that resisted removal are reported as warnings and may leave
            the directory in place.
        """
        target = self.resolve(version)

        if not assume_yes and not self.confirm(f"Remove Node.js {target.version} at {target.path}?"):
            self.console.print("[dim]Uninstall cancelled.[/dim]")
            return None

        self.console.print(f"[cyan]Removing {target.name}...[/cyan]")
        remove_tree(target.path, console=self.console)
        return target

    def uninstall_all(self, assume_yes: bool = False) -> UninstallReport:
        """Remove every installation, then any archives left in the install root"""
        report = UninstallReport()
        installations = self.installer.list_installed()
        archives = find_archives(self.installer.install_root)

        if not installations and not archives:
            return report

        if not assume_yes and not self.confirm(
            f"Remove {len(installations)} Node.js installation(s) and {len(archives)} archive(s) "
            f"from {self.installer.install_root}?"
        ):
            self.console.print("[dim]Uninstall cancelled.[/dim]")
            report.cancelled = True
            return report

        for installation in installations:
            self.console.print(f"[cyan]Removing {installation.name}...[/cyan]")
            report.failures.extend(remove_tree(installation.path, console=self.console))
            if installation.path.exists():
                report.kept.append(installation)
            else:
                report.removed.append(installation)

        for archive in archives:
            failures = remove_file(archive, console=self.console)
            report.failures.extend(failures)
            if not failures:
                report.archives_removed.append(archive)

        return report
