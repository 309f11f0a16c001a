#!/usr/bin/env python3
"""
nvmpy CLI - Command-line interface
Click-based CLI for installing and running project-local Node.js runtimes
"""

import json
import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from nvmpy import __version__
from nvmpy.config import ConfigManager, NvmpyConfig
from nvmpy.errors import InvalidVersionFormatError, NvmpyError
from nvmpy.executor import build_path_env, detect_execution_environment, is_headless
from nvmpy.platform.catalog import ReleaseCatalog
from nvmpy.platform.detector import OSType, get_platform_info
from nvmpy.platform.install_registry import Installation
from nvmpy.platform.installers.node import NodeInstaller
from nvmpy.platform.uninstaller import Uninstaller
from nvmpy.platform.version_manager import LOCK_FILE_NAME, VersionManager, find_lock_file, validate_version

# Force UTF-8 encoding for stdout/stderr on Windows to handle status symbols
if sys.platform == 'win32':
    import io
    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding='utf-8', errors='replace')
    if isinstance(sys.stderr, io.TextIOWrapper):
        sys.stderr.reconfigure(encoding='utf-8', errors='replace')

console = Console()

EXAMPLE_VERSION = "v20.14.0"


def _load_settings() -> Tuple[NvmpyConfig, Optional[Path], Path]:
    """Config, config file path (if any) and absolute install root"""
    config_path = ConfigManager.find_config()
    config = ConfigManager.load_config(config_path)
    install_root = ConfigManager.resolve_install_root(config, config_path)
    return config, config_path, install_root


def _make_installer(config: NvmpyConfig, install_root: Path) -> NodeInstaller:
    catalog = ReleaseCatalog(dist_host=config.dist_host, timeout=config.catalog_timeout)
    return NodeInstaller(
        install_root,
        catalog=catalog,
        download_timeout=config.download_timeout,
        console=console,
    )


def _fail(message: str, hint: Optional[str] = None):
    console.print(f"[red]❌ {message}[/red]")
    if hint:
        console.print(f"[dim]💡 {hint}[/dim]")
    sys.exit(1)


def _print_installations(installations: List[Installation], pinned: Optional[str] = None):
    """Render installations as a table"""
    if not installations:
        console.print("[yellow]No Node.js installations found[/yellow]")
        console.print(f"[dim]💡 Use 'nvmpy install {EXAMPLE_VERSION}' to install Node.js first[/dim]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Version", style="green")
    table.add_column("Directory", style="magenta")
    table.add_column("Pinned", justify="center")

    for installation in installations:
        table.add_row(
            installation.version,
            installation.name,
            "✓" if pinned == installation.version else "",
        )

    console.print(table)


def _select_installation(installer: NodeInstaller, use_version: Optional[str]) -> Installation:
    """
    Installation for run/shell: --use, then the pinned version, then the
    newest installed version
    """
    installations = installer.list_installed()
    if not installations:
        _fail("No Node.js installations found.",
              f"Use 'nvmpy install {EXAMPLE_VERSION}' to install Node.js first.")

    query = use_version
    if not query:
        query = VersionManager().get_version()
        if query and not installer.is_installed(query):
            _fail(f"Pinned version {query} is not installed.", f"Run 'nvmpy install {query}'.")

    if query:
        matches = installer.find_installations(query)
        if not matches:
            _fail(f"Node.js {query} is not installed.", "Run 'nvmpy list' to see installed versions.")
        return matches[0]

    return max(installations, key=lambda inst: inst.sort_key)


def print_banner():
    """Print nvmpy banner"""
    console.print(f"[bold magenta]🚀 nvmpy v{__version__} - Node.js Version Installer[/bold magenta]")
    console.print("[magenta]" + "=" * 44 + "[/magenta]")


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version and exit')
@click.pass_context
def main(ctx, version):
    """
    nvmpy - Node.js Version Installer

    Installs isolated Node.js runtimes next to your project and runs
    commands with them.

    Examples:
        nvmpy install v20.14.0        # Install a version
        nvmpy list                    # Show installed versions
        nvmpy run "npm --version"     # Run with the runtime on PATH
        nvmpy uninstall v20.14.0      # Remove a version
    """
    if version:
        click.echo(f"nvmpy v{__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@main.command()
@click.argument('version', required=False)
def install(version):
    """
    Install a Node.js version.

    Without VERSION the pinned version from node-version.lock is used, or
    you are asked for one.

    Examples:
        nvmpy install v20.14.0
        nvmpy install v18.17.0
    """
    print_banner()

    if not version:
        version = VersionManager().get_version()
        if version:
            console.print(f"[dim]Using pinned version {version}[/dim]")

    if not version:
        try:
            version = Prompt.ask(f"Enter Node.js version to install (e.g., {EXAMPLE_VERSION})",
                                 console=console, default="", show_default=False).strip()
        except EOFError:
            version = ""

    if not version:
        console.print("[red]❌ No version specified. Usage:[/red]")
        console.print("  nvmpy install [version]")
        console.print("Examples:")
        console.print(f"  nvmpy install {EXAMPLE_VERSION}")
        console.print("  nvmpy install v18.17.0")
        sys.exit(1)

    try:
        validate_version(version)
    except InvalidVersionFormatError:
        _fail("Invalid version format. Expected format: vXX.XX.XX")

    config, _, install_root = _load_settings()
    installer = _make_installer(config, install_root)

    console.print(f"📥 Installing Node.js {version}...")
    try:
        installation = installer.install(version)
    except NvmpyError as e:
        _fail(f"Installation failed: {e}")

    console.print(f"[green]✅ Node.js {installation.version} installed successfully in {installation.path}[/green]")

    console.print("\n📦 Current installations:")
    _print_installations(installer.list_installed(), pinned=VersionManager().get_version())


@main.command(name='list')
@click.option('--json', 'as_json', is_flag=True, help='Print installations as JSON')
def list_versions(as_json):
    """Show installed Node.js versions."""
    config, _, install_root = _load_settings()
    installer = _make_installer(config, install_root)

    try:
        installations = installer.list_installed()
    except NvmpyError as e:
        _fail(str(e))

    if as_json:
        click.echo(json.dumps([inst.to_dict() for inst in installations], indent=2))
        return

    console.print(f"[dim]Install root: {install_root}[/dim]")
    _print_installations(installations, pinned=VersionManager().get_version())


@main.command()
@click.option('--lts', is_flag=True, help='Only show LTS releases')
@click.option('--limit', type=int, default=20, show_default=True,
              help='Maximum number of releases to show (0 = all)')
def available(lts, limit):
    """Show Node.js versions published for this platform."""
    config, _, install_root = _load_settings()
    installer = _make_installer(config, install_root)

    try:
        platform_info = installer.platform_info
        releases = installer.catalog.list_compatible(platform_info)
        newest = installer.catalog.latest(platform_info, lts_only=lts)
    except NvmpyError as e:
        _fail(str(e))

    console.print(f"[bold]Latest{' LTS' if lts else ''}: {newest.version}[/bold]")

    if lts:
        releases = [release for release in releases if release.is_lts]
    if limit and limit > 0:
        releases = releases[:limit]

    installed = {inst.version for inst in installer.list_installed()}
    arch = '64-bit' if platform_info.architecture.value == 'x64' else '32-bit'

    table = Table(title=f"Available Node.js versions for {platform_info.os_type.value} ({arch})",
                  show_header=True, header_style="bold cyan")
    table.add_column("Version", style="green")
    table.add_column("Date")
    table.add_column("LTS", style="magenta")
    table.add_column("npm")
    table.add_column("Installed", justify="center")

    for release in releases:
        table.add_row(
            release.version,
            release.date or "",
            release.lts or "",
            release.npm or "",
            "✓" if release.version in installed else "",
        )

    console.print(table)


@main.command()
@click.argument('version', required=False)
@click.option('--all', 'all_versions', is_flag=True, help='Uninstall every version and delete leftover archives')
@click.option('--yes', '-y', is_flag=True, help='Skip confirmation prompts')
def uninstall(version, all_versions, yes):
    """
    Uninstall Node.js versions.

    Examples:
        nvmpy uninstall v20.14.0   # Remove one version
        nvmpy uninstall --all      # Remove everything
    """
    if not version and not all_versions:
        _fail("Specify a version or --all.", "Run 'nvmpy list' to see installed versions.")

    config, _, install_root = _load_settings()
    installer = _make_installer(config, install_root)
    uninstaller = Uninstaller(installer, console=console)
    assume_yes = yes or config.auto_approve

    try:
        if all_versions:
            report = uninstaller.uninstall_all(assume_yes=assume_yes)
            if report.cancelled:
                return
            if not (report.removed or report.kept or report.archives_removed or report.failures):
                console.print("[yellow]Nothing to uninstall[/yellow]")
                return
            console.print(f"[green]✅ Removed {len(report.removed)} installation(s) "
                          f"and {len(report.archives_removed)} archive(s)[/green]")
            if report.failures:
                console.print(f"[yellow]⚠️  {len(report.failures)} entries could not be removed[/yellow]")
            for installation in report.kept:
                console.print(f"[yellow]⚠️  {installation.name} was only partially removed[/yellow]")
            return

        removed = uninstaller.uninstall(version, assume_yes=assume_yes)
    except NvmpyError as e:
        _fail(str(e))

    if removed is None:
        return
    if removed.path.exists():
        _fail(f"Node.js {removed.version} was only partially removed: {removed.path}")
    console.print(f"[green]✅ Node.js {removed.version} uninstalled[/green]")


@main.command()
@click.argument('command', required=False, default='node --version')
@click.option('--use', 'use_version', help='Installed version to use (default: pinned, then newest)')
@click.option('--direct', 'mode', flag_value='direct', help='Run in this terminal')
@click.option('--terminal', 'mode', flag_value='terminal', help='Run in a new terminal window')
def run(command, use_version, mode):
    """
    Run a command with Node.js on PATH.

    Examples:
        nvmpy run                          # node --version
        nvmpy run "npm install"
        nvmpy run "npx eslint ." --use v20
    """
    config, _, install_root = _load_settings()
    installer = _make_installer(config, install_root)

    try:
        platform_info = installer.platform_info
    except NvmpyError as e:
        _fail(str(e))

    installation = _select_installation(installer, use_version)

    console.print(f"🔧 Executing Node.js command: {command}")
    console.print(f"📦 Using installation: {installation.version}\n")

    try:
        executor = detect_execution_environment(
            platform_info,
            mode=mode or config.execution_mode,
            terminal=config.terminal,
            output=lambda line: click.echo(line, nl=False),
        )
        result = executor.run(command, installation.bin_dir)
    except NvmpyError as e:
        _fail(f"Error executing command: {e}")

    if not result.ok:
        _fail(f"Command exited with status {result.returncode}")


@main.command()
@click.option('--use', 'use_version', help='Installed version to use (default: pinned, then newest)')
def shell(use_version):
    """Open a new terminal with Node.js on PATH."""
    config, _, install_root = _load_settings()
    installer = _make_installer(config, install_root)

    try:
        platform_info = installer.platform_info
    except NvmpyError as e:
        _fail(str(e))

    installation = _select_installation(installer, use_version)

    if config.execution_mode == 'direct' or (
        config.execution_mode == 'auto' and is_headless(platform_info, os.environ)
    ):
        # no window to open: tell the user how to get the same PATH here
        path_value = build_path_env(installation.bin_dir)['PATH']
        console.print("[yellow]No graphical terminal available. Add Node.js to PATH with:[/yellow]")
        if platform_info.os_type == OSType.WINDOWS:
            click.echo(f'set "PATH={path_value}"')
        else:
            click.echo(f'export PATH="{installation.bin_dir}:$PATH"')
        return

    try:
        executor = detect_execution_environment(platform_info, mode='terminal', terminal=config.terminal)
        executor.run(None, installation.bin_dir)
    except NvmpyError as e:
        _fail(f"Error opening terminal: {e}")

    console.print(f"[green]✅ Opened terminal with Node.js {installation.version}[/green]")


@main.command()
@click.argument('version')
def pin(version):
    """Pin the project's Node.js version in node-version.lock."""
    try:
        validate_version(version)
    except InvalidVersionFormatError:
        _fail("Invalid version format. Expected format: vXX.XX.XX")

    lock_file = find_lock_file() or Path.cwd() / LOCK_FILE_NAME
    written = VersionManager(lock_file=lock_file).pin(version)
    console.print(f"[green]✓[/green] Pinned Node.js {version} in {written}")


@main.command()
def info():
    """Show detected platform and nvmpy settings."""
    config, config_path, install_root = _load_settings()

    try:
        platform_info = get_platform_info()
    except NvmpyError as e:
        _fail(str(e))

    table = Table(title="nvmpy Environment", show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in platform_info.to_dict().items():
        table.add_row(key.replace('_', ' ').title(), str(value))

    table.add_row("Install Root", str(install_root))
    table.add_row("Config File", str(config_path) if config_path else "(defaults)")
    version_manager = VersionManager()
    if version_manager.is_locked():
        metadata = version_manager.get_metadata()
        table.add_row("Pinned Version", version_manager.get_version())
        table.add_row("Pinned At", str(metadata.get('generated_at', 'unknown')))
        table.add_row("Lock File", str(version_manager.lock_file))
    else:
        table.add_row("Pinned Version", "(none)")
    table.add_row("Execution Mode", config.execution_mode)
    table.add_row("Headless", "yes" if is_headless(platform_info, os.environ) else "no")

    console.print(table)


@main.command()
@click.option('--init', 'init_config', is_flag=True, help='Write a default .nvmpy.yml in the current directory')
@click.option('--force', is_flag=True, help='Overwrite an existing .nvmpy.yml')
def config(init_config, force):
    """Show the effective configuration."""
    if init_config:
        target = Path.cwd() / ConfigManager.DEFAULT_CONFIG_NAME
        if target.exists() and not force:
            console.print(f"[yellow]⚠️  Configuration already exists: {target}[/yellow]")
            console.print("[dim]Use --force to overwrite.[/dim]")
            return
        created = ConfigManager.create_default_config(Path.cwd())
        console.print(f"[green]✓[/green] Created {created}")
        return

    settings, config_path, install_root = _load_settings()
    console.print(f"[dim]Config file: {config_path or '(none, using defaults)'}[/dim]")
    console.print(f"[dim]Install root: {install_root}[/dim]\n")
    click.echo(yaml.dump(settings.to_dict(), default_flow_style=False, sort_keys=False, indent=2))


if __name__ == '__main__':
    main()
