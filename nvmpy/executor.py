#!/usr/bin/env python3
"""
nvmpy Command Execution
Runs commands with an installed Node.js runtime first on PATH, either in the
current process or in a newly spawned terminal window
"""

import os
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Union

from nvmpy.errors import TerminalNotFoundError
from nvmpy.platform.detector import OSType, PlatformInfo

# Linux terminal emulators, in preference order
LINUX_TERMINALS = ['gnome-terminal', 'kgx', 'konsole', 'xfce4-terminal', 'xterm']

CI_VARIABLES = ('CI', 'GITHUB_ACTIONS', 'GITLAB_CI', 'JENKINS_URL', 'BUILDKITE', 'TF_BUILD')

EXECUTION_MODES = ('auto', 'direct', 'terminal')


@dataclass
class ExecutionResult:
    """Exit status and captured output of a command"""
    returncode: int
    output: str = ''

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def build_path_env(bin_dir: Path, environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Copy of environ with bin_dir prepended to PATH"""
    env = dict(os.environ if environ is None else environ)
    current = env.get('PATH', '')
    env['PATH'] = str(bin_dir) + (os.pathsep + current if current else '')
    return env


class ExecutionEnvironment(ABC):
    """Where a command runs: in place or in a new terminal"""

    @abstractmethod
    def run(self, command: Optional[str], bin_dir: Path, cwd: Optional[Path] = None) -> ExecutionResult:
        """
        Run command with bin_dir first on PATH

        Args:
            command: Shell command line; None opens an interactive shell
                where the environment supports it
            bin_dir: Directory holding the node executable
            cwd: Working directory (default: current directory)
        """
        pass


class DirectExecutor(ExecutionEnvironment):
    """Runs the command in the current process and streams its output"""

    def __init__(self, output: Optional[Callable[[str], None]] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            output: Called with each output line as it arrives (default: print)
            environ: Base environment (default: os.environ)
        """
        self.output = output or (lambda line: print(line, end=''))
        self.environ = environ

    def run(self, command: Optional[str], bin_dir: Path, cwd: Optional[Path] = None) -> ExecutionResult:
        if not command:
            raise ValueError("Direct execution needs a command")

        env = build_path_env(bin_dir, self.environ)
        lines: List[str] = []

        process = subprocess.Popen(
            command,
            shell=True,
            cwd=str(cwd or Path.cwd()),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors='replace',
        )
        with process:
            for line in process.stdout:
                lines.append(line)
                self.output(line)
            returncode = process.wait()

        return ExecutionResult(returncode=returncode, output=''.join(lines))


class TerminalExecutor(ExecutionEnvironment):
    """Opens a new terminal window with the runtime on PATH"""

    def __init__(self, os_type: OSType, terminal: Optional[str] = None,
                 which: Callable[[str], Optional[str]] = shutil.which):
        """
        Args:
            os_type: Host OS family
            terminal: Preferred Linux terminal emulator (default: first available)
            which: Executable lookup, injectable for tests
        """
        self.os_type = os_type
        self.terminal = terminal
        self.which = which

    def detect_terminal(self) -> str:
        """First usable Linux terminal emulator"""
        candidates = [self.terminal] if self.terminal else LINUX_TERMINALS
        for terminal in candidates:
            if self.which(terminal):
                return terminal

        raise TerminalNotFoundError(
            "No supported terminal emulator found. Install one of: "
            f"{', '.join(candidates)}, or run with --direct"
        )

    def build_command(self, command: Optional[str], bin_dir: Path, cwd: Path) -> Union[str, List[str]]:
        """
        Command that spawns the terminal

        Windows gets one command line: cmd.exe parses its own quoting, which
        list2cmdline would escape with backslashes.
        """
        if self.os_type == OSType.WINDOWS:
            script = f'set "PATH={bin_dir};%PATH%" && cd /d "{cwd}"'
            if command:
                script += f' && {command}'
            return f'cmd.exe /c start "nvmpy" cmd.exe /k "{script}"'

        script = f'export PATH={shlex.quote(str(bin_dir))}:"$PATH"; cd {shlex.quote(str(cwd))}'
        if command:
            script += f'; {command}'

        if self.os_type == OSType.DARWIN:
            apple_script = script.replace('\\', '\\\\').replace('"', '\\"')
            return ['osascript', '-e', f'tell application "Terminal" to do script "{apple_script}"']

        shell_script = f'{script}; exec "${{SHELL:-bash}}"'
        terminal = self.detect_terminal()
        if terminal in ('gnome-terminal', 'kgx'):
            return [terminal, '--', 'bash', '-c', shell_script]
        if terminal == 'konsole':
            return [terminal, '--noclose', '-e', 'bash', '-c', shell_script]
        if terminal == 'xfce4-terminal':
            return [terminal, '--hold', '-e', f'bash -c {shlex.quote(shell_script)}']
        if terminal == 'xterm':
            return [terminal, '-hold', '-e', 'bash', '-c', shell_script]

        raise TerminalNotFoundError(f"Unsupported terminal emulator: {terminal}")

    def run(self, command: Optional[str], bin_dir: Path, cwd: Optional[Path] = None) -> ExecutionResult:
        argv = self.build_command(command, bin_dir, cwd or Path.cwd())
        try:
            subprocess.Popen(argv, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL,
                             stderr=subprocess.DEVNULL, start_new_session=True)
        except OSError as e:
            program = argv.split(' ', 1)[0] if isinstance(argv, str) else argv[0]
            raise TerminalNotFoundError(f"Failed to launch terminal '{program}': {e}") from e
        return ExecutionResult(returncode=0)


def is_headless(platform_info: PlatformInfo, environ: Mapping[str, str]) -> bool:
    """True when no graphical terminal can be opened for the user"""
    if any(environ.get(var) for var in CI_VARIABLES):
        return True
    if environ.get('TERM_PROGRAM', '').lower() == 'vscode':
        return True
    if platform_info.os_type == OSType.LINUX:
        return not (environ.get('DISPLAY') or environ.get('WAYLAND_DISPLAY'))
    return False


def detect_execution_environment(platform_info: PlatformInfo,
                                 environ: Optional[Mapping[str, str]] = None,
                                 mode: str = 'auto',
                                 terminal: Optional[str] = None,
                                 output: Optional[Callable[[str], None]] = None) -> ExecutionEnvironment:
    """
    Choose between running in place and spawning a terminal

    Args:
        platform_info: Resolved platform
        environ: Environment to inspect (default: os.environ)
        mode: 'auto', 'direct' or 'terminal'
        terminal: Preferred Linux terminal emulator
        output: Line callback for direct execution
    """
    if mode not in EXECUTION_MODES:
        raise ValueError(f"Unknown execution mode: {mode}")

    environ = os.environ if environ is None else environ

    if mode == 'direct' or (mode == 'auto' and is_headless(platform_info, environ)):
        return DirectExecutor(output=output)
    return TerminalExecutor(platform_info.os_type, terminal=terminal)
