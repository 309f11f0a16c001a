#!/usr/bin/env python3
"""
nvmpy Configuration Management
Handles .nvmpy.yml configuration files
"""

import yaml
from pathlib import Path
from typing import Dict, Optional, Any
from dataclasses import dataclass

from nvmpy.executor import EXECUTION_MODES
from nvmpy.platform.version_manager import find_lock_file


@dataclass
class NvmpyConfig:
    """nvmpy configuration structure"""

    # Where runtimes and their archives live, relative to the config file
    install_root: str = "bin"
    auto_approve: bool = False

    # Distribution server
    dist_host: str = "nodejs.org"
    download_timeout: float = 300
    catalog_timeout: float = 30

    # Command execution: auto, direct or terminal
    execution_mode: str = "auto"
    terminal: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NvmpyConfig':
        """Create config from dictionary"""
        config = cls()

        install = data.get('install') or {}
        config.install_root = install.get('root') or config.install_root
        config.auto_approve = bool(install.get('auto_approve', config.auto_approve))

        dist = data.get('dist') or {}
        config.dist_host = dist.get('host') or config.dist_host
        config.download_timeout = _positive_number(dist.get('download_timeout'), config.download_timeout)
        config.catalog_timeout = _positive_number(dist.get('catalog_timeout'), config.catalog_timeout)

        execution = data.get('execution') or {}
        mode = execution.get('mode', config.execution_mode)
        config.execution_mode = mode if mode in EXECUTION_MODES else 'auto'
        config.terminal = execution.get('terminal') or None

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for YAML export"""
        return {
            'install': {
                'root': self.install_root,
                'auto_approve': self.auto_approve,
            },
            'dist': {
                'host': self.dist_host,
                'download_timeout': self.download_timeout,
                'catalog_timeout': self.catalog_timeout,
            },
            'execution': {
                'mode': self.execution_mode,
                'terminal': self.terminal,
            },
        }


def _positive_number(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


class ConfigManager:
    """Manage nvmpy configuration files"""

    DEFAULT_CONFIG_NAME = ".nvmpy.yml"

    @staticmethod
    def find_config(start_path: Path = None) -> Optional[Path]:
        """
        Find .nvmpy.yml by walking up directory tree

        Args:
            start_path: Starting directory (default: current directory)

        Returns:
            Path to .nvmpy.yml or None if not found
        """
        current = (start_path or Path.cwd()).resolve()

        # Walk up directory tree
        while True:
            config_file = current / ConfigManager.DEFAULT_CONFIG_NAME
            if config_file.exists():
                return config_file
            if current == current.parent:
                return None
            current = current.parent

    @staticmethod
    def load_config(config_path: Path = None) -> NvmpyConfig:
        """
        Load configuration from .nvmpy.yml

        Args:
            config_path: Path to config file (default: search from current dir)

        Returns:
            NvmpyConfig object
        """
        if config_path is None:
            config_path = ConfigManager.find_config()

        # Return default config if no file found
        if config_path is None or not config_path.exists():
            return NvmpyConfig()

        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Failed to load config from {config_path}: {e}")
            return NvmpyConfig()

        if not isinstance(data, dict):
            return NvmpyConfig()

        return NvmpyConfig.from_dict(data)

    @staticmethod
    def save_config(config: NvmpyConfig, config_path: Path) -> bool:
        """
        Save configuration to .nvmpy.yml

        Args:
            config: NvmpyConfig object
            config_path: Path where to save

        Returns:
            True if successful
        """
        try:
            # Create directory if needed
            config_path.parent.mkdir(parents=True, exist_ok=True)

            # Convert to dict and save as YAML
            with open(config_path, 'w') as f:
                yaml.dump(
                    config.to_dict(),
                    f,
                    default_flow_style=False,
                    sort_keys=False,
                    indent=2
                )

            return True

        except (OSError, yaml.YAMLError) as e:
            print(f"Error: Failed to save config to {config_path}: {e}")
            return False

    @staticmethod
    def create_default_config(project_root: Path) -> Path:
        """
        Create default .nvmpy.yml in project root

        Args:
            project_root: Project directory

        Returns:
            Path to created config file
        """
        config = NvmpyConfig()
        config_path = project_root / ConfigManager.DEFAULT_CONFIG_NAME

        ConfigManager.save_config(config, config_path)

        return config_path

    @staticmethod
    def resolve_install_root(config: NvmpyConfig, config_path: Optional[Path] = None) -> Path:
        """
        Absolute install root

        Relative roots are anchored at the directory holding the config file,
        then at the one holding node-version.lock, then at the current
        directory.
        """
        root = Path(config.install_root).expanduser()
        if root.is_absolute():
            return root

        if config_path is not None:
            base = config_path.parent
        else:
            lock_file = find_lock_file()
            base = lock_file.parent if lock_file is not None else Path.cwd()
        return (base / root).resolve()
