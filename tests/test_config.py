"""
Tests for .nvmpy.yml handling
"""
from pathlib import Path

import yaml

from nvmpy.config import ConfigManager, NvmpyConfig


class TestNvmpyConfig:
    """Dictionary conversion"""

    def test_defaults(self):
        config = NvmpyConfig()
        assert config.install_root == "bin"
        assert config.dist_host == "nodejs.org"
        assert config.download_timeout == 300
        assert config.execution_mode == "auto"
        assert not config.auto_approve

    def test_from_dict(self):
        config = NvmpyConfig.from_dict({
            "install": {"root": ".runtimes", "auto_approve": True},
            "dist": {"host": "mirror.example", "download_timeout": 60},
            "execution": {"mode": "direct", "terminal": "xterm"},
        })
        assert config.install_root == ".runtimes"
        assert config.auto_approve
        assert config.dist_host == "mirror.example"
        assert config.download_timeout == 60
        assert config.catalog_timeout == 30
        assert config.execution_mode == "direct"
        assert config.terminal == "xterm"

    def test_bad_values_fall_back(self):
        config = NvmpyConfig.from_dict({
            "dist": {"download_timeout": -5, "catalog_timeout": "soon"},
            "execution": {"mode": "background"},
        })
        assert config.download_timeout == 300
        assert config.catalog_timeout == 30
        assert config.execution_mode == "auto"

    def test_to_dict_round_trip(self):
        config = NvmpyConfig(install_root="rt", terminal="konsole")
        assert NvmpyConfig.from_dict(config.to_dict()) == config


class TestConfigManager:
    """Finding, loading and saving"""

    def test_find_walks_up(self, tmp_path):
        config_file = tmp_path / ".nvmpy.yml"
        config_file.write_text("install:\n  root: rt\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert ConfigManager.find_config(nested) == config_file.resolve()

    def test_load_missing_file(self, tmp_path):
        assert ConfigManager.load_config(tmp_path / ".nvmpy.yml") == NvmpyConfig()

    def test_load_invalid_yaml(self, tmp_path, capsys):
        config_file = tmp_path / ".nvmpy.yml"
        config_file.write_text("install: [unclosed\n")

        assert ConfigManager.load_config(config_file) == NvmpyConfig()
        assert "Warning" in capsys.readouterr().out

    def test_load_non_mapping(self, tmp_path):
        config_file = tmp_path / ".nvmpy.yml"
        config_file.write_text("- just\n- a list\n")
        assert ConfigManager.load_config(config_file) == NvmpyConfig()

    def test_create_default(self, tmp_path):
        path = ConfigManager.create_default_config(tmp_path)

        assert path == tmp_path / ".nvmpy.yml"
        data = yaml.safe_load(path.read_text())
        assert data["install"]["root"] == "bin"
        assert data["execution"]["mode"] == "auto"

    def test_resolve_install_root(self, tmp_path, monkeypatch):
        config_path = tmp_path / "project" / ".nvmpy.yml"

        assert ConfigManager.resolve_install_root(NvmpyConfig(), config_path) == (
            tmp_path / "project" / "bin"
        ).resolve()

        absolute = tmp_path / "elsewhere"
        assert ConfigManager.resolve_install_root(NvmpyConfig(install_root=str(absolute))) == absolute

        monkeypatch.chdir(tmp_path)
        assert ConfigManager.resolve_install_root(NvmpyConfig()) == (tmp_path / "bin").resolve()

    def test_install_root_follows_lock_file(self, tmp_path, monkeypatch):
        (tmp_path / "node-version.lock").write_text('[node]\nversion = "v20.14.0"\n')
        nested = tmp_path / "src" / "app"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert ConfigManager.resolve_install_root(NvmpyConfig()) == (tmp_path / "bin").resolve()
