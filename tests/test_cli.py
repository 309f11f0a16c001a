"""
Tests for the nvmpy command-line interface
"""
import json
import subprocess
import sys

import pytest
from click.testing import CliRunner

from conftest import (
    INDEX_URL,
    RELEASE_INDEX,
    FakeResponse,
    FakeSession,
    build_tarball,
    make_installation,
    node_dist_files,
)
from nvmpy import __version__
from nvmpy.cli import main
from nvmpy.platform.catalog import ReleaseCatalog
from nvmpy.platform.installers.node import NodeInstaller

ARCHIVE_URL = "https://nodejs.org/dist/v20.14.0/node-v20.14.0-linux-x64.tar.xz"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch, linux_x64):
    """Empty project directory as cwd, platform pinned to linux-x64"""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("nvmpy.platform.installers.node.get_platform_info", lambda: linux_x64)
    monkeypatch.setattr("nvmpy.cli.get_platform_info", lambda: linux_x64)
    return tmp_path


@pytest.fixture
def offline_dist(project, monkeypatch):
    """Serve the index and a v20.14.0 archive; stub the verification runs"""
    tarball = build_tarball(project / "dist.tar.xz", "node-v20.14.0-linux-x64", node_dist_files())
    session = FakeSession({
        INDEX_URL: FakeResponse(payload=RELEASE_INDEX),
        ARCHIVE_URL: FakeResponse(body=tarball.read_bytes()),
    })
    tarball.unlink()

    def catalog_factory(dist_host, timeout):
        return ReleaseCatalog(dist_host=dist_host, timeout=timeout, session=session)

    def verified(self, cmd, check=False, timeout=None):
        return subprocess.CompletedProcess(cmd, 0, stdout="v20.14.0\n", stderr="")

    monkeypatch.setattr("nvmpy.cli.ReleaseCatalog", catalog_factory)
    monkeypatch.setattr(NodeInstaller, "run_command", verified)
    return session


class TestMain:
    """Group-level behaviour"""

    def test_version_flag(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_without_command(self, runner):
        result = runner.invoke(main, [])
        assert result.exit_code == 0
        assert "install" in result.output


class TestInstallCommand:
    """nvmpy install"""

    def test_invalid_version(self, runner, project):
        result = runner.invoke(main, ["install", "20.14"])

        assert result.exit_code == 1
        assert "Invalid version format" in result.output
        assert not (project / "bin").exists()

    def test_missing_version(self, runner, project):
        result = runner.invoke(main, ["install"], input="")

        assert result.exit_code == 1
        assert "No version specified" in result.output

    def test_prompted_version(self, runner, project, offline_dist):
        result = runner.invoke(main, ["install"], input="v20.14.0\n")

        assert result.exit_code == 0, result.output
        assert (project / "bin" / "node-v20.14.0-linux-x64" / "bin" / "node").exists()

    def test_install(self, runner, project, offline_dist):
        result = runner.invoke(main, ["install", "v20.14.0"])

        assert result.exit_code == 0, result.output
        assert "installed successfully" in result.output
        assert offline_dist.requests == [INDEX_URL, ARCHIVE_URL]

    def test_unknown_version_fails(self, runner, project, offline_dist):
        result = runner.invoke(main, ["install", "v19.9.9"])

        assert result.exit_code == 1
        assert "Installation failed" in result.output

    def test_pinned_version_used(self, runner, project, offline_dist):
        runner.invoke(main, ["pin", "v20.14.0"])
        result = runner.invoke(main, ["install"])

        assert result.exit_code == 0, result.output
        assert "Using pinned version v20.14.0" in result.output


class TestListAndAvailable:
    """nvmpy list / available"""

    def test_list_empty(self, runner, project):
        result = runner.invoke(main, ["list"])

        assert result.exit_code == 0
        assert "No Node.js installations found" in result.output

    def test_list_installations(self, runner, project):
        make_installation(project / "bin", "node-v20.14.0-linux-x64")
        result = runner.invoke(main, ["list"])

        assert result.exit_code == 0
        assert "v20.14.0" in result.output

    def test_list_json(self, runner, project):
        make_installation(project / "bin", "node-v20.14.0-linux-x64")
        result = runner.invoke(main, ["list", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data[0]["version"] == "v20.14.0"
        assert data[0]["name"] == "node-v20.14.0-linux-x64"

    def test_available_lts(self, runner, project, offline_dist):
        result = runner.invoke(main, ["available", "--lts"])

        assert result.exit_code == 0, result.output
        assert "v20.14.0" in result.output
        assert "v18.17.0" in result.output
        assert "v21.0.0" not in result.output


class TestUninstallCommand:
    """nvmpy uninstall"""

    def test_requires_target(self, runner, project):
        assert runner.invoke(main, ["uninstall"]).exit_code == 1

    def test_not_installed(self, runner, project):
        result = runner.invoke(main, ["uninstall", "v16.0.0", "--yes"])

        assert result.exit_code == 1
        assert "not installed" in result.output

    def test_confirmed(self, runner, project):
        target = make_installation(project / "bin", "node-v20.14.0-linux-x64")
        result = runner.invoke(main, ["uninstall", "v20.14.0"], input="y\n")

        assert result.exit_code == 0, result.output
        assert not target.exists()

    def test_declined(self, runner, project):
        target = make_installation(project / "bin", "node-v20.14.0-linux-x64")
        result = runner.invoke(main, ["uninstall", "v20.14.0"], input="n\n")

        assert result.exit_code == 0
        assert target.exists()

    def test_all(self, runner, project):
        make_installation(project / "bin", "node-v18.17.0-linux-x64")
        make_installation(project / "bin", "node-v20.14.0-linux-x64")
        (project / "bin" / "node-v20.14.0-linux-x64.tar.xz").write_bytes(b"")

        result = runner.invoke(main, ["uninstall", "--all", "--yes"])

        assert result.exit_code == 0, result.output
        assert list((project / "bin").iterdir()) == []


class TestRunCommand:
    """nvmpy run"""

    def test_no_installations(self, runner, project):
        result = runner.invoke(main, ["run"])

        assert result.exit_code == 1
        assert "No Node.js installations found" in result.output

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell")
    def test_direct(self, runner, project):
        make_installation(project / "bin", "node-v20.14.0-linux-x64")
        result = runner.invoke(main, ["run", "echo from-node-env", "--direct"])

        assert result.exit_code == 0, result.output
        assert "from-node-env" in result.output

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell")
    def test_direct_failure(self, runner, project):
        make_installation(project / "bin", "node-v20.14.0-linux-x64")
        result = runner.invoke(main, ["run", "exit 2", "--direct"])

        assert result.exit_code == 1

    def test_unknown_use_version(self, runner, project):
        make_installation(project / "bin", "node-v20.14.0-linux-x64")
        result = runner.invoke(main, ["run", "--use", "v16.0.0", "--direct"])

        assert result.exit_code == 1


class TestPinAndConfig:
    """nvmpy pin / config / info"""

    def test_pin(self, runner, project):
        result = runner.invoke(main, ["pin", "v20.14.0"])

        assert result.exit_code == 0
        assert 'version = "v20.14.0"' in (project / "node-version.lock").read_text()

    def test_pin_invalid(self, runner, project):
        assert runner.invoke(main, ["pin", "twenty"]).exit_code == 1
        assert not (project / "node-version.lock").exists()

    def test_config_init(self, runner, project):
        result = runner.invoke(main, ["config", "--init"])

        assert result.exit_code == 0
        assert (project / ".nvmpy.yml").exists()

        again = runner.invoke(main, ["config", "--init"])
        assert "already exists" in again.output

    def test_config_show(self, runner, project):
        result = runner.invoke(main, ["config"])

        assert result.exit_code == 0
        assert "root: bin" in result.output

    def test_info(self, runner, project):
        result = runner.invoke(main, ["info"])

        assert result.exit_code == 0
        assert "linux-x64" in result.output

    def test_info_shows_pin(self, runner, project):
        runner.invoke(main, ["pin", "v20.14.0"])
        result = runner.invoke(main, ["info"])

        assert result.exit_code == 0
        assert "v20.14.0" in result.output
        assert "Pinned At" in result.output

    def test_install_root_shared_across_subdirectories(self, runner, project, monkeypatch):
        runner.invoke(main, ["pin", "v20.14.0"])
        make_installation(project / "bin", "node-v20.14.0-linux-x64")
        nested = project / "packages" / "web"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        result = runner.invoke(main, ["list", "--json"])

        assert result.exit_code == 0, result.output
        assert [item["version"] for item in json.loads(result.output)] == ["v20.14.0"]
