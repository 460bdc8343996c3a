"""CLI command tests."""

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from pkgloader import project
from pkgloader.app_package import BASELINE_PACKAGES
from pkgloader.commands.app import add_cmd
from pkgloader.commands.app import remove_cmd
from pkgloader.commands.app import sources_cmd
from pkgloader.commands.config import config_group
from pkgloader.commands.deps import install_deps_cmd
from pkgloader.commands.packages import list_cmd
from pkgloader.commands.packages import show_cmd
from pkgloader.main import cli

WIDGET_DESCRIPTOR = """
Package.describe(summary="A widget")

Npm.depends({"gcd": "0.0.0"})

@Package.on_use
def on_use(api):
    api.use("helper", unordered=True)
    api.add_files("widget.js", "client")
    api.export_symbol("Widget", "client")
"""


@pytest.fixture
def cli_env(tmp_path: Path, packages_dir: Path, make_package, monkeypatch) -> Path:
    """Environment for commands: package dirs from $PACKAGE_DIRS, cwd is an app."""
    for name in BASELINE_PACKAGES:
        if name != "core":
            make_package(packages_dir, name, f"Package.describe(summary='{name} package')\n")
    make_package(
        packages_dir,
        "templating",
        "Package.describe(summary='templating package')\nPackage.register_extension('html', lambda s: s)\n",
    )
    make_package(packages_dir, "widget", WIDGET_DESCRIPTOR, {"widget.js": ""})
    make_package(packages_dir, "helper", "Package.describe(summary='Helps')\n")

    home = tmp_path / "home"
    home.mkdir()
    app = tmp_path / "app"
    (app / "client").mkdir(parents=True)
    (app / "client" / "main.js").write_text("")
    (app / "server").mkdir()
    (app / "server" / "api.js").write_text("")

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("PACKAGE_DIRS", str(packages_dir))
    monkeypatch.setenv("PKGLOADER_ENGINE_DIR", str(tmp_path / "engine"))
    monkeypatch.setenv("PKGLOADER_WAREHOUSE_DIR", str(tmp_path / "warehouse"))
    monkeypatch.chdir(app)
    return app


class TestList:
    def test_lists_packages_sorted(self, cli_env):
        result = CliRunner().invoke(list_cmd, [])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        names = [line.split()[0] for line in lines]
        assert names == sorted(names)
        assert "core" not in names  # internal
        assert any(line.startswith("widget") and line.endswith("A widget") for line in lines)

    def test_no_packages(self, cli_env, tmp_path, monkeypatch):
        monkeypatch.setenv("PACKAGE_DIRS", str(tmp_path / "empty"))

        result = CliRunner().invoke(list_cmd, [])

        assert result.exit_code == 0
        assert "No packages found." in result.output

    def test_unknown_release(self, cli_env):
        result = CliRunner().invoke(list_cmd, ["--release", "9.9"])

        assert result.exit_code == 1
        assert "✗ Release '9.9' not found" in result.output


class TestShow:
    def test_show_package(self, cli_env):
        result = CliRunner().invoke(show_cmd, ["widget"])

        assert result.exit_code == 0
        assert "A widget" in result.output
        assert "helper*" in result.output
        assert "widget.js" in result.output
        assert "Widget" in result.output
        assert "npm dependencies: gcd@0.0.0" in result.output

    def test_show_missing_package(self, cli_env):
        result = CliRunner().invoke(show_cmd, ["nope"])

        assert result.exit_code == 1
        assert "✗ Package 'nope' not found" in result.output

    def test_show_broken_descriptor(self, cli_env, packages_dir, make_package):
        make_package(packages_dir, "broken", "raise RuntimeError('kaput')\n")

        result = CliRunner().invoke(show_cmd, ["broken"])

        assert result.exit_code == 1
        assert "kaput" in result.output


class TestAppCommands:
    def test_add_and_remove(self, cli_env):
        runner = CliRunner()

        result = runner.invoke(add_cmd, ["widget", "nope", "widget"])
        assert result.exit_code == 0
        assert "✓ widget: added" in result.output
        assert "✗ nope: no such package" in result.output
        assert "widget: already using" in result.output
        assert project.get_packages(cli_env) == ["widget"]

        result = runner.invoke(remove_cmd, ["widget", "helper"])
        assert result.exit_code == 0
        assert "✓ widget: removed" in result.output
        assert "helper: not in project" in result.output
        assert project.get_packages(cli_env) == []

    def test_add_app_local_package(self, cli_env, make_package):
        make_package(cli_env / "packages", "local-only", "Package.describe(summary='mine')\n")

        result = CliRunner().invoke(add_cmd, ["local-only"])

        assert "✓ local-only: added" in result.output

    def test_sources(self, cli_env):
        result = CliRunner().invoke(sources_cmd, [])

        assert result.exit_code == 0, result.output
        assert "client/main.js" in result.output
        assert "server/api.js" in result.output
        assert "templating" in result.output


class TestInstallDeps:
    def test_installs_package_dependencies(self, cli_env, packages_dir):
        with patch("pkgloader.npm.update_dependencies") as update:
            result = CliRunner().invoke(install_deps_cmd, ["widget"])

        assert result.exit_code == 0, result.output
        update.assert_called_once_with("widget", packages_dir / "widget" / ".npm", {"gcd": "0.0.0"}, quiet=False)
        assert "✓ Dependencies of widget are installed" in result.output

    def test_quiet(self, cli_env):
        with patch("pkgloader.npm.update_dependencies") as update:
            result = CliRunner().invoke(install_deps_cmd, ["widget", "--quiet"])

        assert result.exit_code == 0
        assert update.call_args.kwargs == {"quiet": True}
        assert result.output == ""

    def test_package_without_dependencies(self, cli_env):
        with patch("pkgloader.npm.update_dependencies") as update:
            result = CliRunner().invoke(install_deps_cmd, ["helper"])

        assert result.exit_code == 0
        update.assert_not_called()
        assert "helper has no npm dependencies." in result.output

    def test_install_failure(self, cli_env):
        from pkgloader.errors import DependencyInstallError

        with patch("pkgloader.npm.update_dependencies", side_effect=DependencyInstallError("npm ERR! boom")):
            result = CliRunner().invoke(install_deps_cmd, ["widget"])

        assert result.exit_code == 1
        assert "✗ Installing dependencies of widget failed: npm ERR! boom" in result.output


class TestConfig:
    """``config set`` writes the settings the other commands read."""

    def test_set_project_scope_by_default(self, cli_env, tmp_path):
        extra = tmp_path / "extra-packages"

        result = CliRunner().invoke(config_group, ["set", "package_dirs", str(extra)])

        assert result.exit_code == 0, result.output
        written = yaml.safe_load((cli_env / ".pkgloader" / "settings.yaml").read_text())
        assert written == {"package_dirs": [str(extra)]}

    def test_set_global_scope(self, cli_env, tmp_path):
        result = CliRunner().invoke(config_group, ["set", "release", "0.5", "--global"])

        assert result.exit_code == 0, result.output
        written = yaml.safe_load((tmp_path / "home" / ".pkgloader" / "settings.yaml").read_text())
        assert written == {"release": "0.5"}

    def test_scalar_key_takes_one_value(self, cli_env):
        result = CliRunner().invoke(config_group, ["set", "release", "0.5", "0.6"])

        assert result.exit_code == 1
        assert "✗ release takes exactly one value" in result.output

    def test_unknown_key(self, cli_env):
        result = CliRunner().invoke(config_group, ["set", "colour", "blue"])

        assert result.exit_code == 2

    def test_show(self, cli_env):
        runner = CliRunner()
        assert "No settings configured." in runner.invoke(config_group, ["show"]).output

        runner.invoke(config_group, ["set", "ignore_files", r"\.tmp$", "generated/"])
        result = runner.invoke(config_group, ["show"])

        assert result.exit_code == 0
        assert "ignore_files" in result.output
        assert "generated/" in result.output

    def test_configured_ignore_files_apply_to_sources(self, cli_env):
        (cli_env / "client" / "scratch.js").write_text("")
        runner = CliRunner()
        runner.invoke(config_group, ["set", "ignore_files", "scratch"])

        result = runner.invoke(sources_cmd, [])

        assert result.exit_code == 0, result.output
        assert "client/main.js" in result.output
        assert "scratch.js" not in result.output


def test_group_configures_logging(cli_env, tmp_path):
    log_file = tmp_path / "logs" / "pkgloader.jsonl"

    with patch("pkgloader.main.init_json_logging") as init:
        result = CliRunner().invoke(cli, ["--log-level", "DEBUG", "--log-file", str(log_file), "list"])

    assert result.exit_code == 0, result.output
    init.assert_called_once_with(path=str(log_file), level="DEBUG")
