"""Integration tests for the ``box`` command line."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

import box_launcher.launcher as launcher_mod
from box_launcher.cli import app


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("BOX_LAUNCHER_CONFIG", str(tmp_path / "no-config.yaml"))
    monkeypatch.delenv("COMMANDBOX_HOME", raising=False)
    monkeypatch.setattr(launcher_mod.time, "sleep", lambda seconds: None)


class TestCli:
    def test_tokens_passed_through_untouched(self, runner) -> None:
        argv = ["-server", "-webroot=/srv/site", "execute", "--port=80", "-?"]
        with patch("box_launcher.cli.launch", return_value=7) as launch:
            result = runner.invoke(app, argv)
        assert result.exit_code == 7
        assert launch.call_args.args[0] == argv

    def test_help(self, runner) -> None:
        result = runner.invoke(app, ["-help"])
        assert result.exit_code == 0
        assert "Usage: box" in result.stdout

    def test_update_only(self, runner, tmp_path: Path, resource_root: Path, monkeypatch) -> None:
        monkeypatch.setenv("BOX_LAUNCHER_RESOURCE_ROOT", str(resource_root))
        home = tmp_path / "box-home"
        result = runner.invoke(app, ["-update", f"-commandbox_home={home}"])
        assert result.exit_code == 0, result.stdout
        assert (home / "lib" / "engine.jar").is_file()
        assert (home / "cfml" / "system" / "Bootstrap.cfm").is_file()

    def test_missing_archive_exits_one(self, runner, tmp_path: Path, monkeypatch) -> None:
        empty = tmp_path / "empty-resources"
        empty.mkdir()
        monkeypatch.setenv("BOX_LAUNCHER_RESOURCE_ROOT", str(empty))
        result = runner.invoke(app, [f"-commandbox_home={tmp_path / 'home'}"])
        assert result.exit_code == 1
        assert "Error" in result.stdout
        assert "libs.zip" in result.stdout

    def test_unwritable_library_dir_exits_one(
        self, runner, tmp_path: Path, resource_root: Path, monkeypatch
    ) -> None:
        monkeypatch.setenv("BOX_LAUNCHER_RESOURCE_ROOT", str(resource_root))
        home = tmp_path / "box-home"
        home.mkdir()
        (home / "lib").write_text("in the way")
        result = runner.invoke(app, [f"-commandbox_home={home}"])
        assert result.exit_code == 1
        assert not isinstance(result.exception, OSError)
        assert "Error" in result.stdout
