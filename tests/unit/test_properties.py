"""Tests for box_launcher.properties — bundled properties and user configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

import box_launcher.properties as properties_mod
from box_launcher.errors import PropertiesError
from box_launcher.properties import (
    LauncherProperties,
    get_user_config_path,
    load_launcher_properties,
    load_user_config,
)


class TestLauncherProperties:
    def test_bundled_properties(self) -> None:
        properties = load_launcher_properties()
        assert properties.name == "CommandBox"
        assert properties.lower_name == "commandbox"
        assert properties.upper_name == "COMMANDBOX"
        assert properties.shell_path == "/cfml/system/Bootstrap.cfm"
        assert properties.execute_keyword == "execute"
        assert "Usage:" in properties.usage

    def test_is_recipe(self) -> None:
        properties = load_launcher_properties()
        assert properties.is_recipe("deploy.boxr")
        assert not properties.is_recipe("deploy.boxr.bak")
        assert not properties.is_recipe("script.cfm")

    def test_unknown_keys_ignored(self) -> None:
        properties = LauncherProperties.from_dict({"name": "box", "usage": "u", "colour": "red"})
        assert properties.name == "box"

    @pytest.mark.parametrize("missing", ["name", "usage"])
    def test_required_keys(self, missing: str) -> None:
        data = {"name": "box", "usage": "u"}
        data[missing] = "  "
        with pytest.raises(PropertiesError, match=missing):
            LauncherProperties.from_dict(data)

    def test_invalid_recipe_pattern(self) -> None:
        with pytest.raises(PropertiesError, match="recipe_pattern"):
            LauncherProperties.from_dict({"name": "box", "usage": "u", "recipe_pattern": "("})


class TestUserConfig:
    def test_env_override_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("BOX_LAUNCHER_CONFIG", str(tmp_path / "custom.yaml"))
        assert get_user_config_path("CommandBox") == tmp_path / "custom.yaml"

    def test_platform_default_path(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.delenv("BOX_LAUNCHER_CONFIG", raising=False)
        monkeypatch.setattr(properties_mod, "user_config_dir", lambda name: str(tmp_path / name))
        assert get_user_config_path("CommandBox") == tmp_path / "commandbox" / "config.yaml"

    def test_missing_file_is_empty(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("BOX_LAUNCHER_CONFIG", str(tmp_path / "absent.yaml"))
        config = load_user_config("CommandBox")
        assert config.properties == {}
        assert config.java is None

    def test_reads_properties_and_java(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "properties:\n"
            "  COMMANDBOX_HOME: /srv/box\n"
            "  retries: 3\n"
            "java: /opt/jdk/bin/java\n"
        )
        monkeypatch.setenv("BOX_LAUNCHER_CONFIG", str(path))
        config = load_user_config("CommandBox")
        assert config.properties == {"COMMANDBOX_HOME": "/srv/box", "retries": "3"}
        assert config.java == "/opt/jdk/bin/java"
        assert config.path == path

    def test_empty_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        monkeypatch.setenv("BOX_LAUNCHER_CONFIG", str(path))
        assert load_user_config("CommandBox").properties == {}

    def test_malformed_yaml(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("properties: [unclosed\n")
        monkeypatch.setenv("BOX_LAUNCHER_CONFIG", str(path))
        with pytest.raises(PropertiesError):
            load_user_config("CommandBox")

    def test_properties_must_be_mapping(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("properties:\n  - COMMANDBOX_HOME\n")
        monkeypatch.setenv("BOX_LAUNCHER_CONFIG", str(path))
        with pytest.raises(PropertiesError, match="mapping"):
            load_user_config("CommandBox")
