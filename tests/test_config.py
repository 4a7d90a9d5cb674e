"""Tests for ZephyrConfig."""

from __future__ import annotations

from pathlib import Path

import pytest

from zephyr_sync import SYNC_KEY, ValidationError, ZephyrConfig


class TestZephyrConfig:
    """Tests for defaults and validation."""

    def test_defaults(self) -> None:
        config = ZephyrConfig()

        assert config.debug_logging_enabled is False
        assert config.flush_remote_on_every_change is True
        assert config.sync_key == SYNC_KEY == "ZephyrSyncKey"
        assert config.local_path is None
        assert config.monitored_keys == []

    def test_sync_key_cannot_be_monitored(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            ZephyrConfig(monitored_keys=["theme", SYNC_KEY])
        assert exc_info.value.field == "monitored_keys"

    def test_empty_sync_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ZephyrConfig(sync_key="")


class TestFromEnvironment:
    """Tests for ZephyrConfig.from_environment()."""

    def test_reads_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ZEPHYR_DEBUG", "true")
        monkeypatch.setenv("ZEPHYR_FLUSH_ON_CHANGE", "0")
        monkeypatch.setenv("ZEPHYR_LOCAL_PATH", "/tmp/zephyr.json")
        monkeypatch.setenv("ZEPHYR_MONITORED_KEYS", "theme, volume,,")

        config = ZephyrConfig.from_environment()

        assert config.debug_logging_enabled is True
        assert config.flush_remote_on_every_change is False
        assert config.local_path == "/tmp/zephyr.json"
        assert config.monitored_keys == ["theme", "volume"]

    def test_unset_variables_use_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "ZEPHYR_DEBUG",
            "ZEPHYR_FLUSH_ON_CHANGE",
            "ZEPHYR_LOCAL_PATH",
            "ZEPHYR_MONITORED_KEYS",
        ):
            monkeypatch.delenv(name, raising=False)

        assert ZephyrConfig.from_environment() == ZephyrConfig()


class TestFromYaml:
    """Tests for ZephyrConfig.from_yaml()."""

    def test_reads_zephyr_section(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text(
            "zephyr:\n"
            "  debug_logging_enabled: true\n"
            "  flush_remote_on_every_change: false\n"
            "  local_path: /data/local.json\n"
            "  monitored_keys: [theme, volume]\n"
            "other:\n"
            "  ignored: 1\n"
        )

        config = ZephyrConfig.from_yaml(path)

        assert config.debug_logging_enabled is True
        assert config.flush_remote_on_every_change is False
        assert config.local_path == "/data/local.json"
        assert config.monitored_keys == ["theme", "volume"]

    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        assert ZephyrConfig.from_yaml(tmp_path / "absent.yaml") == ZephyrConfig()

    def test_missing_section_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("identity:\n  user_id: abc\n")

        assert ZephyrConfig.from_yaml(path) == ZephyrConfig()

    def test_non_mapping_section_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.yaml"
        path.write_text("zephyr: [1, 2]\n")

        with pytest.raises(ValidationError):
            ZephyrConfig.from_yaml(path)
