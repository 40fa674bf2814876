"""Test config loading and parsing."""

import tempfile
from pathlib import Path

import pytest

from relaymap.config import Config, load_config
from relaymap.config.loader import _deep_update
from relaymap.core.errors import RelayMapConfigurationError


class TestDeepUpdate:
    """Test deep dictionary merge."""

    def test_deep_update_nested(self):
        # Arrange
        base = {"a": {"x": 1, "y": 2}, "b": 3}
        override = {"a": {"y": 99, "z": 100}}

        # Act
        result = _deep_update(base, override)

        # Assert
        assert result == {"a": {"x": 1, "y": 99, "z": 100}, "b": 3}

    def test_deep_update_preserves_base(self):
        base = {"a": 1}
        _deep_update(base, {"b": 2})
        assert base == {"a": 1}


class TestLoadConfig:
    """Test config file loading."""

    def test_load_config_from_yaml(self):
        # Arrange
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            f.write("message_timeout_amount: 2\n")
            f.write("messages:\n")
            f.write("  persistent_message_map: true\n")
            path = f.name

        try:
            # Act
            data = load_config(path)

            # Assert
            assert data["message_timeout_amount"] == 2
            assert data["messages"]["persistent_message_map"] is True
        finally:
            Path(path).unlink()

    def test_load_config_missing_file_returns_empty(self, tmp_path):
        assert load_config(tmp_path / "nope.yaml") == {}

    def test_load_config_empty_file_returns_empty(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == {}

    def test_load_config_non_dict_returns_empty(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        assert load_config(path) == {}


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    for key in (
        "RELAYMAP_MESSAGE_TIMEOUT_AMOUNT",
        "RELAYMAP_MESSAGE_TIMEOUT_UNIT",
        "RELAYMAP_PERSISTENT_MESSAGE_MAP",
        "RELAYMAP_DATA_DIR",
    ):
        monkeypatch.delenv(key, raising=False)


class TestConfigDefaults:
    def test_defaults(self):
        config = Config({})
        assert config.message_timeout_amount == 24
        assert config.message_timeout_unit == "hours"
        assert config.persistent_message_map is False
        assert config.data_dir == Path("data")

    def test_legacy_camel_case_keys(self):
        config = Config(
            {"messageTimeoutAmount": 3, "messageTimeoutUnit": "days", "persistentMessageMap": True}
        )
        assert config.message_timeout_amount == 3
        assert config.message_timeout_unit == "days"
        assert config.persistent_message_map is True

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("false", False), ("no", False), ("0", False), ("True", True), ("yes", True), ("maybe", False)],
    )
    def test_quoted_bool_strings(self, value, expected):
        config = Config({"persistent_message_map": value})
        assert config.persistent_message_map is expected

    def test_quoted_false_in_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text('persistent_message_map: "false"\n')
        assert Config(load_config(path)).persistent_message_map is False

    def test_messages_section_wins(self):
        config = Config({"message_timeout_amount": 1, "messages": {"message_timeout_amount": 7}})
        assert config.message_timeout_amount == 7

    def test_get_dotted_path(self):
        config = Config({"messages": {"message_timeout_unit": "minutes"}})
        assert config.get("messages.message_timeout_unit") == "minutes"
        assert config.get("messages.missing", "x") == "x"


class TestEnvOverrides:
    def test_env_overrides_file_values(self, monkeypatch):
        monkeypatch.setenv("RELAYMAP_MESSAGE_TIMEOUT_AMOUNT", "90")
        monkeypatch.setenv("RELAYMAP_MESSAGE_TIMEOUT_UNIT", "seconds")
        monkeypatch.setenv("RELAYMAP_PERSISTENT_MESSAGE_MAP", "yes")
        monkeypatch.setenv("RELAYMAP_DATA_DIR", "/var/lib/relay")

        config = Config({"message_timeout_amount": 1, "persistent_message_map": False})

        assert config.message_timeout_amount == 90
        assert config.message_timeout_unit == "seconds"
        assert config.persistent_message_map is True
        assert config.data_dir == Path("/var/lib/relay")

    def test_unrecognized_bool_env_falls_back(self, monkeypatch):
        monkeypatch.setenv("RELAYMAP_PERSISTENT_MESSAGE_MAP", "maybe")
        config = Config({"persistent_message_map": True})
        assert config.persistent_message_map is True


class TestValidation:
    def test_valid_config(self):
        config = Config()
        config.reload({"message_timeout_amount": 12, "message_timeout_unit": "h"})
        assert config.message_timeout_amount == 12

    @pytest.mark.parametrize(
        ("data", "code"),
        [
            ({"message_timeout_amount": 0}, "invalid_timeout_amount"),
            ({"message_timeout_amount": "soon"}, "invalid_timeout_amount"),
            ({"message_timeout_unit": "eons"}, "invalid_timeout_unit"),
            ({"messages": ["nope"]}, "invalid_messages_section"),
        ],
    )
    def test_invalid_config_raises(self, data, code):
        config = Config()
        with pytest.raises(RelayMapConfigurationError) as exc_info:
            config.reload(data)
        assert exc_info.value.code == code

    def test_reload_without_validation(self):
        config = Config()
        config.reload({"message_timeout_unit": "eons"}, validate=False)
        assert config.message_timeout_unit == "eons"
