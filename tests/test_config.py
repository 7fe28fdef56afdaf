"""Tests for configuration loading and validation."""
import json
from unittest.mock import patch

import pytest
from keyring.errors import KeyringError

from notion_relay.config import RelayConfig, load_config, load_secret, save_secret
from notion_relay.core.exceptions import ConfigError
from notion_relay.notion.schema import PropertyKind


def write_config(tmp_path, data):
    path = tmp_path / "relay_config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestLoadConfig:

    def test_env_values(self, tmp_path):
        env = {
            "NOTION_TOKEN": "secret_a",
            "NOTION_REQUEST_DB_ID": "req",
            "NOTION_STOCK_DB_ID": "stock",
            "CHAT_BASE_URL": "https://chat",
            "CHAT_API_KEY": "k",
            "CHAT_CHANNEL_ID": "7",
            "DELETE_AFTER_SEND": "true",
            "CACHE_TTL_HOURS": "12",
            "NOTION_RELAY_STATE_DIR": str(tmp_path / "state"),
        }

        config = load_config(str(tmp_path / "missing.json"), env=env, use_keyring=False)

        assert config.notion_token == "secret_a"
        assert config.request_db_id == "req"
        assert config.delete_after_send is True
        assert config.cache_ttl_hours == 12.0
        assert config.state_dir == str(tmp_path / "state")
        config.require_sync()
        config.require_delivery()

    def test_defaults(self, tmp_path):
        config = load_config(str(tmp_path / "missing.json"), env={}, use_keyring=False)
        assert config.notion_version == "2022-06-28"
        assert config.idempotency_prefix == "report"
        assert config.cache_ttl_hours == 24
        assert config.delete_after_send is False
        assert config.send_interval == 2.0

    def test_env_overrides_json(self, tmp_path):
        path = write_config(tmp_path, {"request_db_id": "from-json", "stock_db_id": "stock-json"})
        config = load_config(path, env={"NOTION_REQUEST_DB_ID": "from-env"}, use_keyring=False)
        assert config.request_db_id == "from-env"
        assert config.stock_db_id == "stock-json"

    def test_schema_section(self, tmp_path):
        path = write_config(tmp_path, {"schema": {
            "request": {"key": "SKU", "sync_flag": "Push"},
            "stock": {"key": "SKU", "key_type": "title"},
        }})

        config = load_config(path, env={}, use_keyring=False)

        assert config.request_schema.key.name == "SKU"
        assert config.request_schema.key.kind is PropertyKind.TITLE
        assert config.request_schema.sync_flag.name == "Push"
        assert config.stock_schema.key.kind is PropertyKind.TITLE

    def test_invalid_schema_is_config_error(self, tmp_path):
        path = write_config(tmp_path, {"schema": {"stock": {"key_type": "number"}}})
        with pytest.raises(ConfigError):
            load_config(path, env={}, use_keyring=False)

    @pytest.mark.parametrize("schema", [
        "Part Number",
        {"request": "Part Number"},
        {"stock": ["key"]},
        {"request": {"key": 42}},
    ])
    def test_schema_of_wrong_shape_is_config_error(self, tmp_path, schema):
        path = write_config(tmp_path, {"schema": schema})
        with pytest.raises(ConfigError):
            load_config(path, env={}, use_keyring=False)

    def test_invalid_json_is_config_error(self, tmp_path):
        path = tmp_path / "relay_config.json"
        path.write_text("{broken", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path), env={}, use_keyring=False)

    def test_invalid_number_is_config_error(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.json"), env={"CACHE_TTL_HOURS": "soon"}, use_keyring=False)

    def test_secrets_fall_back_to_keyring(self, tmp_path):
        with patch("notion_relay.config.keyring.get_password", return_value="from-keyring") as get:
            config = load_config(str(tmp_path / "missing.json"), env={})
        assert config.notion_token == "from-keyring"
        assert config.chat_api_key == "from-keyring"
        get.assert_any_call("notion-relay", "notion_token")


class TestRequire:

    def test_require_sync_lists_missing(self):
        with pytest.raises(ConfigError) as exc:
            RelayConfig().require_sync()
        assert exc.value.missing == ["notion_token", "request_db_id", "stock_db_id"]

    def test_require_delivery_lists_missing(self):
        with pytest.raises(ConfigError) as exc:
            RelayConfig(chat_api_key="k").require_delivery()
        assert exc.value.missing == ["chat_base_url", "chat_channel_id"]


class TestSecrets:

    def test_load_secret_without_backend(self):
        with patch("notion_relay.config.keyring.get_password", side_effect=KeyringError("no backend")):
            assert load_secret("notion_token") is None

    def test_save_secret(self):
        with patch("notion_relay.config.keyring.set_password") as set_password:
            assert save_secret("chat_api_key", "abc") is True
        set_password.assert_called_once_with("notion-relay", "chat_api_key", "abc")

    def test_save_unknown_secret(self):
        with pytest.raises(ConfigError):
            save_secret("password", "abc")

    def test_save_empty_secret(self):
        assert save_secret("notion_token", "") is False
