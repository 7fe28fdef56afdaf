import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import keyring
from dotenv import load_dotenv
from keyring.errors import KeyringError

from notion_relay.constants import (
    DEFAULT_IDEMPOTENCY_PREFIX,
    DEFAULT_MESSAGE_TEXT,
    DEFAULT_SEND_INTERVAL,
    NOTION_VERSION,
    SENT_CACHE_TTL_HOURS,
)
from notion_relay.core.exceptions import ConfigError, SchemaError
from notion_relay.logger import logger
from notion_relay.notion.schema import (
    DEFAULT_REQUEST_SCHEMA,
    DEFAULT_STOCK_SCHEMA,
    PropertyKind,
    StoreSchema,
)

CONFIG_FILE = "relay_config.json"
KEYRING_SERVICE = "notion-relay"
SECRET_KEYS = ("notion_token", "chat_api_key")


# ============================================================
# Secure Token Storage (keyring)
# ============================================================
def load_secret(key: str) -> Optional[str]:
    """Load a token from keyring, or None if keyring has no usable backend."""
    try:
        return keyring.get_password(KEYRING_SERVICE, key)
    except KeyringError as e:
        logger.debug(f"Keyring unavailable for '{key}': {e}")
        return None


def save_secret(key: str, value: str) -> bool:
    """Save a token to keyring."""
    if key not in SECRET_KEYS:
        raise ConfigError(f"Unknown secret '{key}', expected one of {', '.join(SECRET_KEYS)}")
    if not value:
        return False
    try:
        keyring.set_password(KEYRING_SERVICE, key, value)
        return True
    except KeyringError as e:
        logger.error(f"Failed to store '{key}' in keyring: {e}")
        return False


# ============================================================
# Configuration Value Object
# ============================================================
@dataclass(frozen=True)
class RelayConfig:
    """All settings for one relay invocation.

    Built once by load_config() and handed to each component; nothing below
    the CLI reads process environment directly.
    """
    notion_token: str = ""
    request_db_id: str = ""
    stock_db_id: str = ""
    notion_version: str = NOTION_VERSION
    request_schema: StoreSchema = DEFAULT_REQUEST_SCHEMA
    stock_schema: StoreSchema = DEFAULT_STOCK_SCHEMA

    chat_base_url: str = ""
    chat_api_key: str = ""
    chat_channel_id: str = ""
    chat_message_text: str = DEFAULT_MESSAGE_TEXT
    idempotency_prefix: str = DEFAULT_IDEMPOTENCY_PREFIX

    cache_ttl_hours: float = SENT_CACHE_TTL_HOURS
    delete_after_send: bool = False
    outbox_dir: str = "outbox"
    state_dir: str = field(default_factory=lambda: os.path.join(os.path.expanduser("~"), ".notion_relay"))
    send_interval: float = DEFAULT_SEND_INTERVAL

    def _require(self, names: List[str], purpose: str) -> None:
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            raise ConfigError(f"Missing configuration for {purpose}: {', '.join(missing)}", missing=missing)

    def require_sync(self) -> None:
        """Raise ConfigError unless both stores and the Notion token are set."""
        self._require(["notion_token", "request_db_id", "stock_db_id"], "sync")

    def require_delivery(self) -> None:
        """Raise ConfigError unless the chat endpoint is fully configured."""
        self._require(["chat_base_url", "chat_api_key", "chat_channel_id"], "delivery")


# ============================================================
# Configuration Loading
# ============================================================
def _read_json(config_path: str) -> Dict[str, Any]:
    if not os.path.exists(config_path):
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")
    return data


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Config value '{name}' must be a number, got {value!r}")


def load_config(config_path: str = CONFIG_FILE, env: Optional[Mapping[str, str]] = None,
                use_keyring: bool = True) -> RelayConfig:
    """Load configuration from .env, the environment, the JSON file and keyring.

    Precedence: environment variable, then JSON key, then keyring (secrets
    only), then the default.

    Args:
        config_path: Path to the optional JSON config file
        env: Environment mapping; defaults to os.environ after load_dotenv()
        use_keyring: Look up missing secrets in keyring

    Returns:
        RelayConfig (not yet validated; call require_sync/require_delivery)
    """
    if env is None:
        load_dotenv()
        env = os.environ
    data = _read_json(config_path)

    def pick(env_name: str, json_key: str, default: Any = "") -> Any:
        value = env.get(env_name)
        if value not in (None, ""):
            return value
        return data.get(json_key, default)

    def secret(env_name: str, key: str) -> str:
        value = pick(env_name, key)
        if not value and use_keyring:
            value = load_secret(key) or ""
        return value

    schema_data = data.get("schema") or {}
    if not isinstance(schema_data, dict):
        raise ConfigError(f"Invalid schema section in {config_path}: must be an object")
    try:
        request_schema = StoreSchema.from_dict(schema_data.get("request") or {}, PropertyKind.TITLE)
        stock_schema = StoreSchema.from_dict(schema_data.get("stock") or {}, PropertyKind.RICH_TEXT)
    except (ValueError, SchemaError) as e:
        raise ConfigError(f"Invalid schema section in {config_path}: {e}")

    kwargs = {}
    state_dir = pick("NOTION_RELAY_STATE_DIR", "state_dir")
    if state_dir:
        kwargs["state_dir"] = os.path.expanduser(state_dir)

    return RelayConfig(
        notion_token=secret("NOTION_TOKEN", "notion_token"),
        request_db_id=pick("NOTION_REQUEST_DB_ID", "request_db_id"),
        stock_db_id=pick("NOTION_STOCK_DB_ID", "stock_db_id"),
        notion_version=pick("NOTION_VERSION", "notion_version", NOTION_VERSION),
        request_schema=request_schema,
        stock_schema=stock_schema,
        chat_base_url=pick("CHAT_BASE_URL", "chat_base_url"),
        chat_api_key=secret("CHAT_API_KEY", "chat_api_key"),
        chat_channel_id=str(pick("CHAT_CHANNEL_ID", "chat_channel_id")),
        chat_message_text=pick("CHAT_MESSAGE_TEXT", "chat_message_text", DEFAULT_MESSAGE_TEXT),
        idempotency_prefix=pick("IDEMPOTENCY_PREFIX", "idempotency_prefix", DEFAULT_IDEMPOTENCY_PREFIX),
        cache_ttl_hours=_parse_float("cache_ttl_hours", pick("CACHE_TTL_HOURS", "cache_ttl_hours", SENT_CACHE_TTL_HOURS)),
        delete_after_send=_parse_bool(pick("DELETE_AFTER_SEND", "delete_after_send", False)),
        outbox_dir=pick("OUTBOX_DIR", "outbox_dir", "outbox"),
        send_interval=_parse_float("send_interval", pick("SEND_INTERVAL_SECONDS", "send_interval", DEFAULT_SEND_INTERVAL)),
        **kwargs,
    )
