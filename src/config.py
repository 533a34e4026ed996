"""Configuration loader for the storefront chat gateway.

Reads a JSON config file describing the chat-completions endpoint, the
optional content-safety endpoint, and where to find the product catalog.
Secrets are never stored in the file; they are resolved from environment
variables each time they are read.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import httpx

DEFAULT_MODEL_NAME = "Phi4"
REQUIRED_ENDPOINT_PATH = "/chat/completions"


def _env_value(name: Optional[str]) -> Optional[str]:
    if not name:
        return None
    value = os.getenv(name)
    return value or None


@dataclass(frozen=True)
class ChatConfig:
    """Settings for a single chat call. Read-only once loaded."""

    endpoint_url: str
    model_name: str = DEFAULT_MODEL_NAME
    api_key_env: Optional[str] = "AI_FOUNDRY_API_KEY"
    moderation_endpoint: Optional[str] = None
    moderation_key_env: Optional[str] = "CONTENT_SAFETY_KEY"
    use_managed_identity: bool = True
    timeout_seconds: float = 30.0

    @property
    def api_key(self) -> Optional[str]:
        """Resolve the completion API key from the environment variable."""
        return _env_value(self.api_key_env)

    @property
    def moderation_key(self) -> Optional[str]:
        """Resolve the content-safety key from the environment variable."""
        return _env_value(self.moderation_key_env)


@dataclass(frozen=True)
class GatewayConfig:
    """Top-level gateway configuration."""

    chat: ChatConfig
    catalog_file: Optional[str] = None
    log_file: str = "logs/gateway.log"
    log_level: str = "INFO"


def endpoint_error(config: ChatConfig) -> Optional[str]:
    """Return why the completion endpoint is unusable, or None if it is fine."""
    endpoint = (config.endpoint_url or "").strip()
    if not endpoint:
        return "Missing chat completions endpoint."
    if REQUIRED_ENDPOINT_PATH not in endpoint:
        return "Endpoint must include {} path.".format(REQUIRED_ENDPOINT_PATH)
    try:
        url = httpx.URL(endpoint)
    except httpx.InvalidURL as exc:
        return "Endpoint is not a valid URL: {}".format(exc)
    if url.scheme not in ("http", "https") or not url.host:
        return "Endpoint must be an absolute http(s) URL."
    return None


def load_config(path: Union[str, Path]) -> GatewayConfig:
    """Load gateway configuration from a JSON file.

    Args:
        path: Path to the JSON config file.

    Returns:
        A fully resolved GatewayConfig instance.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the config file contains invalid data.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw: Dict[str, Any] = json.load(f)

    chat_raw = raw.get("chat")
    if not isinstance(chat_raw, dict) or "endpoint" not in chat_raw:
        raise ValueError("Config must define chat.endpoint")

    safety_raw = raw.get("content_safety") or {}

    chat = ChatConfig(
        endpoint_url=chat_raw["endpoint"] or "",
        model_name=chat_raw.get("model") or DEFAULT_MODEL_NAME,
        api_key_env=chat_raw.get("api_key_env", "AI_FOUNDRY_API_KEY"),
        moderation_endpoint=safety_raw.get("endpoint") or None,
        moderation_key_env=safety_raw.get("key_env", "CONTENT_SAFETY_KEY"),
        use_managed_identity=bool(chat_raw.get("use_managed_identity", True)),
        timeout_seconds=float(chat_raw.get("timeout_seconds", 30.0)),
    )

    return GatewayConfig(
        chat=chat,
        catalog_file=raw.get("catalog_file"),
        log_file=raw.get("log_file", "logs/gateway.log"),
        log_level=raw.get("log_level", "INFO"),
    )
