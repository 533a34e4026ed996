"""Shared test fixtures for the storefront chat gateway tests."""

import json
from pathlib import Path
from typing import Dict, Optional

import pytest

from src.config import ChatConfig, GatewayConfig, load_config
from tests._helpers import ENDPOINT, MODERATION_ENDPOINT


def _make_config(tmp_path: Path, overrides: Optional[Dict] = None) -> str:
    """Write a minimal test config and return its path."""
    config = {
        "chat": {
            "endpoint": ENDPOINT,
            "model": "Phi4",
            "api_key_env": "TEST_FOUNDRY_KEY",
            "timeout_seconds": 5,
        },
        "content_safety": {
            "endpoint": MODERATION_ENDPOINT,
            "key_env": "TEST_SAFETY_KEY",
        },
        "log_file": str(tmp_path / "test.log"),
    }
    if overrides:
        config.update(overrides)

    path = tmp_path / "test_config.json"
    path.write_text(json.dumps(config))
    return str(path)


@pytest.fixture()
def test_config_path(tmp_path: Path) -> str:
    """Return the path to a temporary test config file."""
    return _make_config(tmp_path)


@pytest.fixture()
def test_config(test_config_path: str) -> GatewayConfig:
    """Return a loaded test GatewayConfig."""
    return load_config(test_config_path)


@pytest.fixture()
def chat_config(monkeypatch: pytest.MonkeyPatch) -> ChatConfig:
    """A valid chat config with no API key and moderation unset."""
    monkeypatch.delenv("TEST_FOUNDRY_KEY", raising=False)
    monkeypatch.delenv("TEST_SAFETY_KEY", raising=False)
    return ChatConfig(
        endpoint_url=ENDPOINT,
        api_key_env="TEST_FOUNDRY_KEY",
        moderation_endpoint=None,
        moderation_key_env="TEST_SAFETY_KEY",
        timeout_seconds=5.0,
    )
