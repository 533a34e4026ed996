"""End-to-end tests for the chat orchestrator.

Every scenario runs against httpx.MockTransport and fake identity
credentials, so each failure branch is reachable without real I/O faults.
"""

import dataclasses
import json

import httpx
import pytest

from src.chat_service import ChatRequest, ChatService
from src.config import ChatConfig
from src.credentials import API_KEY_HEADER
from src.moderation import BLOCK_MESSAGE
from src.results import (
    ApiError,
    AuthError,
    ConfigError,
    ModerationBlocked,
    NetworkError,
    Ok,
    ParseError,
)
from tests._helpers import (
    FOUNDRY_HOST,
    MODERATION_ENDPOINT,
    MODERATION_HOST,
    FakeCredential,
    RecordingHandler,
    UnavailableCredential,
    completion_body,
    moderation_body,
)


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=completion_body("We carry a standing desk."))


class TestChatRequest:
    def test_message_is_trimmed(self) -> None:
        assert ChatRequest("  hi  ").user_message == "hi"

    @pytest.mark.parametrize("message", ["", "   "])
    def test_empty_message_rejected(self, message: str) -> None:
        with pytest.raises(ValueError):
            ChatRequest(message)

    def test_blank_system_prompt_dropped(self) -> None:
        assert ChatRequest("hi", "  ").system_prompt is None


@pytest.mark.asyncio
async def test_happy_path_with_identity(chat_config: ChatConfig) -> None:
    handler = RecordingHandler({FOUNDRY_HOST: _ok})
    async with handler.client() as client:
        service = ChatService(chat_config, client, FakeCredential("tok"))
        result = await service.complete(ChatRequest("Do you sell desks?", "You are helpful."))

    assert result == Ok("We carry a standing desk.")
    (request,) = handler.requests
    assert request.headers["Authorization"] == "Bearer tok"
    sent = json.loads(request.content)
    assert [m["role"] for m in sent["messages"]] == ["system", "user"]
    assert sent["model"] == "Phi4"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "endpoint",
    ["", "https://foundry.example.com/", "https://foundry.example.com/v1/completions"],
)
async def test_invalid_endpoint_never_sends(chat_config: ChatConfig, endpoint: str) -> None:
    config = dataclasses.replace(chat_config, endpoint_url=endpoint)
    credential = FakeCredential()
    handler = RecordingHandler({FOUNDRY_HOST: _ok})
    async with handler.client() as client:
        service = ChatService(config, client, credential)
        result = await service.complete(ChatRequest("hi"))

    assert isinstance(result, ConfigError)
    assert handler.requests == []
    assert credential.scopes == []


@pytest.mark.asyncio
async def test_identity_fails_without_key_is_auth_error(chat_config: ChatConfig) -> None:
    handler = RecordingHandler({FOUNDRY_HOST: _ok})
    async with handler.client() as client:
        service = ChatService(chat_config, client, UnavailableCredential())
        result = await service.complete(ChatRequest("hi"))

    assert isinstance(result, AuthError)
    assert handler.to(FOUNDRY_HOST) == []


@pytest.mark.asyncio
async def test_identity_fails_with_key_uses_key_header(
    chat_config: ChatConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TEST_FOUNDRY_KEY", "static-key")
    handler = RecordingHandler({FOUNDRY_HOST: _ok})
    async with handler.client() as client:
        service = ChatService(chat_config, client, UnavailableCredential())
        result = await service.complete(ChatRequest("hi"))

    assert isinstance(result, Ok)
    (request,) = handler.requests
    assert request.headers[API_KEY_HEADER] == "static-key"
    assert "Authorization" not in request.headers


@pytest.mark.asyncio
async def test_rate_limited_upstream_is_api_error(chat_config: ChatConfig) -> None:
    handler = RecordingHandler(
        {FOUNDRY_HOST: lambda r: httpx.Response(429, text='{"error":"Too many requests"}')}
    )
    async with handler.client() as client:
        service = ChatService(chat_config, client, FakeCredential())
        result = await service.complete(ChatRequest("hi"))
        reply = await service.send_message("hi")

    assert result == ApiError(status_code=429, detail='{"error":"Too many requests"}')
    assert "429" in reply


@pytest.mark.asyncio
async def test_network_failure_is_network_error(chat_config: ChatConfig) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    handler = RecordingHandler({FOUNDRY_HOST: refuse})
    async with handler.client() as client:
        service = ChatService(chat_config, client, FakeCredential())
        result = await service.complete(ChatRequest("hi"))
        reply = await service.send_message("hi")

    assert isinstance(result, NetworkError)
    assert "connection refused" not in reply


@pytest.mark.asyncio
async def test_unparseable_reply_is_parse_error(chat_config: ChatConfig) -> None:
    handler = RecordingHandler({FOUNDRY_HOST: lambda r: httpx.Response(200, json={"choices": []})})
    async with handler.client() as client:
        service = ChatService(chat_config, client, FakeCredential())
        result = await service.complete(ChatRequest("hi"))

    assert isinstance(result, ParseError)


@pytest.mark.asyncio
async def test_moderation_block_short_circuits(
    chat_config: ChatConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TEST_SAFETY_KEY", "safety-key")
    config = dataclasses.replace(chat_config, moderation_endpoint=MODERATION_ENDPOINT)
    handler = RecordingHandler(
        {
            MODERATION_HOST: lambda r: httpx.Response(200, json=moderation_body(Violence=4)),
            FOUNDRY_HOST: _ok,
        }
    )
    async with handler.client() as client:
        service = ChatService(config, client, FakeCredential())
        result = await service.complete(ChatRequest("something violent"))

    assert result == ModerationBlocked(BLOCK_MESSAGE)
    assert len(handler.to(MODERATION_HOST)) == 1
    assert handler.to(FOUNDRY_HOST) == []


@pytest.mark.asyncio
async def test_moderation_outage_still_answers(
    chat_config: ChatConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TEST_SAFETY_KEY", "safety-key")
    config = dataclasses.replace(chat_config, moderation_endpoint=MODERATION_ENDPOINT)
    handler = RecordingHandler(
        {
            MODERATION_HOST: lambda r: httpx.Response(503, text="unavailable"),
            FOUNDRY_HOST: _ok,
        }
    )
    async with handler.client() as client:
        service = ChatService(config, client, FakeCredential())
        result = await service.complete(ChatRequest("hi"))

    assert isinstance(result, Ok)
    assert len(handler.to(FOUNDRY_HOST)) == 1


@pytest.mark.asyncio
async def test_moderation_runs_after_credential_and_before_completion(
    chat_config: ChatConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TEST_SAFETY_KEY", "safety-key")
    config = dataclasses.replace(chat_config, moderation_endpoint=MODERATION_ENDPOINT)
    handler = RecordingHandler(
        {
            MODERATION_HOST: lambda r: httpx.Response(200, json=moderation_body(Hate=0)),
            FOUNDRY_HOST: _ok,
        }
    )
    async with handler.client() as client:
        service = ChatService(config, client, FakeCredential())
        await service.complete(ChatRequest("hi"))

    assert [r.url.host for r in handler.requests] == [MODERATION_HOST, FOUNDRY_HOST]


@pytest.mark.asyncio
async def test_send_message_returns_reply_text(chat_config: ChatConfig) -> None:
    handler = RecordingHandler({FOUNDRY_HOST: _ok})
    async with handler.client() as client:
        service = ChatService(chat_config, client, FakeCredential())
        reply = await service.send_message("Do you sell desks?")

    assert reply == "We carry a standing desk."


@pytest.mark.asyncio
async def test_owned_client_is_closed(chat_config: ChatConfig) -> None:
    service = ChatService(chat_config)
    await service.aclose()
    assert service._client.is_closed


@pytest.mark.asyncio
async def test_injected_client_is_left_open(chat_config: ChatConfig) -> None:
    async with httpx.AsyncClient() as client:
        service = ChatService(chat_config, client)
        await service.aclose()
        assert not client.is_closed


@pytest.mark.asyncio
async def test_unparseable_endpoint_is_config_error(chat_config: ChatConfig) -> None:
    config = dataclasses.replace(
        chat_config, endpoint_url="https://foundry.example.com/chat/completions\x7f"
    )
    handler = RecordingHandler({FOUNDRY_HOST: _ok})
    async with handler.client() as client:
        service = ChatService(config, client, FakeCredential())
        result = await service.complete(ChatRequest("hi"))

    assert isinstance(result, ConfigError)
    assert handler.requests == []


@pytest.mark.asyncio
async def test_malformed_moderation_endpoint_still_answers(
    chat_config: ChatConfig, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("TEST_SAFETY_KEY", "safety-key")
    config = dataclasses.replace(
        chat_config, moderation_endpoint="https://safety.example.com\x7f"
    )
    handler = RecordingHandler({FOUNDRY_HOST: _ok})
    async with handler.client() as client:
        service = ChatService(config, client, FakeCredential())
        result = await service.complete(ChatRequest("hi"))

    assert isinstance(result, Ok)
    assert len(handler.to(FOUNDRY_HOST)) == 1
