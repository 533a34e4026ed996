"""Chat orchestration: one user message in, one CompletionResult out.

Request flow (each step may end the call early):
1. Validate the endpoint configuration        -> ConfigError
2. Resolve a credential (identity, then key)  -> AuthError
3. Screen the message through moderation      -> ModerationBlocked
4. Build the completion payload
5. POST it to the completions endpoint        -> ApiError / NetworkError
6. Extract the first choice's content         -> ParseError / Ok

Calls are stateless. The only shared state is the read-only configuration
and the HTTP connection pool. Steps run sequentially; the identity,
moderation and completion requests each await in turn.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

import httpx
from azure.core.credentials_async import AsyncTokenCredential

from src.completion import build_payload, extract_reply
from src.config import ChatConfig, endpoint_error
from src.credentials import CredentialUnavailable, resolve_credential
from src.moderation import BLOCK_MESSAGE, check_message
from src.provider import RawCompletion, send_completion
from src.results import (
    ApiError,
    AuthError,
    CompletionResult,
    ConfigError,
    ModerationBlocked,
    render_reply,
)
from src.telemetry import log_chat_result


@dataclass(frozen=True)
class ChatRequest:
    """A single-turn chat request."""

    user_message: str
    system_prompt: Optional[str] = None

    def __post_init__(self) -> None:
        message = (self.user_message or "").strip()
        if not message:
            raise ValueError("user_message must not be empty")
        object.__setattr__(self, "user_message", message)
        if self.system_prompt is not None and not self.system_prompt.strip():
            object.__setattr__(self, "system_prompt", None)


class ChatService:
    """Sends single-turn chat requests to the configured model endpoint."""

    def __init__(
        self,
        config: ChatConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        credential: Optional[AsyncTokenCredential] = None,
    ) -> None:
        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_seconds
        )
        self._credential = credential

    @property
    def config(self) -> ChatConfig:
        return self._config

    async def aclose(self) -> None:
        """Close the HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    async def complete(self, request: ChatRequest) -> CompletionResult:
        """Run one chat request through the full pipeline."""
        config = self._config
        request_id = "chat-{}".format(uuid.uuid4().hex[:12])

        problem = endpoint_error(config)
        if problem is not None:
            return self._finish(request_id, ConfigError(problem), error=problem)

        credential = await resolve_credential(config, self._credential)
        if isinstance(credential, CredentialUnavailable):
            return self._finish(
                request_id, AuthError(credential.reason), error=credential.reason
            )

        verdict = await check_message(request.user_message, config, self._client)
        if not verdict.allowed:
            return self._finish(
                request_id, ModerationBlocked(verdict.block_message or BLOCK_MESSAGE)
            )

        payload = build_payload(
            request.user_message, request.system_prompt, config.model_name
        )
        sent = await send_completion(
            self._client,
            config.endpoint_url.strip(),
            payload,
            credential,
            timeout=config.timeout_seconds,
        )
        if not isinstance(sent, RawCompletion):
            status = sent.status_code if isinstance(sent, ApiError) else None
            return self._finish(
                request_id, sent, status_code=status, error=sent.detail
            )

        result = extract_reply(sent.body)
        return self._finish(
            request_id,
            result,
            status_code=sent.status_code,
            error=None if result.ok else result.detail,
        )

    async def send_message(
        self, user_message: str, system_prompt: Optional[str] = None
    ) -> str:
        """Send a message and return the reply or a readable status message."""
        result = await self.complete(ChatRequest(user_message, system_prompt))
        return render_reply(result)

    def _finish(
        self,
        request_id: str,
        result: CompletionResult,
        status_code: Optional[int] = None,
        error: Optional[str] = None,
    ) -> CompletionResult:
        log_chat_result(
            request_id=request_id,
            model=self._config.model_name,
            outcome=result.kind,
            status_code=status_code,
            error=error,
        )
        return result
