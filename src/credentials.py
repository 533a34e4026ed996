"""Credential resolution for the chat-completions endpoint.

Authentication is a fallback chain, not a retry: the ambient managed
identity is asked for a token exactly once per call, and if that fails the
configured API key is used instead. When neither is available the caller
gets CredentialUnavailable and must report an authentication failure rather
than send the request unauthenticated.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Union

from azure.core.credentials_async import AsyncTokenCredential
from azure.identity.aio import DefaultAzureCredential

from src.config import ChatConfig
from src.telemetry import log_event

# Audience for Azure AI services (Foundry, OpenAI, Content Safety).
AI_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"

API_KEY_HEADER = "api-key"


@dataclass(frozen=True)
class IdentityToken:
    """Bearer token obtained from the workload identity."""

    token: str

    def __repr__(self) -> str:
        return "IdentityToken(token=***)"


@dataclass(frozen=True)
class ApiKeyCredential:
    """Static API key taken from configuration."""

    key: str

    def __repr__(self) -> str:
        return "ApiKeyCredential(key=***)"


@dataclass(frozen=True)
class CredentialUnavailable:
    """Neither identity nor key could be used."""

    reason: str


CredentialOutcome = Union[IdentityToken, ApiKeyCredential, CredentialUnavailable]


async def _identity_token(credential: Optional[AsyncTokenCredential]) -> str:
    if credential is not None:
        access = await credential.get_token(AI_SERVICES_SCOPE)
        return access.token

    async with DefaultAzureCredential() as ambient:
        access = await ambient.get_token(AI_SERVICES_SCOPE)
    return access.token


async def resolve_credential(
    config: ChatConfig,
    credential: Optional[AsyncTokenCredential] = None,
) -> CredentialOutcome:
    """Pick the credential to authenticate the completion request with.

    Args:
        config: The chat configuration (identity toggle and API key).
        credential: An async token credential to use instead of opening a
            fresh DefaultAzureCredential. The caller keeps ownership of it.

    Returns:
        IdentityToken, ApiKeyCredential or CredentialUnavailable.
    """
    identity_failure = "managed identity disabled"

    if config.use_managed_identity:
        try:
            token = await asyncio.wait_for(
                _identity_token(credential), timeout=config.timeout_seconds
            )
        except Exception as exc:
            identity_failure = "managed identity unavailable: {}".format(
                type(exc).__name__
            )
            log_event(
                "credential_identity_failed",
                level=logging.WARNING,
                error="{}: {}".format(type(exc).__name__, exc),
            )
        else:
            if token:
                log_event("credential_resolved", method="managed_identity")
                return IdentityToken(token=token)
            identity_failure = "managed identity returned an empty token"

    api_key = config.api_key
    if api_key:
        log_event("credential_resolved", method="api_key")
        return ApiKeyCredential(key=api_key)

    reason = "{}; no API key configured".format(identity_failure)
    log_event("credential_unavailable", level=logging.ERROR, reason=reason)
    return CredentialUnavailable(reason=reason)


def auth_headers(outcome: CredentialOutcome) -> Dict[str, str]:
    """Build the authentication headers for a resolved credential.

    Identity and API key are mutually exclusive; exactly one header is set.

    Raises:
        ValueError: If called with CredentialUnavailable.
    """
    if isinstance(outcome, IdentityToken):
        return {"Authorization": "Bearer {}".format(outcome.token)}
    if isinstance(outcome, ApiKeyCredential):
        return {API_KEY_HEADER: outcome.key}
    raise ValueError("No usable credential: {}".format(outcome.reason))
