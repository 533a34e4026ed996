"""HTTP client for the chat-completions endpoint.

Issues exactly one POST per call. There is no retry, no backoff and no
idempotency key; transient failures are reported once and the caller
decides what to do. Non-2xx statuses are returned as ApiError rather than
raised, with the body read in full so the diagnostic detail is kept.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Union

import httpx

from src.credentials import CredentialOutcome, auth_headers
from src.results import ApiError, NetworkError
from src.telemetry import log_event, truncate


@dataclass(frozen=True)
class RawCompletion:
    """A 2xx response from the endpoint, not yet parsed."""

    status_code: int
    body: str


async def send_completion(
    client: httpx.AsyncClient,
    endpoint: str,
    payload: Dict[str, Any],
    credential: CredentialOutcome,
    timeout: float = 30.0,
) -> Union[RawCompletion, ApiError, NetworkError]:
    """POST a completion payload and classify the HTTP outcome.

    Args:
        client: Shared HTTP client (connection pool).
        endpoint: Full chat-completions URL.
        payload: Body built by completion.build_payload.
        credential: Resolved credential; selects the auth header.
        timeout: Per-request timeout in seconds.

    Returns:
        RawCompletion on 2xx, ApiError on any other status, NetworkError
        when the request could not be completed.

    Raises:
        ValueError: If credential is CredentialUnavailable.
    """
    headers = {"Content-Type": "application/json"}
    headers.update(auth_headers(credential))

    try:
        resp = await client.post(endpoint, json=payload, headers=headers, timeout=timeout)
    except httpx.TimeoutException as exc:
        log_event(
            "completion_timeout",
            level=logging.ERROR,
            error="{}: {}".format(type(exc).__name__, exc),
        )
        return NetworkError("request timed out after {}s".format(timeout))
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        log_event(
            "completion_network_error",
            level=logging.ERROR,
            error="{}: {}".format(type(exc).__name__, exc),
        )
        return NetworkError("{}: {}".format(type(exc).__name__, exc))

    body = resp.text
    if not resp.is_success:
        log_event(
            "completion_api_error",
            level=logging.ERROR,
            status_code=resp.status_code,
            error=truncate(body),
        )
        return ApiError(status_code=resp.status_code, detail=body)

    return RawCompletion(status_code=resp.status_code, body=body)
