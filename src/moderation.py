"""Content-safety screening for inbound chat messages.

Messages are scored by Azure AI Content Safety before they reach the model.
Any category at or above SEVERITY_THRESHOLD blocks the message.

The gate is fail-open: when it is unconfigured, or the classifier cannot be
reached or answers with something unreadable, the message is allowed.
Moderation is an add-on here and must not take the chat feature down with it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from src.config import ChatConfig
from src.telemetry import log_event, truncate

CONTENT_SAFETY_API_VERSION = "2024-09-01"
SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"
CATEGORIES = ["Hate", "SelfHarm", "Sexual", "Violence"]

# FourSeverityLevels scale: 0, 2, 4, 6.
SEVERITY_THRESHOLD = 2

BLOCK_MESSAGE = (
    "I'm unable to process that message due to our content policy. "
    "Please rephrase your question and try again."
)


@dataclass(frozen=True)
class ModerationVerdict:
    """Allow/block decision for one message."""

    allowed: bool
    block_message: Optional[str] = None
    severities: Dict[str, int] = field(default_factory=dict)


ALLOW = ModerationVerdict(allowed=True)


class MalformedModerationResponse(ValueError):
    """Raised when the classifier body is not the expected shape."""


def evaluate_categories(categories: List[Dict[str, Any]]) -> ModerationVerdict:
    """Apply the severity rule to a list of category/severity pairs.

    Args:
        categories: Entries shaped like {"category": "Hate", "severity": 2}.

    Returns:
        A blocking verdict if any severity reaches the threshold.

    Raises:
        MalformedModerationResponse: If an entry lacks an integer severity.
    """
    severities: Dict[str, int] = {}
    for entry in categories:
        if not isinstance(entry, dict):
            raise MalformedModerationResponse("category entry is not an object")
        severity = entry.get("severity")
        if isinstance(severity, bool) or not isinstance(severity, int):
            raise MalformedModerationResponse(
                "category {!r} has no integer severity".format(entry.get("category"))
            )
        severities[str(entry.get("category", "unknown"))] = severity

    if any(s >= SEVERITY_THRESHOLD for s in severities.values()):
        return ModerationVerdict(
            allowed=False, block_message=BLOCK_MESSAGE, severities=severities
        )
    return ModerationVerdict(allowed=True, severities=severities)


def _analyze_url(endpoint: str) -> str:
    return "{}/contentsafety/text:analyze".format(endpoint.rstrip("/"))


async def check_message(
    message: str,
    config: ChatConfig,
    client: httpx.AsyncClient,
) -> ModerationVerdict:
    """Screen a user message through the content-safety classifier.

    Args:
        message: The raw user message.
        config: Chat configuration holding the moderation endpoint and key.
        client: Shared HTTP client.

    Returns:
        The verdict. Never raises for classifier failures (fail-open).
    """
    endpoint = config.moderation_endpoint
    key = config.moderation_key
    if not endpoint or not key:
        return ALLOW

    try:
        resp = await client.post(
            _analyze_url(endpoint),
            params={"api-version": CONTENT_SAFETY_API_VERSION},
            json={
                "text": message,
                "categories": CATEGORIES,
                "outputType": "FourSeverityLevels",
            },
            headers={SUBSCRIPTION_KEY_HEADER: key},
            timeout=config.timeout_seconds,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        log_event(
            "moderation_unavailable",
            level=logging.WARNING,
            error="{}: {}".format(type(exc).__name__, exc),
        )
        return ALLOW

    if resp.status_code >= 400:
        log_event(
            "moderation_unavailable",
            level=logging.WARNING,
            status_code=resp.status_code,
            error=truncate(resp.text),
        )
        return ALLOW

    try:
        data = resp.json()
        categories = data["categoriesAnalysis"]
        if not isinstance(categories, list):
            raise MalformedModerationResponse("categoriesAnalysis is not a list")
        verdict = evaluate_categories(categories)
    except (ValueError, KeyError, TypeError) as exc:
        log_event(
            "moderation_unavailable",
            level=logging.WARNING,
            error="malformed classifier response: {}".format(exc),
        )
        return ALLOW

    if not verdict.allowed:
        log_event("moderation_blocked", severities=verdict.severities)
    return verdict
