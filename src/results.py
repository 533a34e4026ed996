"""Outcomes of a single chat call.

Every path through the chat service ends in exactly one of these variants.
Failures are returned by value rather than raised, so callers can branch on
the type and the HTTP layer decides how to present them.
"""

from dataclasses import dataclass
from typing import Union

import httpx


@dataclass(frozen=True)
class Ok:
    text: str

    kind = "ok"
    ok = True


@dataclass(frozen=True)
class ConfigError:
    detail: str

    kind = "config_error"
    ok = False


@dataclass(frozen=True)
class AuthError:
    detail: str

    kind = "auth_error"
    ok = False


@dataclass(frozen=True)
class NetworkError:
    detail: str

    kind = "network_error"
    ok = False


@dataclass(frozen=True)
class ApiError:
    status_code: int
    detail: str

    kind = "api_error"
    ok = False


@dataclass(frozen=True)
class ParseError:
    detail: str

    kind = "parse_error"
    ok = False


@dataclass(frozen=True)
class ModerationBlocked:
    message: str

    kind = "moderation_blocked"
    ok = False


CompletionResult = Union[
    Ok, ConfigError, AuthError, NetworkError, ApiError, ParseError, ModerationBlocked
]


def render_reply(result: CompletionResult) -> str:
    """Turn a result into the text shown to the shopper.

    Auth, network and parse failures get generic wording so no credential
    or transport detail leaks out; the detail is in the logs instead.
    """
    if isinstance(result, Ok):
        return result.text
    if isinstance(result, ModerationBlocked):
        return result.message
    if isinstance(result, ApiError):
        reason = httpx.codes.get_reason_phrase(result.status_code)
        if reason:
            return "Error from chat endpoint: HTTP {} ({})".format(
                result.status_code, reason
            )
        return "Error from chat endpoint: HTTP {}".format(result.status_code)
    if isinstance(result, ConfigError):
        return "Configuration error: {}".format(result.detail)
    if isinstance(result, AuthError):
        return "Authentication error: unable to authenticate with the chat endpoint."
    if isinstance(result, NetworkError):
        return "Network error: unable to reach the chat endpoint."
    if isinstance(result, ParseError):
        return "Error parsing response from the chat endpoint."
    raise TypeError("Unknown completion result: {!r}".format(result))
