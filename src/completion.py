"""Chat-completion payload building and reply extraction.

Both halves are pure: no I/O, no logging. The provider module does the
HTTP exchange in between.
"""

import json
from typing import Any, Dict, List, Optional, Union

from src.results import Ok, ParseError

# Fixed generation parameters. Not configurable per call.
MAX_TOKENS = 500
TEMPERATURE = 0.7

NO_RESPONSE = "No response from the model."


def build_payload(
    user_message: str,
    system_prompt: Optional[str],
    model_name: str,
) -> Dict[str, Any]:
    """Assemble the chat-completions request body.

    The system message, when given, is first; the user message is always
    last. No other roles are emitted.
    """
    messages: List[Dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_message})

    return {
        "model": model_name,
        "messages": messages,
        "max_tokens": MAX_TOKENS,
        "temperature": TEMPERATURE,
    }


def extract_reply(raw_body: Optional[str]) -> Union[Ok, ParseError]:
    """Pull choices[0].message.content out of a completion envelope.

    Args:
        raw_body: The response body as text.

    Returns:
        Ok with the assistant text (NO_RESPONSE when the content is null or
        empty), or ParseError when the body is empty, not JSON, or lacks the
        content path.
    """
    if raw_body is None or not raw_body.strip():
        return ParseError("empty response")

    try:
        data = json.loads(raw_body)
    except json.JSONDecodeError as exc:
        return ParseError("invalid JSON: {}".format(exc))

    if not isinstance(data, dict):
        return ParseError("response is not a JSON object")

    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ParseError("response has no choices")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict) or "content" not in message:
        return ParseError("first choice has no message content")

    content = message["content"]
    if content is None:
        return Ok(NO_RESPONSE)
    if not isinstance(content, str):
        return ParseError("message content is not a string")
    if not content.strip():
        return Ok(NO_RESPONSE)
    return Ok(content)
