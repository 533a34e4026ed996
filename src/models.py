"""Request and response models for the storefront chat gateway."""

from typing import Optional

from pydantic import BaseModel, Field


class ChatMessageRequest(BaseModel):
    """Incoming chat message from the storefront page."""

    message: Optional[str] = Field(default=None, description="The shopper's message")


class ChatReply(BaseModel):
    """Chat response envelope.

    ``success`` is only true when the model produced a reply; ``response``
    always carries text that can be shown to the shopper.
    """

    success: bool
    outcome: str
    response: str


class ErrorDetail(BaseModel):
    """Structured error detail."""

    type: str
    message: str


class ErrorResponse(BaseModel):
    """Error response envelope."""

    error: ErrorDetail
