"""FastAPI application for the storefront chat gateway.

Provides a /chat/send endpoint that grounds the shopper's message in the
product catalog and forwards it to the chat service, plus a /health probe.

The chat service never raises for upstream failures; every call returns a
reply envelope whose ``outcome`` names the result kind.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.catalog import InMemoryCatalog, build_system_prompt, default_catalog, load_catalog
from src.chat_service import ChatRequest, ChatService
from src.config import GatewayConfig, load_config
from src.models import ChatMessageRequest, ChatReply, ErrorDetail, ErrorResponse
from src.results import render_reply
from src.telemetry import log_event, setup_logging

CONFIG_PATH = os.getenv("GATEWAY_CONFIG", "config/example.config.json")

_config: Optional[GatewayConfig] = None
_catalog: Optional[InMemoryCatalog] = None
_chat_service: Optional[ChatService] = None


def get_config() -> GatewayConfig:
    """Return the loaded gateway configuration (lazy-init)."""
    global _config
    if _config is None:
        _config = load_config(CONFIG_PATH)
    return _config


def get_catalog() -> InMemoryCatalog:
    """Return the product catalog (lazy-init from config)."""
    global _catalog
    if _catalog is None:
        cfg = get_config()
        if cfg.catalog_file:
            _catalog = load_catalog(cfg.catalog_file)
        else:
            _catalog = default_catalog()
    return _catalog


def get_chat_service() -> ChatService:
    """Return the chat service (lazy-init from config)."""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService(get_config().chat)
    return _chat_service


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Initialize config, logging, catalog and chat service on startup."""
    global _chat_service
    cfg = get_config()
    setup_logging(cfg.log_file, cfg.log_level)
    get_catalog()
    get_chat_service()
    yield
    if _chat_service is not None:
        await _chat_service.aclose()
        _chat_service = None


app = FastAPI(title="Storefront Chat Gateway", version="0.1.0", lifespan=lifespan)


def _error_response(status: int, error_type: str, message: str) -> JSONResponse:
    """Build a consistent JSON error response."""
    body = ErrorResponse(error=ErrorDetail(type=error_type, message=message))
    return JSONResponse(status_code=status, content=body.model_dump())


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post("/chat/send", response_model=None)
async def send_message(request: ChatMessageRequest) -> JSONResponse:
    """Answer a shopper's question about the catalog.

    Request flow:
    1. Reject blank messages
    2. Build the grounding prompt from the catalog
    3. Run the chat service (credential, moderation, completion)
    4. Render the result as reply text
    """
    if not request.message or not request.message.strip():
        return _error_response(400, "validation_error", "Message cannot be empty")

    log_event("chat_request_received")

    system_prompt = build_system_prompt(get_catalog().list_products())
    result = await get_chat_service().complete(
        ChatRequest(request.message, system_prompt)
    )

    reply = ChatReply(success=result.ok, outcome=result.kind, response=render_reply(result))
    return JSONResponse(status_code=200, content=reply.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Convert FastAPI's validation errors into our error envelope format."""
    return _error_response(
        422,
        "validation_error",
        "Request validation failed: {}".format(exc),
    )
