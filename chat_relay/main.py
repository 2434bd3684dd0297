# chat_relay/main.py

import json
import os
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from fastapi.staticfiles import StaticFiles

from chat_relay.config import Settings, get_settings, log, setup_logging
from chat_relay.core.conversation import ensure_system_message
from chat_relay.core.errors import RelayError
from chat_relay.models.chat_models import ChatRequest, ErrorBody
from chat_relay.modules.providers import ProviderRegistry, build_registry

OTHER_METHODS = ["GET", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

# --- REQUEST PARSING ---

def parse_chat_request(raw_body: bytes, settings: Settings) -> ChatRequest:
    """Reads the JSON body, filling in the defaults for anything the client left out."""
    body = json.loads(raw_body) if raw_body.strip() else {}
    if not isinstance(body, dict):
        raise ValueError("Request body must be a JSON object")
    return ChatRequest.model_validate({
        "messages": body.get("messages") or [],
        "model": body.get("model") or settings.DEFAULT_MODEL,
        "apiKey": body.get("apiKey") or "",
    })

# --- ENDPOINTS ---

async def chat_handler(request: Request) -> Response:
    """Normalizes the conversation and hands it to the provider serving the requested model."""
    settings: Settings = request.app.state.settings
    registry: ProviderRegistry = request.app.state.registry
    try:
        chat = parse_chat_request(await request.body(), settings)
        chat = chat.model_copy(update={"messages": ensure_system_message(chat.messages, settings.SYSTEM_PROMPT)})
        provider = registry.select(chat.model)
        log.info(f"Routing model '{chat.model}' to provider '{provider.name}'.")
        return await provider.open_stream(chat)
    except RelayError as e:
        log.warning(f"Chat request rejected ({e.http_status}): {e.message}")
        return e.to_response()
    except Exception as e:
        log.error(f"Error processing chat request: {e}", exc_info=True)
        body = ErrorBody(error="Failed to process request", details=str(e) or "An unexpected error occurred")
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())

async def method_not_allowed(request: Request) -> Response:
    return PlainTextResponse("Method not allowed", status_code=status.HTTP_405_METHOD_NOT_ALLOWED)

async def api_not_found(request: Request) -> Response:
    return PlainTextResponse("Not found", status_code=status.HTTP_404_NOT_FOUND)

def read_status():
    return {"status": "ok", "message": "Chat relay running."}

# --- APP FACTORY ---

def create_app(settings: Optional[Settings] = None, registry: Optional[ProviderRegistry] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Chat Relay API",
        description="Streams chat completions from Workers AI or Gemini as one SSE format.",
    )
    app.state.settings = settings
    app.state.registry = registry or build_registry(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["POST", "GET"],
        allow_headers=["*"],
    )

    app.add_api_route("/status", read_status, methods=["GET"], tags=["Status"])
    app.add_api_route("/api/chat", chat_handler, methods=["POST"], tags=["Chat"])
    app.add_api_route("/api/chat", method_not_allowed, methods=OTHER_METHODS, include_in_schema=False)
    app.add_api_route("/api/{path:path}", api_not_found, methods=["POST", *OTHER_METHODS], include_in_schema=False)

    # Everything outside /api is the frontend
    if os.path.isdir(settings.STATIC_DIR):
        app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")
    else:
        log.info(f"Static directory '{settings.STATIC_DIR}' not found, serving the API only.")

    return app


app = create_app()
