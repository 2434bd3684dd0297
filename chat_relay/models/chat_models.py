# chat_relay/models/chat_models.py

import json
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

class ChatMessage(BaseModel):
    """A single turn of the conversation."""
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str

class ChatRequest(BaseModel):
    """Body of POST /api/chat once defaults have been applied."""
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = []
    model: str
    api_key: str = Field("", alias="apiKey", description="Credential for providers that need one.")

class ErrorBody(BaseModel):
    """JSON error contract for responses sent before streaming starts."""
    error: str
    details: Optional[str] = None

# --- OUTPUT EVENTS ---

def encode_event(data: dict) -> bytes:
    payload = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return f"data: {payload}\n\n".encode("utf-8")

def response_event(text: str) -> bytes:
    return encode_event({"response": text})

def error_event(message: str) -> bytes:
    return encode_event({"error": message})
