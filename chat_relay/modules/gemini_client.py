# chat_relay/modules/gemini_client.py

from typing import Any, Dict, List, Optional
from fastapi.responses import StreamingResponse

from chat_relay.config import log
from chat_relay.core.errors import UpstreamError
from chat_relay.core.streaming import dig
from chat_relay.models.chat_models import ChatMessage, ChatRequest
from chat_relay.modules.provider_base import StreamingProvider

# Gemini calls the assistant turn "model"
ROLE_MAP = {"user": "user", "assistant": "model"}

TEXT_PATH = ("candidates", 0, "content", "parts", 0, "text")


class GeminiClient(StreamingProvider):
    """Google Gemini over the REST streamGenerateContent endpoint (alt=sse)."""

    name = "gemini"
    display_name = "Gemini"
    requires_credential = True

    def endpoint(self, model: str, credential: str) -> str:
        return self._settings.GEMINI_API_URL.format(model=model, api_key=credential)

    def build_request(self, messages: List[ChatMessage], model: str) -> Dict[str, Any]:
        """Converts our conversation to Gemini contents, moving the system prompt to system_instruction."""
        contents = [
            {"role": ROLE_MAP.get(message.role, message.role), "parts": [{"text": message.content}]}
            for message in messages
            if message.role != "system"
        ]
        body: Dict[str, Any] = {"contents": contents}

        system_message = next((message for message in messages if message.role == "system"), None)
        if system_message:
            body["system_instruction"] = {"parts": [{"text": system_message.content}]}
        return body

    def translate_chunk(self, payload: Any) -> Optional[str]:
        text = dig(payload, *TEXT_PATH)
        return text if isinstance(text, str) else None

    async def _open(self, chat: ChatRequest, credential: str) -> StreamingResponse:
        log.info(f"Sending {len(chat.messages)} messages to Gemini model '{chat.model}'.")
        client, upstream = await self._send(
            self.endpoint(chat.model, credential),
            self.build_request(chat.messages, chat.model),
            self.headers(credential),
        )

        if not upstream.is_success:
            try:
                error_body = (await upstream.aread()).decode("utf-8", errors="replace")
            finally:
                await upstream.aclose()
                await client.aclose()
            log.error(f"Gemini API error ({upstream.status_code}): {error_body}")
            raise UpstreamError("Failed to fetch from Gemini API", details=error_body, http_status=upstream.status_code)

        return self._stream_response(client, upstream)
