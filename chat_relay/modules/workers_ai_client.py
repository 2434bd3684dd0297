# chat_relay/modules/workers_ai_client.py

from typing import Any, Dict, List
import httpx
from fastapi.responses import StreamingResponse

from chat_relay.config import log
from chat_relay.core.errors import ProviderError
from chat_relay.models.chat_models import ChatMessage, ChatRequest
from chat_relay.modules.provider_base import StreamingProvider


class WorkersAIClient(StreamingProvider):
    """
    Cloudflare Workers AI through its REST run endpoint.

    With stream=true Workers AI already answers with `data: {"response": ...}`
    frames, so the body is forwarded as it arrives without being parsed.
    """

    name = "workers-ai"
    display_name = "Workers AI"
    passthrough = True

    def endpoint(self, model: str, credential: str) -> str:
        return self._settings.WORKERS_AI_API_URL.format(account_id=self._settings.CLOUDFLARE_ACCOUNT_ID, model=model)

    def headers(self, credential: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credential}", "Content-Type": "application/json"}

    def build_request(self, messages: List[ChatMessage], model: str) -> Dict[str, Any]:
        return {
            "messages": [message.model_dump() for message in messages],
            "max_tokens": self._settings.MAX_TOKENS,
            "stream": True,
        }

    def credential_for(self, chat: ChatRequest) -> str:
        return self._settings.CLOUDFLARE_API_TOKEN

    async def _open(self, chat: ChatRequest, credential: str) -> StreamingResponse:
        log.info(f"Sending {len(chat.messages)} messages to Workers AI model '{chat.model}'.")
        try:
            client, upstream = await self._send(
                self.endpoint(chat.model, credential),
                self.build_request(chat.messages, chat.model),
                self.headers(credential),
            )
        except httpx.HTTPError as e:
            log.error(f"Workers AI request failed: {e}", exc_info=True)
            raise ProviderError("Failed to process request", details=str(e)) from e

        content_type = upstream.headers.get("content-type", "")
        if not upstream.is_success or "text/event-stream" not in content_type:
            try:
                error_body = (await upstream.aread()).decode("utf-8", errors="replace")
            finally:
                await upstream.aclose()
                await client.aclose()
            log.error(f"Workers AI did not return a stream ({upstream.status_code}, {content_type}): {error_body}")
            raise ProviderError(
                "Failed to process request",
                details=f"Workers AI returned {upstream.status_code} ({content_type or 'no content type'}): {error_body}",
            )

        return self._stream_response(client, upstream)
