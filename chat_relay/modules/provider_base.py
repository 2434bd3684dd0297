# chat_relay/modules/provider_base.py

from typing import Any, Dict, List, Optional, Tuple

import httpx
from fastapi.responses import StreamingResponse

from chat_relay.config import Settings
from chat_relay.core.errors import ClientInputError
from chat_relay.core.streaming import StreamRelay
from chat_relay.models.chat_models import ChatMessage, ChatRequest

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class RelayResponse(StreamingResponse):
    """StreamingResponse that releases its relay however sending ends."""

    def __init__(self, relay: StreamRelay, **kwargs):
        super().__init__(relay.start(), **kwargs)
        self.relay = relay

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.relay.aclose()


class StreamingProvider:
    """
    Common shape of an upstream LLM provider.

    Providers whose stream is already in our SSE format set `passthrough` and
    never see individual chunks.
    """

    name = "provider"
    display_name = "this provider's"
    passthrough = False
    requires_credential = False

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._settings = settings
        self._transport = transport

    # ---- provider specific ----

    def credential_for(self, chat: ChatRequest) -> str:
        return chat.api_key

    def endpoint(self, model: str, credential: str) -> str:
        raise NotImplementedError

    def headers(self, credential: str) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def build_request(self, messages: List[ChatMessage], model: str) -> Dict[str, Any]:
        raise NotImplementedError

    def translate_chunk(self, payload: Any) -> Optional[str]:
        return None

    async def _open(self, chat: ChatRequest, credential: str) -> StreamingResponse:
        raise NotImplementedError

    # ---- shared ----

    async def open_stream(self, chat: ChatRequest) -> StreamingResponse:
        """Checks the credential, then calls the upstream; nothing is sent when the check fails."""
        credential = self.credential_for(chat)
        if self.requires_credential and not credential:
            raise ClientInputError(f"API key is required for {self.display_name} models")
        return await self._open(chat, credential)

    async def _send(self, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> Tuple[httpx.AsyncClient, httpx.Response]:
        """POSTs and returns as soon as the upstream headers arrive; the caller owns both objects."""
        client = httpx.AsyncClient(timeout=self._settings.HTTP_TIMEOUT, transport=self._transport)
        try:
            request = client.build_request("POST", url, json=body, headers=headers)
            response = await client.send(request, stream=True)
        except BaseException:
            await client.aclose()
            raise
        return client, response

    def _stream_response(self, client: httpx.AsyncClient, upstream: httpx.Response) -> StreamingResponse:
        relay = StreamRelay(
            upstream,
            client,
            translate=None if self.passthrough else self.translate_chunk,
            queue_size=self._settings.STREAM_QUEUE_SIZE,
            source=self.name,
        )
        return RelayResponse(relay, media_type="text/event-stream", headers=SSE_HEADERS)
