import json

import httpx


def gemini_chunk(text):
    return "data: " + json.dumps({"candidates": [{"content": {"parts": [{"text": text}]}}]}) + "\n\n"


async def aiter_chunks(chunks):
    for chunk in chunks:
        yield chunk.encode("utf-8") if isinstance(chunk, str) else chunk


def sse_response(chunks, status_code=200):
    return httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream"},
        content=aiter_chunks(chunks),
    )


class UpstreamStub:
    """httpx.MockTransport handler that records every request it receives."""

    def __init__(self, respond):
        self.respond = respond
        self.requests = []

    @property
    def call_count(self):
        return len(self.requests)

    def __call__(self, request):
        self.requests.append(request)
        return self.respond(request)

    def last_json(self):
        return json.loads(self.requests[-1].content)
