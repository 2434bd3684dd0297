import httpx

from helpers import UpstreamStub, sse_response

WORKERS_STREAM = [b'data: {"response":"Hel"}\n\n', b'data: {"response":"lo"}\n\n', b"data: [DONE]\n\n"]


def test_stream_is_passed_through_unchanged(make_client):
    stub = UpstreamStub(lambda request: sse_response(WORKERS_STREAM))
    response = make_client(stub).post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.content == b"".join(WORKERS_STREAM)

    request = stub.requests[0]
    assert request.url.host == "api.cloudflare.com"
    assert request.url.path == "/client/v4/accounts/acct-123/ai/run/@cf/meta/llama-3.3-70b-instruct-fp8-fast"
    assert request.headers["authorization"] == "Bearer cf-token"
    body = stub.last_json()
    assert body["max_tokens"] == 4096
    assert body["stream"] is True
    assert body["messages"][0]["role"] == "system"
    assert body["messages"][1] == {"role": "user", "content": "hi"}


def test_explicit_model_is_used(make_client):
    stub = UpstreamStub(lambda request: sse_response(WORKERS_STREAM))
    make_client(stub).post(
        "/api/chat",
        json={"messages": [{"role": "user", "content": "hi"}], "model": "@cf/mistral/mistral-7b-instruct-v0.1"},
    )
    assert stub.requests[0].url.path.endswith("/ai/run/@cf/mistral/mistral-7b-instruct-v0.1")


def test_error_status_becomes_500_with_details(make_client):
    stub = UpstreamStub(lambda request: httpx.Response(401, json={"errors": [{"message": "Authentication error"}]}))
    response = make_client(stub).post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "Failed to process request"
    assert "Authentication error" in payload["details"]


def test_non_stream_result_becomes_500(make_client):
    stub = UpstreamStub(lambda request: httpx.Response(200, json={"result": {"response": "buffered"}}))
    response = make_client(stub).post("/api/chat", json={"messages": [{"role": "user", "content": "hi"}]})

    assert response.status_code == 500
    assert "application/json" in response.json()["details"]


def test_connection_failure_becomes_500(make_client):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    response = make_client(UpstreamStub(refuse)).post("/api/chat", json={"messages": []})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to process request", "details": "connection refused"}
