from chat_relay.config import Settings
from chat_relay.main import create_app, parse_chat_request
from fastapi.testclient import TestClient
from helpers import UpstreamStub, sse_response


def never_called(request):
    raise AssertionError("upstream should not be called")


def test_parse_chat_request_defaults(settings):
    chat = parse_chat_request(b"", settings)
    assert chat.messages == []
    assert chat.model == settings.DEFAULT_MODEL
    assert chat.api_key == ""

    chat = parse_chat_request(b'{"messages": null, "model": "gemini-x", "apiKey": "k"}', settings)
    assert chat.messages == []
    assert chat.model == "gemini-x"
    assert chat.api_key == "k"


def test_invalid_json_is_a_500_with_details(make_client):
    stub = UpstreamStub(never_called)
    response = make_client(stub).post("/api/chat", content=b"{not json", headers={"content-type": "application/json"})

    assert response.status_code == 500
    payload = response.json()
    assert payload["error"] == "Failed to process request"
    assert payload["details"]
    assert stub.call_count == 0


def test_unknown_role_is_a_500(make_client):
    stub = UpstreamStub(never_called)
    response = make_client(stub).post("/api/chat", json={"messages": [{"role": "tool", "content": "x"}]})
    assert response.status_code == 500
    assert stub.call_count == 0


def test_non_object_body_is_a_500(make_client):
    response = make_client(UpstreamStub(never_called)).post("/api/chat", json=["hi"])
    assert response.status_code == 500
    assert response.json()["details"] == "Request body must be a JSON object"


def test_empty_body_uses_default_model(make_client):
    stub = UpstreamStub(lambda request: sse_response([b'data: {"response":"ok"}\n\n']))
    response = make_client(stub).post("/api/chat")
    assert response.status_code == 200
    assert "llama-3.3-70b-instruct-fp8-fast" in stub.requests[0].url.path


def test_other_methods_on_chat_are_405(make_client):
    client = make_client(UpstreamStub(never_called))
    for method in ("GET", "PUT", "DELETE"):
        response = client.request(method, "/api/chat")
        assert response.status_code == 405
        assert response.text == "Method not allowed"


def test_unknown_api_path_is_404(make_client):
    client = make_client(UpstreamStub(never_called))
    for method, path in (("GET", "/api/nope"), ("POST", "/api/chat/extra"), ("POST", "/api/")):
        response = client.request(method, path)
        assert response.status_code == 404
        assert response.text == "Not found"


def test_status(make_client):
    response = make_client(UpstreamStub(never_called)).get("/status")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_static_assets_are_served_outside_api(tmp_path):
    (tmp_path / "index.html").write_text("<h1>chat</h1>")
    settings = Settings(_env_file=None, STATIC_DIR=str(tmp_path))
    client = TestClient(create_app(settings))

    assert client.get("/").text == "<h1>chat</h1>"
    assert client.get("/api/missing").status_code == 404
