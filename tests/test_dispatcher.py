from __future__ import annotations

import io
import json

import pytest
from mcp.types import INTERNAL_ERROR, INVALID_REQUEST

from dispatcher import Dispatcher, Method, parse_method


def _request(request_id, method, params=None):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def test_parse_method_covers_every_protocol_method():
    for name in (
        "resources/list",
        "resources/read",
        "prompts/list",
        "prompts/get",
        "tools/list",
        "tools/call",
    ):
        assert parse_method(name).value == name


def test_route_handles_every_method(settings):
    dispatcher = Dispatcher(settings)
    params = {
        Method.READ_RESOURCE: {"uri": "docs://intro/guide"},
        Method.GET_PROMPT: {"name": "generate-commit", "arguments": {"diff": "d"}},
        Method.CALL_TOOL: {"name": "search_docs", "arguments": {"query": "payment"}},
    }

    for method in Method:
        assert isinstance(dispatcher.route(method, params.get(method, {})), dict)


def test_list_resources_response(settings):
    response = Dispatcher(settings).handle(_request(1, "resources/list", {}))

    assert response["jsonrpc"] == "2.0"
    assert response["id"] == 1
    uris = {entry["uri"] for entry in response["result"]["resources"]}
    assert "docs://intro/guide" in uris


def test_read_resource_response(settings):
    response = Dispatcher(settings).handle(_request("r-1", "resources/read", {"uri": "docs://intro/guide"}))

    contents = response["result"]["contents"]
    assert contents[0]["uri"] == "docs://intro/guide"
    assert contents[0]["mimeType"] == "text/markdown"
    assert "payment flow" in contents[0]["text"]


def test_prompt_and_tool_responses(settings):
    dispatcher = Dispatcher(settings)

    prompts = dispatcher.handle(_request(1, "prompts/list"))["result"]["prompts"]
    prompt = dispatcher.handle(
        _request(2, "prompts/get", {"name": "generate-commit", "arguments": {"diff": "sample diff"}})
    )["result"]
    tools = dispatcher.handle(_request(3, "tools/list"))["result"]["tools"]
    found = dispatcher.handle(
        _request(4, "tools/call", {"name": "search_docs", "arguments": {"query": "PAYMENT"}})
    )["result"]

    assert len(prompts) == 2
    assert "sample diff" in prompt["messages"][0]["content"]["text"]
    assert [tool["name"] for tool in tools] == ["search_docs"]
    assert json.loads(found["content"][0]["text"])[0]["uri"] == "docs://intro/guide"


def test_initialize_and_ping(settings):
    dispatcher = Dispatcher(settings)

    init = dispatcher.handle(_request(0, "initialize", {"protocolVersion": "2024-11-05"}))["result"]

    assert init["serverInfo"]["name"] == settings.server_name
    assert set(init["capabilities"]) == {"resources", "prompts", "tools"}
    assert dispatcher.handle(_request(1, "ping"))["result"] == {}


@pytest.mark.parametrize(
    "message",
    [
        _request(7, "resources/delete"),
        _request(7, None),
        _request(7, "prompts/get", {"name": "unknown-name", "arguments": {}}),
        _request(7, "tools/call", {"name": "rm", "arguments": {}}),
        _request(7, "resources/read", {"uri": "docs://../../etc/passwd"}),
        _request(7, "tools/call", ["not", "an", "object"]),
        _request(7, "prompts/get", {"name": "generate-commit", "arguments": "diff"}),
    ],
)
def test_invalid_requests_become_error_objects(settings, message):
    response = Dispatcher(settings).handle(message)

    assert response["id"] == 7
    assert "result" not in response
    assert response["error"]["code"] == INVALID_REQUEST
    assert response["error"]["message"]


def test_unexpected_provider_failure_is_internal_error(settings, monkeypatch):
    dispatcher = Dispatcher(settings)

    def boom():
        raise RuntimeError("unexpected")

    monkeypatch.setattr(dispatcher.prompts, "list_prompts", boom)

    response = dispatcher.handle(_request(3, "prompts/list"))

    assert response["error"]["code"] == INTERNAL_ERROR
    assert "unexpected" in response["error"]["message"]


def test_notifications_produce_no_response(settings):
    dispatcher = Dispatcher(settings)

    assert dispatcher.handle({"jsonrpc": "2.0", "method": "notifications/initialized"}) is None
    assert dispatcher.handle({"jsonrpc": "2.0", "method": "resources/list"}) is None


def test_malformed_lines_get_invalid_request(settings):
    dispatcher = Dispatcher(settings)

    for line in ("{not json", "[1, 2, 3]", '"text"'):
        response = json.loads(dispatcher.handle_line(line))
        assert response["id"] is None
        assert response["error"]["code"] == INVALID_REQUEST


def test_blank_lines_are_ignored(settings):
    assert Dispatcher(settings).handle_line("   \n") is None


def test_serve_writes_one_response_per_request_in_order(settings):
    lines = [
        json.dumps(_request(1, "resources/list")),
        json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}),
        "",
        "{broken",
        json.dumps(_request(2, "prompts/get", {"name": "unknown-name"})),
        json.dumps(_request(3, "tools/call", {"name": "search_docs", "arguments": {"query": "zzz"}})),
    ]
    stdin = io.BytesIO(("\n".join(lines) + "\n").encode("utf-8"))
    stdout = io.BytesIO()

    written = Dispatcher(settings).serve(stdin, stdout)

    responses = [json.loads(line) for line in stdout.getvalue().decode("utf-8").splitlines()]
    assert written == 4
    assert [response["id"] for response in responses] == [1, None, 2, 3]
    assert "result" in responses[0]
    assert responses[1]["error"]["code"] == INVALID_REQUEST
    assert responses[2]["error"]["code"] == INVALID_REQUEST
    assert json.loads(responses[3]["result"]["content"][0]["text"]) == []


def test_serve_writes_utf8_for_non_ascii_documents(settings):
    arrow_doc = "Checkout → payment étape — 決済\n"
    (settings.docs_root / "intro" / "flow.md").write_text(arrow_doc, encoding="utf-8")
    request = _request(1, "resources/read", {"uri": "docs://intro/flow"})
    stdin = io.BytesIO((json.dumps(request) + "\n").encode("utf-8"))
    stdout = io.BytesIO()

    Dispatcher(settings).serve(stdin, stdout)

    response = json.loads(stdout.getvalue().decode("utf-8"))
    assert response["result"]["contents"][0]["text"] == arrow_doc


def test_serve_answers_invalid_utf8_line_and_keeps_going(settings):
    ping = json.dumps(_request(9, "ping")).encode("utf-8")
    stdin = io.BytesIO(b"\xff\xfe\n" + ping + b"\n")
    stdout = io.BytesIO()

    written = Dispatcher(settings).serve(stdin, stdout)

    responses = [json.loads(line) for line in stdout.getvalue().decode("utf-8").splitlines()]
    assert written == 2
    assert responses[0]["id"] is None
    assert responses[0]["error"]["code"] == INVALID_REQUEST
    assert responses[1] == {"jsonrpc": "2.0", "id": 9, "result": {}}
