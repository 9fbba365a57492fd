"""Tests for the MCP gateway JSON-RPC client."""

import asyncio
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import patch

import pytest
import requests

from mcpcli.core.client import McpClient, build_http_error, decode_body, parse_sse_payload
from mcpcli.core.constants import PROTOCOL_VERSION, SSE_NO_PAYLOAD_MESSAGE
from mcpcli.core.errors import (
    GatewayConnectionError,
    GatewayHttpError,
    GatewayProtocolError,
    GatewayTimeoutError,
    ToolValidationError,
)

URL = "http://gateway.test/mcpgw/mcp"


def _sent_payload(call) -> dict:
    return json.loads(call.kwargs["data"])


def _sent_headers(call) -> dict:
    return call.kwargs["headers"]


class _TricklingHandler(BaseHTTPRequestHandler):
    """Sends event-stream headers at once, then keep-alive comments for ~3 s before the payload."""

    def do_POST(self) -> None:
        self.rfile.read(int(self.headers.get("content-length", 0)))
        self.send_response(200)
        self.send_header("content-type", "text/event-stream")
        self.end_headers()
        try:
            for _ in range(6):
                self.wfile.write(b": keepalive\n")
                self.wfile.flush()
                time.sleep(0.5)
            self.wfile.write(b'data: {"jsonrpc":"2.0","id":1,"result":{}}\n\n')
        except OSError:
            pass

    def log_message(self, format, *args) -> None:
        pass


@pytest.fixture
def trickling_gateway():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _TricklingHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/mcpgw/mcp"
    server.shutdown()
    server.server_close()


class TestSessionContinuity:
    def test_session_id_is_echoed_on_later_requests(self, http_response) -> None:
        responses = [
            http_response(
                body={"jsonrpc": "2.0", "id": 1, "result": {"protocolVersion": PROTOCOL_VERSION}},
                headers={"content-type": "application/json", "mcp-session-id": "sess-42"},
            ),
            http_response(status=202, body="", headers={}),
            http_response(body={"jsonrpc": "2.0", "id": 2, "result": {}}),
            http_response(body={"jsonrpc": "2.0", "id": 3, "result": {"tools": []}}),
        ]
        with patch("mcpcli.core.client.requests.post", side_effect=responses) as mock_post:
            client = McpClient(URL)
            asyncio.run(client.initialize())
            asyncio.run(client.ping())
            asyncio.run(client.list_tools())

        calls = mock_post.call_args_list
        assert len(calls) == 4
        assert "mcp-session-id" not in _sent_headers(calls[0])
        for call in calls[1:]:
            assert _sent_headers(call)["mcp-session-id"] == "sess-42"
        assert client.session_id == "sess-42"

    def test_session_id_never_invented(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(body={"jsonrpc": "2.0", "id": 1, "result": {}}),
        ) as mock_post:
            client = McpClient(URL)
            asyncio.run(client.ping())
            asyncio.run(client.ping())

        assert client.session_id is None
        for call in mock_post.call_args_list:
            assert "mcp-session-id" not in _sent_headers(call)

    def test_session_captured_from_error_response(self, http_response) -> None:
        failing = http_response(
            status=500,
            body="boom",
            headers={"content-type": "text/plain", "mcp-session-id": "sess-err"},
            reason="Internal Server Error",
        )
        with patch("mcpcli.core.client.requests.post", return_value=failing):
            client = McpClient(URL)
            with pytest.raises(GatewayHttpError):
                asyncio.run(client.ping())

        assert client.session_id == "sess-err"


class TestFraming:
    def test_request_ids_increase_and_notification_has_no_id(self, http_response) -> None:
        responses = [
            http_response(body={"jsonrpc": "2.0", "id": 1, "result": {}}),
            http_response(status=202, body="", headers={}),
            http_response(body={"jsonrpc": "2.0", "id": 2, "result": {}}),
        ]
        with patch("mcpcli.core.client.requests.post", side_effect=responses) as mock_post:
            client = McpClient(URL)
            asyncio.run(client.initialize())
            asyncio.run(client.call_tool("echo", {"text": "hi"}))

        init, notification, call = [_sent_payload(c) for c in mock_post.call_args_list]
        assert init["method"] == "initialize"
        assert init["id"] == 1
        assert init["params"]["protocolVersion"] == PROTOCOL_VERSION
        assert init["params"]["clientInfo"]["name"] == "mcpcli"
        assert notification == {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert call == {
            "jsonrpc": "2.0",
            "id": 2,
            "method": "tools/call",
            "params": {"name": "echo", "arguments": {"text": "hi"}},
        }

    def test_ping_has_no_params(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(body={"jsonrpc": "2.0", "id": 1, "result": {}}),
        ) as mock_post:
            asyncio.run(McpClient(URL).ping())

        assert _sent_payload(mock_post.call_args) == {"jsonrpc": "2.0", "id": 1, "method": "ping"}

    def test_headers_carry_both_tokens(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(body={"jsonrpc": "2.0", "id": 1, "result": {}}),
        ) as mock_post:
            client = McpClient(URL + "/", gateway_token="gw", backend_token="m2m")
            asyncio.run(client.ping())

        assert mock_post.call_args.args[0] == URL
        headers = _sent_headers(mock_post.call_args)
        assert headers["content-type"] == "application/json"
        assert headers["accept"] == "application/json, text/event-stream"
        assert headers["user-agent"].startswith("mcpcli/")
        assert headers["x-authorization"] == "Bearer gw"
        assert headers["authorization"] == "Bearer m2m"

    def test_headers_without_tokens(self) -> None:
        headers = McpClient(URL).build_headers()
        assert "x-authorization" not in headers
        assert "authorization" not in headers

    def test_call_tool_with_empty_name_makes_no_request(self) -> None:
        with patch("mcpcli.core.client.requests.post") as mock_post:
            client = McpClient(URL)
            with pytest.raises(ToolValidationError):
                asyncio.run(client.call_tool("", {}))
            with pytest.raises(ToolValidationError):
                asyncio.run(client.call_tool("   "))

        mock_post.assert_not_called()


class TestResponseDecoding:
    def test_event_stream_payload(self, http_response) -> None:
        body = 'data: {"jsonrpc":"2.0","result":{"ok":true}}\n\n'
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(body=body, headers={"content-type": "text/event-stream"}),
        ):
            result = asyncio.run(McpClient(URL).ping())

        assert result == {"jsonrpc": "2.0", "result": {"ok": True}}

    def test_event_stream_without_data_line(self) -> None:
        result = parse_sse_payload("event: message\n: keep-alive\n\n")
        assert result == {"jsonrpc": "2.0", "error": {"message": SSE_NO_PAYLOAD_MESSAGE}}

    def test_event_stream_skips_unparseable_data(self) -> None:
        raw = "event: message\r\ndata: not json\r\ndata:\r\ndata: {\"jsonrpc\":\"2.0\",\"id\":7}\r\n"
        assert parse_sse_payload(raw) == {"jsonrpc": "2.0", "id": 7}

    def test_event_stream_content_type_with_charset(self) -> None:
        decoded = decode_body('data: {"jsonrpc":"2.0","result":1}', "text/event-stream; charset=utf-8")
        assert decoded["result"] == 1

    def test_empty_body_is_empty_success(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(status=202, body="", headers={}),
        ):
            result = asyncio.run(McpClient(URL).ping())

        assert result == {"jsonrpc": "2.0"}

    def test_invalid_json_body(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(body="<html>nope</html>"),
        ):
            with pytest.raises(GatewayProtocolError):
                asyncio.run(McpClient(URL).ping())

    def test_rpc_error_envelope_is_returned(self, http_response) -> None:
        envelope = {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "Method not found"}}
        with patch("mcpcli.core.client.requests.post", return_value=http_response(body=envelope)):
            result = asyncio.run(McpClient(URL).ping())

        assert result["error"]["message"] == "Method not found"


class TestHttpErrors:
    def test_json_error_message_is_extracted(self, http_response) -> None:
        failing = http_response(
            status=403, body={"error": {"message": "forbidden"}}, reason="Forbidden"
        )
        with patch("mcpcli.core.client.requests.post", return_value=failing):
            with pytest.raises(GatewayHttpError) as exc_info:
                asyncio.run(McpClient(URL).list_tools())

        message = str(exc_info.value)
        assert "403" in message
        assert "forbidden" in message
        assert exc_info.value.status == 403

    def test_raw_body_used_when_not_json(self) -> None:
        error = build_http_error(502, "Bad Gateway", "  upstream unavailable \n")
        assert str(error) == "HTTP 502 Bad Gateway. upstream unavailable"

    def test_error_object_without_message(self) -> None:
        error = build_http_error(400, "Bad Request", json.dumps({"error": {"code": 42}}))
        assert str(error) == 'HTTP 400 Bad Request: {"code": 42}'

    def test_detail_field(self) -> None:
        error = build_http_error(401, "Unauthorized", json.dumps({"detail": "token expired"}))
        assert "token expired" in str(error)


class TestTimeouts:
    def test_timeout_names_url_and_duration(self, http_response) -> None:
        responses = [
            requests.Timeout("read timed out"),
            http_response(body={"jsonrpc": "2.0", "id": 2, "result": {}}),
        ]
        with patch("mcpcli.core.client.requests.post", side_effect=responses) as mock_post:
            client = McpClient(URL, timeout_ms=1500)
            with pytest.raises(GatewayTimeoutError) as exc_info:
                asyncio.run(client.ping())
            result = asyncio.run(client.ping())

        assert str(exc_info.value) == f"Request to {URL} timed out after 1500 ms"
        assert result["id"] == 2
        assert mock_post.call_args.kwargs["timeout"] == 1.5

    def test_slow_stream_hits_total_deadline(self, trickling_gateway) -> None:
        client = McpClient(trickling_gateway, timeout_ms=1000)

        async def timed_ping() -> float:
            started = time.monotonic()
            with pytest.raises(GatewayTimeoutError) as exc_info:
                await client.ping()
            assert str(exc_info.value) == f"Request to {trickling_gateway} timed out after 1000 ms"
            return time.monotonic() - started

        elapsed = asyncio.run(timed_ping())
        assert elapsed < 2.5

    def test_connection_failure(self) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(GatewayConnectionError, match="refused"):
                asyncio.run(McpClient(URL).ping())


class TestInitializedNotification:
    def test_notification_error_status_is_swallowed(self, http_response) -> None:
        responses = [
            http_response(body={"jsonrpc": "2.0", "id": 1, "result": {"serverInfo": {"name": "gw"}}}),
            http_response(status=400, body={"error": {"message": "unexpected"}}, reason="Bad Request"),
        ]
        with patch("mcpcli.core.client.requests.post", side_effect=responses):
            result = asyncio.run(McpClient(URL).initialize())

        assert result["result"]["serverInfo"]["name"] == "gw"

    def test_notification_outcome_reports_reason(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            side_effect=requests.ConnectionError("down"),
        ):
            outcome = asyncio.run(McpClient(URL).send_initialized_notification())

        assert outcome.delivered is False
        assert outcome.reason == "connection"
        assert outcome.response == {"jsonrpc": "2.0"}

    def test_notification_timeout_reason(self) -> None:
        with patch("mcpcli.core.client.requests.post", side_effect=requests.Timeout()):
            outcome = asyncio.run(McpClient(URL).send_initialized_notification())

        assert outcome.reason == "timeout"

    def test_notification_http_error_reason(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(status=405, body="", reason="Method Not Allowed"),
        ):
            outcome = asyncio.run(McpClient(URL).send_initialized_notification())

        assert outcome.delivered is False
        assert outcome.reason == "http-error"
        assert "405" in (outcome.detail or "")

    def test_notification_accepted(self, http_response) -> None:
        with patch(
            "mcpcli.core.client.requests.post",
            return_value=http_response(status=202, body="", headers={}),
        ):
            outcome = asyncio.run(McpClient(URL).send_initialized_notification())

        assert outcome.delivered is True
        assert outcome.reason is None
