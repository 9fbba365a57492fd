"""JSON-RPC client for the MCP gateway (streamable HTTP transport)."""

import asyncio
import json
import logging
from typing import Any

import requests

from mcpcli.core.constants import (
    BACKEND_AUTH_HEADER,
    CLIENT_NAME,
    DEFAULT_TIMEOUT_MS,
    EVENT_STREAM_CONTENT_TYPE,
    GATEWAY_AUTH_HEADER,
    JSONRPC_VERSION,
    PROTOCOL_VERSION,
    SESSION_HEADER,
    SSE_NO_PAYLOAD_MESSAGE,
    USER_AGENT,
    __version__,
)
from mcpcli.core.errors import (
    GatewayConnectionError,
    GatewayError,
    GatewayHttpError,
    GatewayProtocolError,
    GatewayTimeoutError,
    ToolValidationError,
)
from mcpcli.core.types import JsonRpcRequest, JsonRpcResponse, NotificationOutcome

_client_log = logging.getLogger("mcpcli.client")


def empty_envelope() -> JsonRpcResponse:
    return {"jsonrpc": JSONRPC_VERSION}


def build_http_error(status: int, reason: str, body: str) -> GatewayHttpError:
    """Build an HTTP error, preferring the ``message`` carried by a JSON error body."""
    try:
        data = json.loads(body) if body else None
    except ValueError:
        data = None

    if isinstance(data, dict):
        error = data.get("error")
        message: str | None = None
        if isinstance(error, dict):
            message = error.get("message") or json.dumps(error)
        elif isinstance(error, str) and error:
            message = error
        elif isinstance(data.get("message"), str):
            message = data["message"]
        elif isinstance(data.get("detail"), str):
            message = data["detail"]
        if message:
            return GatewayHttpError(f"HTTP {status} {reason}: {message}", status=status, body=body)

    trimmed = body.strip()
    suffix = f" {trimmed}" if trimmed else ""
    return GatewayHttpError(f"HTTP {status} {reason}.{suffix}", status=status, body=body)


def parse_sse_payload(raw: str) -> JsonRpcResponse:
    """Return the first ``data:`` line of an event stream that decodes as a JSON object."""
    for line in raw.splitlines():
        if not line.startswith("data:"):
            continue
        payload = line[len("data:") :].strip()
        if not payload:
            continue
        try:
            decoded = json.loads(payload)
        except ValueError:
            continue
        if isinstance(decoded, dict):
            return decoded

    return {"jsonrpc": JSONRPC_VERSION, "error": {"message": SSE_NO_PAYLOAD_MESSAGE}}


def decode_body(raw: str, content_type: str) -> JsonRpcResponse:
    if not raw:
        return empty_envelope()
    if EVENT_STREAM_CONTENT_TYPE in content_type:
        return parse_sse_payload(raw)
    try:
        decoded = json.loads(raw)
    except ValueError as e:
        raise GatewayProtocolError(f"Gateway returned invalid JSON: {e}") from e
    if not isinstance(decoded, dict):
        raise GatewayProtocolError("Gateway returned a JSON value that is not an object")
    return decoded


class McpClient:
    """
    One-shot request/response client for the MCP gateway.

    Session state (the ``mcp-session-id`` learned from the server and the request id
    counter) lives on the instance; create a new client for a new session.
    """

    def __init__(
        self,
        url: str,
        gateway_token: str | None = None,
        backend_token: str | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.url = url.rstrip("/")
        self.gateway_token = gateway_token
        self.backend_token = backend_token
        self.timeout_ms = timeout_ms
        self._request_id = 0
        self._session_id: str | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def initialize(self) -> JsonRpcResponse:
        """Open a session, then send the ``initialized`` notification (best-effort)."""
        payload = self._build_request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": {"name": CLIENT_NAME, "version": __version__},
            },
        )
        result = await self._execute(payload)
        outcome = await self.send_initialized_notification()
        if not outcome.delivered:
            _client_log.debug(
                "initialized notification not acknowledged (%s): %s", outcome.reason, outcome.detail
            )
        return result

    async def ping(self) -> JsonRpcResponse:
        return await self._execute(self._build_request("ping"))

    async def list_tools(self) -> JsonRpcResponse:
        return await self._execute(self._build_request("tools/list"))

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> JsonRpcResponse:
        if not name or not name.strip():
            raise ToolValidationError("Tool name is required for tools/call.")
        return await self._execute(
            self._build_request("tools/call", {"name": name, "arguments": arguments or {}})
        )

    async def send_initialized_notification(self) -> NotificationOutcome:
        return await self._notify("notifications/initialized")

    async def _notify(self, method: str) -> NotificationOutcome:
        # Some servers answer notifications with an error status; none of this is fatal.
        payload: JsonRpcRequest = {"jsonrpc": JSONRPC_VERSION, "method": method}
        try:
            http_response = await self._send(payload)
        except GatewayTimeoutError as e:
            return NotificationOutcome(False, empty_envelope(), reason="timeout", detail=str(e))
        except GatewayError as e:
            return NotificationOutcome(False, empty_envelope(), reason="connection", detail=str(e))

        raw = _read_text(http_response)
        if not _is_success(http_response.status_code):
            return NotificationOutcome(
                False,
                empty_envelope(),
                reason="http-error",
                detail=f"HTTP {http_response.status_code} {http_response.reason or ''}".strip(),
            )
        try:
            decoded = decode_body(raw, http_response.headers.get("content-type", ""))
        except GatewayProtocolError as e:
            return NotificationOutcome(False, empty_envelope(), reason="decode", detail=str(e))
        return NotificationOutcome(True, decoded)

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _build_request(self, method: str, params: dict[str, Any] | None = None) -> JsonRpcRequest:
        payload: JsonRpcRequest = {
            "jsonrpc": JSONRPC_VERSION,
            "id": self._next_request_id(),
            "method": method,
        }
        if params is not None:
            payload["params"] = params
        return payload

    def build_headers(self) -> dict[str, str]:
        headers = {
            "content-type": "application/json",
            "accept": f"application/json, {EVENT_STREAM_CONTENT_TYPE}",
            "user-agent": USER_AGENT,
        }
        if self.gateway_token:
            headers[GATEWAY_AUTH_HEADER] = f"Bearer {self.gateway_token}"
        if self.backend_token:
            headers[BACKEND_AUTH_HEADER] = f"Bearer {self.backend_token}"
        if self._session_id:
            headers[SESSION_HEADER] = self._session_id
        return headers

    async def _execute(self, payload: JsonRpcRequest) -> JsonRpcResponse:
        http_response = await self._send(payload)
        raw = _read_text(http_response)
        if not _is_success(http_response.status_code):
            raise build_http_error(http_response.status_code, http_response.reason or "", raw)
        return decode_body(raw, http_response.headers.get("content-type", ""))

    async def _send(self, payload: JsonRpcRequest) -> requests.Response:
        # requests only bounds each connect and read; this bounds the whole exchange.
        try:
            http_response = await asyncio.wait_for(
                asyncio.to_thread(self._post, payload), timeout=self.timeout_ms / 1000
            )
        except asyncio.TimeoutError as e:
            raise GatewayTimeoutError(self.url, self.timeout_ms) from e
        session_id = http_response.headers.get(SESSION_HEADER)
        if session_id:
            self._session_id = session_id
        return http_response

    def _post(self, payload: JsonRpcRequest) -> requests.Response:
        _client_log.debug("POST %s method=%s id=%s", self.url, payload["method"], payload.get("id"))
        try:
            return requests.post(
                self.url,
                data=json.dumps(payload),
                headers=self.build_headers(),
                timeout=self.timeout_ms / 1000,
            )
        except requests.Timeout as e:
            raise GatewayTimeoutError(self.url, self.timeout_ms) from e
        except requests.RequestException as e:
            raise GatewayConnectionError(f"Request to {self.url} failed: {e}") from e


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def _read_text(http_response: requests.Response) -> str:
    return (http_response.content or b"").decode("utf-8", errors="replace")
