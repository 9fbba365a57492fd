"""Core protocol constants (shared by the client, dispatcher and CLI)."""

__version__ = "0.1.0"

CLIENT_NAME = "mcpcli"
USER_AGENT = f"{CLIENT_NAME}/{__version__}"

# MCP revision advertised in the initialize handshake.
PROTOCOL_VERSION = "2024-11-05"

JSONRPC_VERSION = "2.0"
SESSION_HEADER = "mcp-session-id"
GATEWAY_AUTH_HEADER = "x-authorization"
BACKEND_AUTH_HEADER = "authorization"
EVENT_STREAM_CONTENT_TYPE = "text/event-stream"

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_GATEWAY_URL = "http://localhost/mcpgw/mcp"

SSE_NO_PAYLOAD_MESSAGE = "No JSON payload found in SSE response"

# Agent loop bound: model round trips per operator turn.
MAX_TOOL_ITERATIONS = 5
TOOL_LIMIT_MESSAGE = "Reached tool usage limit without final response."

COMMAND_PREFIX = "/"
