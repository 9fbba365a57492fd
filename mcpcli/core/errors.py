"""Exception hierarchy for the gateway client and command layer."""


class McpCliError(Exception):
    """Base class for every error raised by mcpcli."""


class GatewayError(McpCliError):
    """Transport or protocol failure while talking to the MCP gateway."""


class GatewayHttpError(GatewayError):
    """Gateway answered with a non-success HTTP status."""

    def __init__(self, message: str, status: int, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class GatewayTimeoutError(GatewayError):
    """Request did not complete within the configured timeout."""

    def __init__(self, url: str, timeout_ms: int) -> None:
        super().__init__(f"Request to {url} timed out after {timeout_ms} ms")
        self.url = url
        self.timeout_ms = timeout_ms


class GatewayConnectionError(GatewayError):
    """Gateway could not be reached at all."""


class GatewayProtocolError(GatewayError):
    """Gateway returned a body that is not a JSON-RPC envelope."""


class ToolValidationError(McpCliError):
    """Invocation is malformed (missing tool name, bad JSON arguments)."""


class TaskResolutionError(McpCliError):
    """Task category, action or field values could not be resolved."""


class AuthError(McpCliError):
    """Credentials could not be discovered or exchanged."""


class ProviderError(McpCliError):
    """Language-model provider is misconfigured or returned an unusable response."""
