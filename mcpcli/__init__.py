from mcpcli.core.client import McpClient
from mcpcli.core.constants import __version__
from mcpcli.core.errors import (
    GatewayError,
    GatewayHttpError,
    GatewayTimeoutError,
    McpCliError,
    ToolValidationError,
)

__all__ = [
    "GatewayError",
    "GatewayHttpError",
    "GatewayTimeoutError",
    "McpCliError",
    "McpClient",
    "ToolValidationError",
    "__version__",
]
