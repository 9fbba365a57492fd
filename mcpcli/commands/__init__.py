from mcpcli.commands.executor import CommandExecutor, execute_mcp_command, format_mcp_result
from mcpcli.commands.parser import is_command, parse_command

__all__ = [
    "CommandExecutor",
    "execute_mcp_command",
    "format_mcp_result",
    "is_command",
    "parse_command",
]
