"""The two abstract tools offered to the model, and their mapping onto invocations."""

import json
from typing import Any

from mcpcli.commands.executor import CommandExecutor
from mcpcli.commands.parser import parse_command
from mcpcli.core.constants import COMMAND_PREFIX
from mcpcli.core.types import (
    MCP_COMMANDS,
    CallCommand,
    InitCommand,
    Invocation,
    ListCommand,
    PingCommand,
    ToolOutput,
    ToolUseBlock,
    UnknownCommand,
)

MCP_COMMAND_TOOL = "mcp_command"
REGISTRY_TASK_TOOL = "registry_task"

AGENT_TOOLS: list[dict[str, Any]] = [
    {
        "name": MCP_COMMAND_TOOL,
        "description": "Call MCP gateway commands (ping, list, call, init).",
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "enum": list(MCP_COMMANDS),
                    "description": "Which MCP command to execute.",
                },
                "tool": {"type": "string", "description": "Tool name for the call command"},
                "args": {"type": "object", "description": "JSON arguments for the tool."},
            },
            "required": ["command"],
        },
    },
    {
        "name": REGISTRY_TASK_TOOL,
        "description": "Run service management, imports, user management, or diagnostics tasks.",
        "input_schema": {
            "type": "object",
            "properties": {
                "command": {
                    "type": "string",
                    "description": "Slash command matching the CLI syntax, e.g. /service add configPath=...",
                }
            },
            "required": ["command"],
        },
    },
]

_SIMPLE_MCP_COMMANDS: dict[str, Invocation] = {
    "ping": PingCommand(),
    "list": ListCommand(),
    "init": InitCommand(),
}


def map_tool_call(call: ToolUseBlock) -> Invocation:
    """Translate a model tool request into the invocation a human would have typed."""
    if call.name == MCP_COMMAND_TOOL:
        return _map_mcp_command(call.input)
    if call.name == REGISTRY_TASK_TOOL:
        command_text = str(call.input.get("command") or "").strip()
        if not command_text:
            return UnknownCommand("Missing command field")
        if not command_text.startswith(COMMAND_PREFIX):
            command_text = f"{COMMAND_PREFIX}{command_text}"
        return parse_command(command_text)
    return UnknownCommand(f"Unknown tool invocation: {call.name}")


def _map_mcp_command(tool_input: dict[str, Any]) -> Invocation:
    command = str(tool_input.get("command") or "").strip().lower()
    if not command:
        return UnknownCommand("Missing command field")
    if command in _SIMPLE_MCP_COMMANDS:
        return _SIMPLE_MCP_COMMANDS[command]
    if command == "call":
        args = tool_input.get("args")
        args_json: str | None
        if isinstance(args, dict):
            args_json = json.dumps(args)
        elif args is None or isinstance(args, str):
            # A string payload is parsed at execution, so bad JSON fails like a typed /call.
            args_json = args
        else:
            return UnknownCommand("args must be a JSON object")
        return CallCommand(tool=str(tool_input.get("tool") or ""), args_json=args_json)
    return UnknownCommand(
        f"Unsupported mcp_command '{command}'. Expected one of: {', '.join(MCP_COMMANDS)}"
    )


async def execute_tool_call(call: ToolUseBlock, executor: CommandExecutor) -> ToolOutput:
    result = await executor.execute(map_tool_call(call))
    return ToolOutput(name=call.name, output=result.text, is_error=result.is_error)
