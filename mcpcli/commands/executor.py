"""Tool execution dispatcher.

Every invocation, typed by the operator or requested by the model, runs through
``CommandExecutor.execute`` and comes back as a ``CommandResult``. Exceptions stop
here: callers only ever see ``CommandResult(lines, is_error=True)``.
"""

import json
import logging
from typing import Any

from mcpcli.commands.parser import parse_command
from mcpcli.core.client import McpClient
from mcpcli.core.constants import DEFAULT_TIMEOUT_MS
from mcpcli.core.errors import TaskResolutionError, ToolValidationError
from mcpcli.core.types import (
    MCP_COMMANDS,
    CallCommand,
    CommandResult,
    HelpCommand,
    InitCommand,
    Invocation,
    JsonRpcResponse,
    ListCommand,
    McpExecutionResult,
    PingCommand,
    TaskCommand,
    TaskContext,
    TaskRunResult,
    UnknownCommand,
)
from mcpcli.tasks import describe_available_tasks, resolve_task_command
from mcpcli.tasks.runner import BaseTaskRunner

_executor_log = logging.getLogger("mcpcli.executor")

_RESULT_HEADINGS = {
    "ping": "Ping response:",
    "list": "Available tools:",
    "init": "Initialization payload:",
}


async def execute_mcp_command(
    command: str,
    context: TaskContext,
    tool: str | None = None,
    args: dict[str, Any] | None = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> McpExecutionResult:
    """Run one gateway command on a fresh client, always initializing first.

    Raises:
        ToolValidationError: unknown command, or ``call`` without a tool name
        GatewayError: transport or HTTP failure
    """
    if command not in MCP_COMMANDS:
        raise ToolValidationError(
            f"Unknown MCP command '{command}'. Expected one of: {', '.join(MCP_COMMANDS)}"
        )
    if command == "call" and not (tool and tool.strip()):
        raise ToolValidationError("Tool name is required for /call.")

    client = McpClient(
        url=context.gateway_url,
        gateway_token=context.gateway_token,
        backend_token=context.backend_token,
        timeout_ms=timeout_ms,
    )
    handshake = await client.initialize()

    if command == "ping":
        response = await client.ping()
    elif command == "list":
        response = await client.list_tools()
    elif command == "call":
        response = await client.call_tool(tool or "", args or {})
    else:
        response = handshake

    session_id = client.session_id or _handshake_session_id(handshake)
    return McpExecutionResult(handshake=handshake, response=response, session_id=session_id)


def _handshake_session_id(handshake: JsonRpcResponse) -> str | None:
    result = handshake.get("result")
    if isinstance(result, dict) and isinstance(result.get("sessionId"), str):
        return result["sessionId"]
    return None


def rpc_error_message(response: JsonRpcResponse) -> str | None:
    error = response.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or json.dumps(error))
    return str(error)


def format_mcp_result(
    command: str, result: McpExecutionResult, tool: str | None = None
) -> list[str]:
    lines: list[str] = []
    if result.session_id:
        lines.append(f"Session established: {result.session_id}")
    if command == "call":
        lines.append(f'Tool "{tool}" response:')
    else:
        lines.append(_RESULT_HEADINGS[command])
    payload = result.handshake if command == "init" else result.response
    lines.append(json.dumps(payload, indent=2))
    return lines


def format_task_result(result: TaskRunResult) -> str:
    exit_code = result.exit_code if result.exit_code is not None else 0
    sections = [
        f"$ {result.command.display()}",
        result.stdout.strip(),
        f"stderr:\n{result.stderr.strip()}" if result.stderr.strip() else "",
        f"exitCode: {exit_code}",
    ]
    return "\n\n".join(section for section in sections if section.strip())


def parse_tool_arguments(raw: str | None) -> dict[str, Any]:
    if raw is None or not raw.strip():
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError as e:
        raise ToolValidationError(f"Invalid JSON for args: {e}") from e
    if not isinstance(parsed, dict):
        raise ToolValidationError("Invalid JSON for args: expected a JSON object")
    return parsed


def overview_message() -> str:
    return "\n".join(
        [
            "Available commands:",
            "  /ping - check MCP gateway connectivity",
            "  /list - list MCP tools",
            "  /call tool=<name> args='<json>' - invoke a tool",
            "  /init - initialise a session",
            "  /service|/import|/user|/diagnostic <task> key=value ... - run registry scripts",
            "",
            describe_available_tasks(),
            "",
            "Type anything else to let the assistant decide which tools to call.",
        ]
    )


class CommandExecutor:
    """Single execution path for resolved invocations.

    Args:
        context: Gateway URL and tokens used for protocol calls and task builders
        runner: Task runner for registry scripts (tasks fail cleanly when absent)
        timeout_ms: Per-request gateway timeout
    """

    def __init__(
        self,
        context: TaskContext,
        runner: BaseTaskRunner | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.context = context
        self.runner = runner
        self.timeout_ms = timeout_ms

    async def execute_text(self, text: str) -> CommandResult:
        return await self.execute(parse_command(text))

    async def execute(self, invocation: Invocation) -> CommandResult:
        try:
            return await self._dispatch(invocation)
        except Exception as e:
            _executor_log.debug("%s invocation failed", invocation.kind, exc_info=True)
            return CommandResult(lines=[str(e) or type(e).__name__], is_error=True)

    async def _dispatch(self, invocation: Invocation) -> CommandResult:
        if isinstance(invocation, HelpCommand):
            return CommandResult(lines=[overview_message()])
        if isinstance(invocation, (PingCommand, ListCommand, InitCommand)):
            return await self._execute_mcp(invocation.kind)
        if isinstance(invocation, CallCommand):
            return await self._execute_call(invocation)
        if isinstance(invocation, TaskCommand):
            return await self._execute_task(invocation)
        if isinstance(invocation, UnknownCommand):
            return CommandResult(lines=[invocation.message], is_error=True)
        raise ToolValidationError(f"Unsupported invocation: {invocation!r}")

    async def _execute_mcp(
        self, command: str, tool: str | None = None, args: dict[str, Any] | None = None
    ) -> CommandResult:
        result = await execute_mcp_command(
            command, self.context, tool=tool, args=args, timeout_ms=self.timeout_ms
        )
        lines = format_mcp_result(command, result, tool)
        error_message = rpc_error_message(result.response)
        if error_message is not None:
            return CommandResult(lines=[f"Gateway error: {error_message}", *lines], is_error=True)
        return CommandResult(lines=lines)

    async def _execute_call(self, invocation: CallCommand) -> CommandResult:
        if not invocation.tool.strip():
            raise ToolValidationError("Tool name is required for /call.")
        args = parse_tool_arguments(invocation.args_json)
        return await self._execute_mcp("call", tool=invocation.tool, args=args)

    async def _execute_task(self, invocation: TaskCommand) -> CommandResult:
        task, values = resolve_task_command(invocation, self.context)
        command = task.build(values, self.context)
        if self.runner is None:
            raise TaskResolutionError(f"No task runner configured; would run: {command.display()}")
        result = await self.runner.run(invocation.category, command, values)
        failed = result.exit_code not in (0, None)
        return CommandResult(lines=[format_task_result(result)], is_error=failed)
