#!/usr/bin/env python3
"""
mcpcli - command line front-end for an MCP gateway registry.

Run a single gateway command and print its JSON payload:

    mcpcli ping --url http://localhost/mcpgw/mcp
    mcpcli call --tool current_time_by_timezone --args '{"tz_name": "UTC"}' --json

or start the interactive shell (no command), where /-prefixed lines are executed
directly and anything else is handed to the assistant.
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from mcpcli.agent import AgentLoop
from mcpcli.auth import AuthContext, resolve_auth
from mcpcli.clients import get_provider
from mcpcli.commands.executor import CommandExecutor, execute_mcp_command, parse_tool_arguments
from mcpcli.commands.parser import is_command
from mcpcli.config import Settings, derive_gateway_base
from mcpcli.core.constants import __version__
from mcpcli.core.errors import McpCliError, ToolValidationError
from mcpcli.core.types import MCP_COMMANDS, AgentMessage, TaskContext
from mcpcli.logger import SessionLogger
from mcpcli.tasks.runner import SubprocessTaskRunner

_cli_log = logging.getLogger("mcpcli.cli")

EXIT_COMMANDS = {"exit", "quit", ":q"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpcli",
        description="Conversational front-end for an MCP gateway registry",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", nargs="?", choices=MCP_COMMANDS, help="Gateway command to run")
    parser.add_argument("--url", help="Gateway MCP endpoint (default: $MCP_URL)")
    parser.add_argument("--tool", help="Tool name for the call command")
    parser.add_argument("--args", dest="tool_args", help="JSON arguments for the call command")
    parser.add_argument("--token-file", help="File holding the backend bearer token")
    parser.add_argument("--token", help="Backend bearer token")
    parser.add_argument("--json", action="store_true", help="Print compact JSON output")
    parser.add_argument("--timeout", type=int, help="Request timeout in milliseconds")
    parser.add_argument(
        "--interactive",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Force (or disable) the interactive shell",
    )
    parser.add_argument("--backend", choices=["anthropic", "openai"], help="Assistant provider")
    parser.add_argument("--model", help="Assistant model name")
    parser.add_argument("--log-dir", help="Directory for JSON-lines transcripts of assistant turns")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_task_context(url: str, auth: AuthContext) -> TaskContext:
    return TaskContext(
        gateway_url=url,
        gateway_base_url=derive_gateway_base(url),
        gateway_token=auth.gateway_token,
        backend_token=auth.backend_token,
    )


async def run_command(
    command: str,
    context: TaskContext,
    tool: str | None = None,
    tool_args: str | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Run one gateway command and return the payload printed in non-interactive mode."""
    args: dict[str, Any] | None = None
    if command == "call":
        if not tool or not tool.strip():
            raise ToolValidationError("A tool name is required for the call command.")
        try:
            args = parse_tool_arguments(tool_args)
        except ToolValidationError as e:
            raise ToolValidationError(str(e).replace("for args", "for --args")) from e

    kwargs: dict[str, Any] = {"tool": tool, "args": args}
    if timeout_ms is not None:
        kwargs["timeout_ms"] = timeout_ms
    result = await execute_mcp_command(command, context, **kwargs)
    return {
        "command": command,
        "executedAt": datetime.now(timezone.utc).isoformat(),
        "initialize": result.handshake,
        "response": result.response,
    }


def print_lines(lines: list[str], is_error: bool = False) -> None:
    stream = sys.stderr if is_error else sys.stdout
    for line in lines:
        print(line, file=stream)


class InteractiveShell:
    """Line-based shell: slash commands go to the executor, other text to the agent."""

    def __init__(
        self,
        executor: CommandExecutor,
        agent: AgentLoop | None = None,
        json_output: bool = False,
    ) -> None:
        self.executor = executor
        self.agent = agent
        self.json_output = json_output
        self.history: list[AgentMessage] = []

    async def handle_line(self, line: str) -> None:
        text = line.strip()
        if not text:
            return
        if is_command(text):
            result = await self.executor.execute_text(text)
            if self.json_output:
                print(json.dumps(result.to_dict()))
            else:
                print_lines(result.lines, result.is_error)
            return

        if self.agent is None:
            print(
                "Natural language needs an assistant provider; set ANTHROPIC_API_KEY "
                "(or OPENAI_API_KEY with --backend openai). Type /help for commands."
            )
            return

        self.history.append({"role": "user", "content": text})
        try:
            result = await self.agent.run_turn(self.history)
        except Exception as e:
            self.history.pop()
            _cli_log.debug("Assistant turn failed", exc_info=True)
            print(f"Assistant error: {e}", file=sys.stderr)
            return

        for output in result.tool_outputs:
            status = "failed" if output.is_error else "ok"
            print(f"[{output.name}: {status}]")
        for message in result.messages:
            self.history.append(message)
            print(message["content"])

    async def run(self) -> int:
        print("Type /help for commands, 'exit' to quit.")
        while True:
            try:
                line = await asyncio.to_thread(input, "mcpcli> ")
            except (EOFError, KeyboardInterrupt):
                print()
                return 0
            if line.strip().lower() in EXIT_COMMANDS:
                return 0
            await self.handle_line(line)


def _build_agent(settings: Settings, args: argparse.Namespace, executor: CommandExecutor) -> AgentLoop | None:
    backend = args.backend or settings.backend
    api_key = settings.api_key_for(backend)
    if not api_key:
        return None
    backend_kwargs: dict[str, Any] = {"api_key": api_key}
    model = args.model or settings.model
    if model:
        backend_kwargs["model_name"] = model
    provider = get_provider(backend, backend_kwargs)
    log_dir = args.log_dir or settings.log_dir
    logger = SessionLogger(log_dir=log_dir, file_name="agent") if log_dir else None
    return AgentLoop(provider, executor, logger=logger)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    settings = Settings.from_env()
    url = args.url or settings.gateway_url
    timeout_ms = args.timeout or settings.timeout_ms
    interactive = args.interactive if args.interactive is not None else args.command is None

    try:
        auth = resolve_auth(token_file=args.token_file, explicit_token=args.token)
    except McpCliError as e:
        print(f"Authentication error: {e}", file=sys.stderr)
        return 1

    context = build_task_context(url, auth)

    if not interactive:
        if args.command is None:
            parser.error("a command is required with --no-interactive")
        try:
            payload = asyncio.run(
                run_command(args.command, context, args.tool, args.tool_args, timeout_ms)
            )
        except Exception as e:
            _cli_log.debug("Command failed", exc_info=True)
            print(str(e), file=sys.stderr)
            return 1
        print(json.dumps(payload) if args.json else json.dumps(payload, indent=2))
        return 0

    print(f"mcpcli {__version__}")
    print(f"Gateway URL: {url}")
    print_lines(auth.describe())

    executor = CommandExecutor(context, SubprocessTaskRunner(cwd=settings.scripts_dir), timeout_ms)
    try:
        agent = _build_agent(settings, args, executor)
    except (McpCliError, ValueError) as e:
        print(f"Assistant disabled: {e}", file=sys.stderr)
        agent = None

    shell = InteractiveShell(executor, agent, json_output=args.json)
    if args.command:
        line = f"/{args.command}"
        if args.command == "call" and args.tool:
            line += f" tool={args.tool}"
            if args.tool_args:
                line += f" args={args.tool_args}"
        asyncio.run(shell.handle_line(line))
    return asyncio.run(shell.run())


if __name__ == "__main__":
    sys.exit(main())
