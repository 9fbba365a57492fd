"""Slash-command resolver.

``parse_command`` turns one line of operator input into an invocation. It never
raises: anything it cannot make sense of becomes an ``UnknownCommand`` carrying a
message for the operator. JSON tool arguments are kept raw and only parsed when the
call is executed.
"""

import re
import shlex

from mcpcli.core.constants import COMMAND_PREFIX
from mcpcli.core.types import (
    CallCommand,
    HelpCommand,
    InitCommand,
    Invocation,
    ListCommand,
    PingCommand,
    TaskCommand,
    UnknownCommand,
)
from mcpcli.tasks import TASK_CATALOG

_BARE_COMMANDS: dict[str, Invocation] = {
    "help": HelpCommand(),
    "?": HelpCommand(),
    "ping": PingCommand(),
    "list": ListCommand(),
    "init": InitCommand(),
}

_TOOL_TOKEN = re.compile(r"(?:^|\s)tool=(\"[^\"]*\"|'[^']*'|\S+)")


def is_command(text: str) -> bool:
    """True when a line should go to the resolver rather than the agent."""
    return text.strip().startswith(COMMAND_PREFIX)


def parse_command(text: str) -> Invocation:
    line = text.strip()
    if line.startswith(COMMAND_PREFIX):
        line = line[len(COMMAND_PREFIX) :].lstrip()
    if not line:
        return HelpCommand()

    parts = line.split(None, 1)
    name = parts[0].lower()
    rest = parts[1].strip() if len(parts) > 1 else ""

    if name in _BARE_COMMANDS:
        if rest:
            return UnknownCommand(f"/{name} does not take arguments (got '{rest}').")
        return _BARE_COMMANDS[name]

    if name == "call":
        return _parse_call(rest)

    if name in TASK_CATALOG:
        return _parse_task(name, rest)

    return UnknownCommand(f"Unknown command '/{name}'. Type /help to see available commands.")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _quoted_at(text: str, index: int) -> bool:
    quote: str | None = None
    for char in text[:index]:
        if quote is None and char in ("'", '"'):
            quote = char
        elif char == quote:
            quote = None
    return quote is not None


def _find_tool_token(rest: str) -> re.Match[str] | None:
    # A "tool=" inside a quoted args payload belongs to the payload.
    for match in _TOOL_TOKEN.finditer(rest):
        if not _quoted_at(rest, match.start()):
            return match
    return None


def _parse_call(rest: str) -> CallCommand:
    tool = ""
    match = _find_tool_token(rest)
    if match:
        tool = _unquote(match.group(1))
        rest = (rest[: match.start()] + " " + rest[match.end() :]).strip()
    elif rest and not rest.startswith("args="):
        split = rest.split(None, 1)
        tool = split[0]
        rest = split[1].strip() if len(split) > 1 else ""

    args_json: str | None = None
    if rest:
        if rest.startswith("args="):
            rest = rest[len("args=") :]
        args_json = _unquote(rest.strip()) or None
    return CallCommand(tool=tool, args_json=args_json)


def _parse_task(category: str, rest: str) -> Invocation:
    actions = ", ".join(task.action for task in TASK_CATALOG[category])
    try:
        tokens = shlex.split(rest)
    except ValueError as e:
        return UnknownCommand(f"Could not parse /{category} arguments: {e}")

    if not tokens:
        return UnknownCommand(f"/{category} needs a task. Available tasks: {actions}")

    action, *pairs = tokens
    raw_args: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            return UnknownCommand(f"Expected key=value for /{category} {action}, got '{pair}'.")
        raw_args[key] = value
    return TaskCommand(category=category, action=action.lower(), raw_args=raw_args)
