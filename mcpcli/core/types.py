from dataclasses import dataclass, field
from typing import Any, ClassVar, Literal, TypedDict

ProviderBackend = Literal["anthropic", "openai"]

MCP_COMMANDS: tuple[str, ...] = ("ping", "list", "call", "init")


########################################################
########   Types for the JSON-RPC wire format   #########
########################################################


class JsonRpcRequest(TypedDict, total=False):
    """Outgoing JSON-RPC envelope. ``id`` is absent for notifications."""

    jsonrpc: str
    id: int
    method: str
    params: dict[str, Any]


class JsonRpcResponse(TypedDict, total=False):
    """Incoming JSON-RPC envelope (either ``result`` or ``error`` is set)."""

    jsonrpc: str
    id: int | str
    result: Any
    error: Any


@dataclass(frozen=True)
class NotificationOutcome:
    """Result of a best-effort notification. Always produced, never raised."""

    delivered: bool
    response: JsonRpcResponse
    reason: str | None = None
    detail: str | None = None


########################################################
########   Types for resolved invocations   #########
########################################################


@dataclass(frozen=True)
class PingCommand:
    kind: ClassVar[str] = "ping"


@dataclass(frozen=True)
class ListCommand:
    kind: ClassVar[str] = "list"


@dataclass(frozen=True)
class InitCommand:
    kind: ClassVar[str] = "init"


@dataclass(frozen=True)
class HelpCommand:
    kind: ClassVar[str] = "help"


@dataclass(frozen=True)
class CallCommand:
    """Tool call with raw, not yet parsed, JSON arguments."""

    tool: str
    args_json: str | None = None
    kind: ClassVar[str] = "call"


@dataclass(frozen=True)
class TaskCommand:
    category: str
    action: str
    raw_args: dict[str, str] = field(default_factory=dict)
    kind: ClassVar[str] = "task"


@dataclass(frozen=True)
class UnknownCommand:
    message: str
    kind: ClassVar[str] = "unknown"


Invocation = (
    PingCommand
    | ListCommand
    | InitCommand
    | HelpCommand
    | CallCommand
    | TaskCommand
    | UnknownCommand
)


########################################################
########   Types for execution results   #########
########################################################


@dataclass
class McpExecutionResult:
    handshake: JsonRpcResponse
    response: JsonRpcResponse
    session_id: str | None = None


@dataclass
class ScriptCommand:
    """External command description produced by a task builder."""

    program: str
    args: list[str]
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)

    def display(self) -> str:
        return " ".join([self.program, *self.args])


@dataclass
class TaskRunResult:
    stdout: str
    stderr: str
    exit_code: int | None
    command: ScriptCommand


@dataclass
class CommandResult:
    """Normalized outcome of every execution path."""

    lines: list[str]
    is_error: bool = False

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def to_dict(self) -> dict[str, Any]:
        return {"lines": list(self.lines), "isError": self.is_error}


@dataclass
class TaskContext:
    gateway_url: str
    gateway_base_url: str
    gateway_token: str | None = None
    backend_token: str | None = None


########################################################
########   Types for the agent loop   #########
########################################################


class AgentMessage(TypedDict):
    role: str
    content: str


@dataclass(frozen=True)
class TextBlock:
    text: str
    type: ClassVar[str] = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: dict[str, Any]
    type: ClassVar[str] = "tool_use"

    def to_dict(self) -> dict[str, Any]:
        return {"type": "tool_use", "id": self.id, "name": self.name, "input": self.input}


ContentBlock = TextBlock | ToolUseBlock


@dataclass
class ProviderResponse:
    content: list[ContentBlock]
    stop_reason: str | None = None

    @property
    def tool_calls(self) -> list[ToolUseBlock]:
        return [block for block in self.content if isinstance(block, ToolUseBlock)]

    @property
    def text_blocks(self) -> list[TextBlock]:
        return [block for block in self.content if isinstance(block, TextBlock)]


@dataclass
class ToolOutput:
    name: str
    output: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "output": self.output, "is_error": self.is_error}


@dataclass
class AgentResult:
    messages: list[AgentMessage]
    tool_outputs: list[ToolOutput]
    iterations: int = 0

    @property
    def reply(self) -> str:
        return "\n".join(message["content"] for message in self.messages)


########################################################
########   Types for provider usage   #########
########################################################


@dataclass
class ModelUsageSummary:
    total_calls: int
    total_input_tokens: int
    total_output_tokens: int

    def to_dict(self) -> dict[str, int]:
        return {
            "total_calls": self.total_calls,
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
        }


@dataclass
class UsageSummary:
    model_usage_summaries: dict[str, ModelUsageSummary]

    def to_dict(self) -> dict[str, Any]:
        return {model: summary.to_dict() for model, summary in self.model_usage_summaries.items()}
