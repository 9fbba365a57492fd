"""
Agent loop: lets a language model drive the gateway and registry tasks.

One call to ``AgentLoop.run_turn`` handles one operator turn:

    MODEL_TURN -> (no tool calls) -> DONE
    MODEL_TURN -> (tool calls) -> EXECUTE_TOOLS -> MODEL_TURN ...

bounded by ``max_iterations`` model round trips. Tool calls from one model response
run sequentially, in the order the model issued them, since later calls may depend
on the side effects of earlier ones.
"""

import logging
from enum import Enum
from typing import Any

from mcpcli.agent.tools import AGENT_TOOLS, execute_tool_call
from mcpcli.clients.base_provider import BaseProvider
from mcpcli.commands.executor import CommandExecutor
from mcpcli.core.constants import MAX_TOOL_ITERATIONS, TOOL_LIMIT_MESSAGE
from mcpcli.core.types import AgentMessage, AgentResult, ProviderResponse, ToolOutput
from mcpcli.logger import SessionLogger
from mcpcli.tasks import describe_available_tasks

_agent_log = logging.getLogger("mcpcli.agent")

SYSTEM_PROMPT = """You are an MCP Registry assistant with direct access to CLI tools.

Tools available:
- mcp_command: call MCP gateway commands (ping, list, call, init)
- registry_task: invoke service management, imports, user management, diagnostics via slash commands.

Behaviours:
- Use tools whenever the user asks for an action.
- Always prefer precise tool usage with correct parameters.
- Summarise results for the user after tool invocations.
- Never expose secrets or raw environment details."""


class AgentState(Enum):
    MODEL_TURN = "model_turn"
    EXECUTE_TOOLS = "execute_tools"
    DONE = "done"
    LIMIT_REACHED = "limit_reached"


def build_system_prompt(history: list[AgentMessage]) -> str:
    system_messages = [message["content"] for message in history if message["role"] == "system"]
    task_summary = f"Registry tasks (use as /<category> <task> key=value ...):\n{describe_available_tasks()}"
    return "\n\n".join([SYSTEM_PROMPT, task_summary, *system_messages])


def build_conversation(history: list[AgentMessage]) -> list[dict[str, Any]]:
    conversation: list[dict[str, Any]] = [
        {"role": message["role"], "content": message["content"]}
        for message in history
        if message["role"] in ("user", "assistant")
    ]
    if not conversation:
        joined = "\n".join(m["content"] for m in history if m["role"] != "system")
        conversation.append({"role": "user", "content": joined or "Hello."})
    return conversation


class AgentLoop:
    """
    Bounded multi-turn orchestration between the operator, a provider and the executor.

    The loop keeps no state between turns; whatever history the caller passes in is
    the whole conversation.
    """

    def __init__(
        self,
        provider: BaseProvider,
        executor: CommandExecutor,
        max_iterations: int = MAX_TOOL_ITERATIONS,
        logger: SessionLogger | None = None,
    ) -> None:
        self.provider = provider
        self.executor = executor
        self.max_iterations = max_iterations
        self.logger = logger

    async def run_turn(self, history: list[AgentMessage]) -> AgentResult:
        system = build_system_prompt(history)
        conversation = build_conversation(history)

        messages: list[AgentMessage] = []
        tool_outputs: list[ToolOutput] = []
        response: ProviderResponse | None = None
        iterations = 0
        state = AgentState.MODEL_TURN

        while True:
            if state is AgentState.MODEL_TURN:
                if iterations >= self.max_iterations:
                    state = AgentState.LIMIT_REACHED
                    continue
                response = await self.provider.create_message(system, conversation, AGENT_TOOLS)
                iterations += 1
                state = AgentState.EXECUTE_TOOLS if response.tool_calls else AgentState.DONE

            elif state is AgentState.EXECUTE_TOOLS:
                assert response is not None
                # The model must see its own tool requests on the next turn.
                conversation.append(
                    {"role": "assistant", "content": [block.to_dict() for block in response.content]}
                )
                results: list[dict[str, Any]] = []
                for call in response.tool_calls:
                    _agent_log.info("Model requested %s %s", call.name, call.input)
                    output = await execute_tool_call(call, self.executor)
                    tool_outputs.append(output)
                    tool_result: dict[str, Any] = {
                        "type": "tool_result",
                        "tool_use_id": call.id,
                        "content": output.output,
                    }
                    if output.is_error:
                        tool_result["is_error"] = True
                    results.append(tool_result)
                conversation.append({"role": "user", "content": results})
                state = AgentState.MODEL_TURN

            elif state is AgentState.DONE:
                assert response is not None
                text = "\n".join(block.text for block in response.text_blocks)
                messages.append({"role": "assistant", "content": text})
                break

            else:
                _agent_log.warning("Tool usage limit of %d iterations reached", self.max_iterations)
                messages.append({"role": "assistant", "content": TOOL_LIMIT_MESSAGE})
                break

        result = AgentResult(messages=messages, tool_outputs=tool_outputs, iterations=iterations)
        if self.logger is not None:
            self.logger.log_turn(history, result, usage=self.provider.get_usage_summary().to_dict())
        return result
