from mcpcli.agent.loop import AgentLoop, AgentState, build_conversation, build_system_prompt
from mcpcli.agent.tools import AGENT_TOOLS, execute_tool_call, map_tool_call

__all__ = [
    "AGENT_TOOLS",
    "AgentLoop",
    "AgentState",
    "build_conversation",
    "build_system_prompt",
    "execute_tool_call",
    "map_tool_call",
]
